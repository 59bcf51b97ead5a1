from __future__ import annotations

from typing import Optional

from pricewatch.alerts.state import ConditionKind

SEPARATOR = "=" * 50

_HEADERS = {
    ConditionKind.PRICE_BELOW: ("🔻", "below target"),
    ConditionKind.PRICE_ABOVE: ("🔺", "above target"),
    ConditionKind.PCT_UP: ("📈", "up more than"),
    ConditionKind.PCT_DOWN: ("📉", "down more than"),
}


def fmt_price(v: Optional[float]) -> str:
    return "n/a" if v is None else f"${v:.2f}"


def fmt_pct(v: Optional[float]) -> str:
    if v is None:
        return "n/a"
    sign = "+" if v >= 0 else ""
    return f"{sign}{v:.2f}%"


def format_alert_message(
    symbol: str,
    kind: ConditionKind,
    *,
    price: float,
    threshold: float,
    prev_close: Optional[float],
    change_pct: Optional[float],
) -> str:
    """
    Text for one fired condition, e.g.

        🔻 AAPL below target [price_below]
        Price: $165.00 (target <= $170.00)
        PrevClose: $180.00 | Change: -8.33%

    `threshold` is the price level for price_* kinds and the percent for pct_* kinds.
    """
    emoji, label = _HEADERS[kind]
    if kind is ConditionKind.PRICE_BELOW:
        head = f"{emoji} {symbol} {label} [{kind.value}]"
        price_line = f"Price: {fmt_price(price)} (target <= {fmt_price(threshold)})"
    elif kind is ConditionKind.PRICE_ABOVE:
        head = f"{emoji} {symbol} {label} [{kind.value}]"
        price_line = f"Price: {fmt_price(price)} (target >= {fmt_price(threshold)})"
    elif kind is ConditionKind.PCT_UP:
        head = f"{emoji} {symbol} {label} +{threshold:g}% [{kind.value}]"
        price_line = f"Price: {fmt_price(price)}"
    else:
        head = f"{emoji} {symbol} {label} -{threshold:g}% [{kind.value}]"
        price_line = f"Price: {fmt_price(price)}"

    return (
        f"{SEPARATOR}\n"
        f"{head}\n"
        f"{price_line}\n"
        f"PrevClose: {fmt_price(prev_close)} | Change: {fmt_pct(change_pct)}"
    )
