from __future__ import annotations

from typing import Any, Optional

from pricewatch.utils.types import Snapshot, finite_number, make_snapshot


def _field(m: Any, bar: str, key: str) -> Optional[float]:
    if not isinstance(m, dict):
        return None
    sub = m.get(bar)
    if not isinstance(sub, dict):
        return None
    return finite_number(sub.get(key))


def parse_snapshot(m: Any) -> Snapshot:
    """
    Alpaca v2 stock snapshot -> Snapshot.

    Fields used:
      - "latestTrade":  {"p": 189.22, "t": "..."}   current price (preferred)
      - "minuteBar":    {"c": 189.10, "t": "..."}   current price fallback
      - "prevDailyBar": {"c": 187.45, "t": "..."}   previous close
    Missing, null or non-finite values are treated as absent.
    """
    price = _field(m, "latestTrade", "p")
    if price is None:
        price = _field(m, "minuteBar", "c")
    prev_close = _field(m, "prevDailyBar", "c")
    return make_snapshot(price, prev_close)


def parse_snapshots(payload: Any) -> dict[str, Snapshot]:
    """
    Batch response {SYMBOL: snapshot|null} -> {SYMBOL: Snapshot}.
    Symbols with a null entry are left out (treated as "no snapshot").
    """
    out: dict[str, Snapshot] = {}
    if not isinstance(payload, dict):
        return out
    for sym, m in payload.items():
        if m is None:
            continue
        out[str(sym).upper()] = parse_snapshot(m)
    return out


def parse_bar_closes(payload: Any) -> list[float]:
    """{"bars": [{"c": ...}, ...]} -> closes in order, skipping malformed bars."""
    if not isinstance(payload, dict):
        return []
    bars = payload.get("bars") or []
    out: list[float] = []
    for b in bars:
        c = finite_number(b.get("c")) if isinstance(b, dict) else None
        if c is not None:
            out.append(c)
    return out
