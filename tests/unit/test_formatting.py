from pricewatch.alerts.formatting import fmt_pct, fmt_price, format_alert_message
from pricewatch.alerts.state import ConditionKind


def test_price_below_message_names_symbol_kind_and_values():
    text = format_alert_message(
        "AAPL", ConditionKind.PRICE_BELOW,
        price=165.0, threshold=170.0, prev_close=180.0, change_pct=-8.3333,
    )
    assert "AAPL" in text
    assert "[price_below]" in text
    assert "$165.00" in text and "$170.00" in text
    assert "PrevClose: $180.00 | Change: -8.33%" in text


def test_pct_up_message_shows_threshold():
    text = format_alert_message(
        "TSLA", ConditionKind.PCT_UP,
        price=110.0, threshold=10.0, prev_close=100.0, change_pct=10.0,
    )
    assert "+10%" in text and "[pct_up]" in text
    assert "Change: +10.00%" in text


def test_missing_values_render_na():
    assert fmt_price(None) == "n/a"
    assert fmt_pct(None) == "n/a"
    assert fmt_pct(0.0) == "+0.00%"
