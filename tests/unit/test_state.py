import json

import pytest

from pricewatch.alerts.state import AlertState, ConditionKind, state_key


def test_fresh_state_has_every_condition():
    st = AlertState()
    for kind in ConditionKind:
        cs = st.get(kind)
        assert cs.was_met is False
        assert cs.last_fired_at is None


def test_from_json_none_is_empty():
    st = AlertState.from_json(None)
    assert st.get(ConditionKind.PCT_UP).last_fired_at is None


def test_round_trip_keeps_stored_layout():
    st = AlertState()
    st.get(ConditionKind.PRICE_BELOW).was_met = True
    st.get(ConditionKind.PRICE_BELOW).last_fired_at = 1_700_000_000_000

    data = json.loads(st.to_json())
    assert data["lastSentAt"] == {"price_below": 1_700_000_000_000}
    assert data["lastCond"]["price_below"] is True
    assert data["lastCond"]["pct_down"] is False

    back = AlertState.from_json(st.to_json())
    assert back == st


def test_partial_and_mistyped_records_default():
    raw = json.dumps({
        "lastSentAt": {"pct_up": "yesterday", "pct_down": 123, "something_else": 5},
        "lastCond": {"pct_down": 1, "price_above": True},
    })
    st = AlertState.from_json(raw)
    assert st.get(ConditionKind.PCT_UP).last_fired_at is None
    assert st.get(ConditionKind.PCT_DOWN).last_fired_at == 123
    # only a real boolean true counts as "was met"
    assert st.get(ConditionKind.PCT_DOWN).was_met is False
    assert st.get(ConditionKind.PRICE_ABOVE).was_met is True


def test_non_object_payload_is_empty_state():
    assert AlertState.from_json("[1, 2]") == AlertState()
    assert AlertState.from_json("{}") == AlertState()


def test_corrupt_json_raises():
    with pytest.raises(ValueError):
        AlertState.from_json("{not json")


def test_copy_is_independent():
    st = AlertState()
    cp = st.copy()
    cp.get(ConditionKind.PCT_UP).was_met = True
    assert st.get(ConditionKind.PCT_UP).was_met is False


def test_state_key():
    assert state_key("AAPL") == "alerts:AAPL"
