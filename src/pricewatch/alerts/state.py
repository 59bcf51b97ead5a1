from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ConditionKind(str, Enum):
    PRICE_BELOW = "price_below"
    PRICE_ABOVE = "price_above"
    PCT_UP = "pct_up"
    PCT_DOWN = "pct_down"


@dataclass(slots=True)
class ConditionState:
    was_met: bool = False
    last_fired_at: Optional[int] = None   # epoch ms; None = never fired


def _fresh_conditions() -> dict[ConditionKind, ConditionState]:
    return {kind: ConditionState() for kind in ConditionKind}


# one record per symbol; every ConditionKind always present
@dataclass(slots=True)
class AlertState:
    conditions: dict[ConditionKind, ConditionState] = field(default_factory=_fresh_conditions)

    def get(self, kind: ConditionKind) -> ConditionState:
        return self.conditions[kind]

    def copy(self) -> "AlertState":
        return AlertState(conditions={
            k: ConditionState(was_met=v.was_met, last_fired_at=v.last_fired_at)
            for k, v in self.conditions.items()
        })

    # ---------- persistence ----------
    #
    # Stored layout (kept compatible with existing records):
    #   {"lastSentAt": {kind: epoch_ms}, "lastCond": {kind: bool}}

    def to_dict(self) -> dict[str, Any]:
        last_sent = {
            k.value: st.last_fired_at
            for k, st in self.conditions.items()
            if st.last_fired_at is not None
        }
        last_cond = {k.value: st.was_met for k, st in self.conditions.items()}
        return {"lastSentAt": last_sent, "lastCond": last_cond}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Any) -> "AlertState":
        """
        Missing or mistyped entries fall back to defaults (never fired / not met).
        Unknown condition keys are ignored.
        """
        st = cls()
        if not isinstance(data, dict):
            return st
        last_sent = data.get("lastSentAt")
        last_cond = data.get("lastCond")
        for kind in ConditionKind:
            cs = st.conditions[kind]
            if isinstance(last_sent, dict):
                ts = last_sent.get(kind.value)
                if isinstance(ts, (int, float)) and not isinstance(ts, bool):
                    cs.last_fired_at = int(ts)
            if isinstance(last_cond, dict):
                cs.was_met = last_cond.get(kind.value) is True
        return st

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "AlertState":
        if raw is None:
            return cls()
        return cls.from_dict(json.loads(raw))


def state_key(symbol: str) -> str:
    # alerts:{SYM}
    return f"alerts:{symbol}"
