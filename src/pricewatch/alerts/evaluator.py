from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pricewatch.alerts.formatting import format_alert_message
from pricewatch.alerts.rules import PriceLevelRule
from pricewatch.alerts.state import AlertState, ConditionKind, ConditionState
from pricewatch.utils.types import (
    NoPrice,
    PriceWithPrevClose,
    Snapshot,
    snapshot_prev_close,
)

NOTE_NO_SNAPSHOT = "no snapshot"
NOTE_NO_PRICE = "no current price"
NOTE_ERROR = "error"


@dataclass(slots=True)
class EvaluatorConfig:
    pct_threshold: float = 10.0          # percent, applied as +/- vs previous close
    cooldown_ms: int = 30 * 60_000       # 30 minutes


@dataclass(slots=True)
class ConditionDecision:
    kind: ConditionKind
    met: bool
    fire: bool = False
    suppressed: bool = False             # rising edge blocked by cooldown
    message: Optional[str] = None


@dataclass(slots=True)
class SymbolEvaluation:
    symbol: str
    rule: PriceLevelRule
    price: Optional[float] = None
    prev_close: Optional[float] = None
    change_pct: Optional[float] = None
    decisions: list[ConditionDecision] = field(default_factory=list)
    next_state: Optional[AlertState] = None   # None -> nothing to persist
    note: Optional[str] = None

    @property
    def fired(self) -> list[ConditionDecision]:
        return [d for d in self.decisions if d.fire]


def change_pct(snap: Snapshot) -> Optional[float]:
    """Percent change vs previous close; None unless prev_close > 0."""
    if not isinstance(snap, PriceWithPrevClose) or snap.prev_close <= 0:
        return None
    return (snap.price - snap.prev_close) / snap.prev_close * 100.0


class AlertEvaluator:
    """
    Edge-triggered, cooldown-gated threshold evaluator. Pure: no I/O.

    Per (symbol, condition) two states, stored as `was_met`:
      NOT_MET -> MET   rising edge; fire if cooldown elapsed since last fire,
                       otherwise suppress. The edge is consumed either way.
      MET -> MET       nothing.
      * -> NOT_MET     nothing; re-arms the next rising edge.
    force=True fires on every met condition and ignores was_met/cooldown.
    """
    def __init__(self, cfg: Optional[EvaluatorConfig] = None):
        self.cfg = cfg or EvaluatorConfig()

    def evaluate(
        self,
        symbol: str,
        snap: Snapshot,
        rule: Optional[PriceLevelRule],
        prior: Optional[AlertState],
        now_ms: int,
        *,
        force: bool = False,
    ) -> SymbolEvaluation:
        rule = rule or PriceLevelRule()
        out = SymbolEvaluation(symbol=symbol, rule=rule, prev_close=snapshot_prev_close(snap))
        if isinstance(snap, NoPrice):
            out.note = NOTE_NO_PRICE
            return out

        price = snap.price
        pct = change_pct(snap)
        out.price = price
        out.change_pct = pct

        thr = self.cfg.pct_threshold
        checks: list[tuple[ConditionKind, bool, float]] = []
        if rule.below is not None:
            checks.append((ConditionKind.PRICE_BELOW, price <= rule.below, rule.below))
        if rule.above is not None:
            checks.append((ConditionKind.PRICE_ABOVE, price >= rule.above, rule.above))
        checks.append((ConditionKind.PCT_UP, pct is not None and pct >= thr, thr))
        checks.append((ConditionKind.PCT_DOWN, pct is not None and pct <= -thr, thr))

        state = prior.copy() if prior is not None else AlertState()
        for kind, met, threshold in checks:
            cs = state.get(kind)
            d = self._decide(kind, met, cs, now_ms, force)
            if d.fire:
                d.message = format_alert_message(
                    symbol, kind,
                    price=price,
                    threshold=threshold,
                    prev_close=out.prev_close,
                    change_pct=pct,
                )
            out.decisions.append(d)

        out.next_state = state
        return out

    # ---------- decision rule ----------

    def _decide(
        self,
        kind: ConditionKind,
        met: bool,
        cs: ConditionState,
        now_ms: int,
        force: bool,
    ) -> ConditionDecision:
        """Advance `cs` in place and report whether to notify."""
        d = ConditionDecision(kind=kind, met=met)
        if force:
            d.fire = met
        elif met and not cs.was_met:
            last = cs.last_fired_at
            if last is None or now_ms - last >= self.cfg.cooldown_ms:
                d.fire = True
            else:
                d.suppressed = True

        if d.fire:
            cs.last_fired_at = now_ms
        cs.was_met = met
        return d
