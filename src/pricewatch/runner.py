# src/pricewatch/runner.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

import structlog

from pricewatch.alerts.evaluator import (
    NOTE_ERROR,
    NOTE_NO_PRICE,
    NOTE_NO_SNAPSHOT,
    AlertEvaluator,
)
from pricewatch.alerts.notifiers import Notifier
from pricewatch.alerts.rules import PriceLevelRule, normalize_symbols
from pricewatch.storage.state_store import StateStore
from pricewatch.utils.time import utc_now_ms
from pricewatch.utils.types import (
    NoPrice,
    RunSummaryDict,
    Snapshot,
    SymbolDetail,
    snapshot_prev_close,
    snapshot_price,
)

log = structlog.get_logger("runner")


class SnapshotProvider(Protocol):
    async def fetch_snapshots(self, symbols: list[str]) -> dict[str, Snapshot]: ...


@dataclass(slots=True)
class SymbolReport:
    symbol: str
    sent: list[str] = field(default_factory=list)
    current_price: Optional[float] = None
    prev_close: Optional[float] = None
    change_pct: Optional[float] = None
    rule: Optional[PriceLevelRule] = None
    note: Optional[str] = None
    has_snapshot: bool = False

    def to_dict(self) -> SymbolDetail:
        d: SymbolDetail = {"symbol": self.symbol, "sent": list(self.sent)}
        if self.current_price is not None:
            d["currentPrice"] = self.current_price
        if self.has_snapshot:
            d["prevClose"] = self.prev_close
            d["changePct"] = self.change_pct
        if self.rule is not None:
            d["rules"] = self.rule.to_dict()
        if self.note:
            d["note"] = self.note
        return d


@dataclass(slots=True)
class RunSummary:
    symbols: list[str]
    details: list[SymbolReport] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(len(r.sent) for r in self.details)

    def to_dict(self) -> RunSummaryDict:
        return {
            "ok": True,
            "symbols": len(self.symbols),
            "sent": self.sent,
            "details": [r.to_dict() for r in self.details],
        }


class AlertRunner:
    """
    One evaluation cycle:
      1) resolve symbols (override or watchlist)
      2) fetch snapshots for all of them in one call
      3) per symbol, in order: load state → evaluate → notify fired conditions
         → save state (normal mode only)

    A snapshot fetch failure aborts the cycle (raises). Any failure inside a
    symbol is logged, noted as "error" in its report, and the next symbol runs.
    Within this process a symbol's cycle holds a per-symbol lock, so overlapping
    scheduled and on-demand runs do not interleave on the same state record.
    """
    def __init__(
        self,
        *,
        provider: SnapshotProvider,
        store: StateStore,
        notifier: Notifier,
        evaluator: AlertEvaluator,
        watchlist: Sequence[str],
        price_levels: Optional[dict[str, PriceLevelRule]] = None,
        clock: Callable[[], int] = utc_now_ms,
    ):
        self.provider = provider
        self.store = store
        self.notifier = notifier
        self.evaluator = evaluator
        self.watchlist = normalize_symbols(watchlist)
        self.price_levels = price_levels or {}
        self.clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def resolve_symbols(self, override: Optional[Sequence[str]] = None) -> list[str]:
        if override:
            symbols = normalize_symbols(override)
            if symbols:
                return symbols
        return list(self.watchlist)

    async def run_once(self, symbols: Optional[Sequence[str]] = None, *, force: bool = False) -> RunSummary:
        syms = self.resolve_symbols(symbols)
        summary = RunSummary(symbols=syms)
        if not syms:
            return summary

        # raises UpstreamFetchError; nothing can be evaluated without data
        snaps = await self.provider.fetch_snapshots(syms)

        for symbol in syms:
            report = await self._process_symbol(symbol, snaps.get(symbol), force=force)
            summary.details.append(report)

        log.info("run_complete", symbols=len(syms), sent=summary.sent, force=force)
        return summary

    async def run_scheduled(self) -> RunSummary:
        return await self.run_once(None, force=False)

    # ---------- per symbol ----------

    @asynccontextmanager
    async def _symbol_lock(self, symbol: str):
        # entry is dropped once no cycle holds or waits on it
        lock = self._locks.setdefault(symbol, asyncio.Lock())
        self._lock_users[symbol] = self._lock_users.get(symbol, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[symbol] -= 1
            if not self._lock_users[symbol]:
                del self._lock_users[symbol]
                del self._locks[symbol]

    async def _process_symbol(self, symbol: str, snap: Optional[Snapshot], *, force: bool) -> SymbolReport:
        report = SymbolReport(symbol=symbol)
        if snap is None:
            report.note = NOTE_NO_SNAPSHOT
            return report

        report.has_snapshot = True
        report.current_price = snapshot_price(snap)
        report.prev_close = snapshot_prev_close(snap)
        if isinstance(snap, NoPrice):
            report.note = NOTE_NO_PRICE
            return report

        try:
            async with self._symbol_lock(symbol):
                await self._evaluate_and_notify(symbol, snap, report, force=force)
        except Exception as e:
            log.warning("symbol_eval_failed", symbol=symbol, err=str(e), err_type=type(e).__name__)
            report.note = NOTE_ERROR
        return report

    async def _evaluate_and_notify(self, symbol: str, snap: Snapshot, report: SymbolReport, *, force: bool) -> None:
        prior = await self.store.load(symbol)
        rule = self.price_levels.get(symbol) or PriceLevelRule()
        report.rule = rule

        ev = self.evaluator.evaluate(symbol, snap, rule, prior, self.clock(), force=force)
        report.change_pct = ev.change_pct

        for d in ev.decisions:
            if d.suppressed:
                log.info("alert_suppressed_cooldown", symbol=symbol, condition=d.kind.value)
            if not d.fire:
                continue
            await self.notifier.send(d.message or "")
            report.sent.append(d.kind.value)
            log.info("alert_sent", symbol=symbol, condition=d.kind.value, force=force)

        if not force and ev.next_state is not None:
            await self.store.save(symbol, ev.next_state)
