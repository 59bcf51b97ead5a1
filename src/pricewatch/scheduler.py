from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from pricewatch.runner import AlertRunner
from pricewatch.utils.market_calendar import SessionMode, is_market_open

log = structlog.get_logger("scheduler")


@dataclass(slots=True)
class SchedulerConfig:
    interval_s: float = 300.0
    market_hours_only: bool = False
    session: SessionMode = "any"


class AlertScheduler:
    """
    Background task that runs a normal, full-watchlist cycle every interval_s.
    Cycle failures are logged and the loop keeps going; a cycle is never
    cancelled midway except by stop().
    """
    def __init__(
        self,
        runner: AlertRunner,
        cfg: Optional[SchedulerConfig] = None,
        market_is_open: Optional[Callable[[], bool]] = None,
    ):
        self.runner = runner
        self.cfg = cfg or SchedulerConfig()
        self.market_is_open = market_is_open or (lambda: is_market_open(self.cfg.session))
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    async def start(self) -> None:
        self._stop.clear()
        self._task = asyncio.create_task(self._loop(), name="alert-scheduler")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def tick(self) -> bool:
        """Run one scheduled cycle if allowed. True if a cycle ran."""
        self.ticks += 1
        if self.cfg.market_hours_only and not self.market_is_open():
            log.debug("scheduler_skip_market_closed", session=self.cfg.session)
            return False
        try:
            summary = await self.runner.run_scheduled()
        except Exception as e:
            log.error("scheduled_run_failed", err=str(e), err_type=type(e).__name__)
            return False
        log.info("scheduler_tick", symbols=len(summary.symbols), sent=summary.sent)
        return True

    async def _loop(self) -> None:
        try:
            while not self._stop.is_set():
                await self.tick()
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.cfg.interval_s)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            return
