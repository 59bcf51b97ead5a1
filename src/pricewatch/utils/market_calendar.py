from __future__ import annotations

import functools
from dataclasses import dataclass
from datetime import date, datetime, time as dtime, timezone
from typing import Literal, Optional
from zoneinfo import ZoneInfo

import pandas_market_calendars as mcal

NY = ZoneInfo("America/New_York")
UTC = timezone.utc

# Extended hours (premarket / after-hours). Regular hours come from the
# exchange schedule so holidays and early closes are honoured.
PRE_OPEN  = dtime(4, 0)
AFT_CLOSE = dtime(20, 0)

SessionMode = Literal["regular", "extended", "any"]
SessionPhase = Literal["closed", "premarket", "regular", "afterhours"]

SESSION_MODES: tuple[str, ...] = ("regular", "extended", "any")


@functools.lru_cache(maxsize=1)
def _nyse_calendar():
    # XNYS schedule carries holidays and early closes
    return mcal.get_calendar("XNYS")


@dataclass(frozen=True)
class SessionWindow:
    pre_open_utc: datetime
    rth_open_utc: datetime
    rth_close_utc: datetime
    aft_close_utc: datetime


@functools.lru_cache(maxsize=32)
def session_window(day: date) -> Optional[SessionWindow]:
    """Trading window for a New York calendar day; None if the exchange is shut."""
    sched = _nyse_calendar().schedule(start_date=day, end_date=day)
    if sched.empty:
        return None
    row = sched.iloc[0]
    rth_open = row["market_open"].to_pydatetime().astimezone(UTC)
    rth_close = row["market_close"].to_pydatetime().astimezone(UTC)

    # extended hours are synthesized as 04:00-20:00 NY on trading days
    pre_open = datetime.combine(day, PRE_OPEN, tzinfo=NY).astimezone(UTC)
    aft_close = datetime.combine(day, AFT_CLOSE, tzinfo=NY).astimezone(UTC)
    return SessionWindow(pre_open, rth_open, rth_close, aft_close)


def _to_utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(tz=UTC)
    if now.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return now.astimezone(UTC)


def session_phase(now: Optional[datetime] = None) -> SessionPhase:
    """US equity session phase at `now` (defaults to wall clock)."""
    now_utc = _to_utc(now)
    win = session_window(now_utc.astimezone(NY).date())
    if win is None:
        return "closed"
    if win.pre_open_utc <= now_utc < win.rth_open_utc:
        return "premarket"
    if win.rth_open_utc <= now_utc < win.rth_close_utc:
        return "regular"
    if win.rth_close_utc <= now_utc < win.aft_close_utc:
        return "afterhours"
    return "closed"


def is_market_open(mode: SessionMode = "regular", now: Optional[datetime] = None) -> bool:
    """
    mode="regular"  -> exchange open to close (09:30-16:00 NY, 13:00 on half days)
    mode="extended" -> 04:00 to open or close to 20:00 NY on trading days
    mode="any"      -> regular OR extended
    """
    phase = session_phase(now)
    if mode == "regular":
        return phase == "regular"
    if mode == "extended":
        return phase in ("premarket", "afterhours")
    return phase != "closed"
