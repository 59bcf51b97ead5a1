from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, TypedDict, Union

# ---- market snapshot (one symbol) ----
#
# Exactly one of three shapes, so percent-change math can only run when both
# a current price and a previous close exist.

@dataclass(slots=True, frozen=True)
class NoPrice:
    prev_close: Optional[float] = None   # kept for diagnostics only

@dataclass(slots=True, frozen=True)
class PriceOnly:
    price: float

@dataclass(slots=True, frozen=True)
class PriceWithPrevClose:
    price: float
    prev_close: float

Snapshot = Union[NoPrice, PriceOnly, PriceWithPrevClose]


def make_snapshot(price: Optional[float], prev_close: Optional[float]) -> Snapshot:
    if price is None:
        return NoPrice(prev_close=prev_close)
    if prev_close is None:
        return PriceOnly(price=price)
    return PriceWithPrevClose(price=price, prev_close=prev_close)


def snapshot_price(snap: Snapshot) -> Optional[float]:
    if isinstance(snap, NoPrice):
        return None
    return snap.price


def snapshot_prev_close(snap: Snapshot) -> Optional[float]:
    if isinstance(snap, PriceOnly):
        return None
    return snap.prev_close


def finite_number(x) -> Optional[float]:
    """float(x) if x is a finite real number (bools excluded), else None."""
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        return None
    v = float(x)
    return v if math.isfinite(v) else None


# ---- HTTP payloads ----

class SymbolDetail(TypedDict, total=False):
    symbol: str
    sent: list[str]
    currentPrice: float
    prevClose: Optional[float]
    changePct: Optional[float]
    rules: dict[str, float]
    note: str

class RunSummaryDict(TypedDict):
    ok: bool
    symbols: int
    sent: int
    details: list[SymbolDetail]
