from __future__ import annotations

import time

# --- epoch helpers ---

def utc_now_ms() -> int:
    """Unix epoch milliseconds (int). Alert state is stored in ms."""
    return time.time_ns() // 1_000_000

def minutes_to_ms(minutes: float) -> int:
    return int(round(minutes * 60_000))
