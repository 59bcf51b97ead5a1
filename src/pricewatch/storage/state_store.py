from __future__ import annotations

from typing import Optional, Protocol

import redis.asyncio as redis
import structlog

from pricewatch.alerts.state import AlertState, state_key

log = structlog.get_logger("state_store")


class StateStore(Protocol):
    async def load(self, symbol: str) -> AlertState: ...
    async def save(self, symbol: str, state: AlertState) -> None: ...
    async def close(self) -> None: ...


class MemoryStateStore:
    """Process-local store (STATE_BACKEND=memory, tests). Holds the JSON text per key."""
    def __init__(self):
        self.data: dict[str, str] = {}

    async def load(self, symbol: str) -> AlertState:
        return AlertState.from_json(self.data.get(state_key(symbol)))

    async def save(self, symbol: str, state: AlertState) -> None:
        self.data[state_key(symbol)] = state.to_json()

    async def close(self) -> None:
        pass


class RedisStateStore:
    """
    Durable per-symbol alert state in Redis: one JSON string per key
    `alerts:{SYMBOL}`, no expiry. Plain GET / SET: concurrent writers from
    different processes are last-writer-wins.
    """
    def __init__(self, url: str, client: Optional[redis.Redis] = None):
        self.url = url
        self._r = client

    def _client(self) -> redis.Redis:
        if self._r is None:
            self._r = redis.from_url(self.url, decode_responses=True)
        return self._r

    async def load(self, symbol: str) -> AlertState:
        raw = await self._client().get(state_key(symbol))
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        return AlertState.from_json(raw)

    async def save(self, symbol: str, state: AlertState) -> None:
        await self._client().set(state_key(symbol), state.to_json())
        log.debug("state_saved", symbol=symbol)

    async def close(self) -> None:
        if self._r is not None:
            await self._r.aclose()
            self._r = None
