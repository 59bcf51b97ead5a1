from contextlib import asynccontextmanager

from aiohttp import web
from aiohttp.test_utils import TestServer

from pricewatch.errors import DeliveryError, UpstreamFetchError


class FakeNotifier:
    """
    Records delivered messages. `fail_on` lists 1-based call numbers that raise
    DeliveryError instead of delivering.
    """
    def __init__(self, fail_on=()):
        self.sent = []
        self.calls = 0
        self.fail_on = set(fail_on)

    async def send(self, text: str) -> None:
        self.calls += 1
        if self.calls in self.fail_on:
            raise DeliveryError("webhook rejected", status=500, body="boom")
        self.sent.append(text)


class FakeProvider:
    """Snapshot provider returning a fixed mapping; `error` makes every fetch fail."""
    def __init__(self, snapshots=None, error=None):
        self.snapshots = dict(snapshots or {})
        self.error = error
        self.requests = []

    async def fetch_snapshots(self, symbols):
        self.requests.append(list(symbols))
        if self.error is not None:
            raise self.error
        return {s: v for s, v in self.snapshots.items() if s in symbols}

    async def fetch_closes(self, symbol, timeframe="1Min", limit=200):
        if self.error is not None:
            raise self.error
        return [100.0, 101.5]


class FakeRedis:
    """Just enough of redis.asyncio.Redis for RedisStateStore."""
    def __init__(self):
        self.kv = {}
        self.closed = False

    async def get(self, key):
        return self.kv.get(key)

    async def set(self, key, value):
        self.kv[key] = value
        return True

    async def aclose(self):
        self.closed = True


class Clock:
    def __init__(self, now_ms=1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self):
        return self.now_ms

    def advance_minutes(self, m):
        self.now_ms += int(m * 60_000)


def upstream_error(status=503):
    return UpstreamFetchError("Alpaca snapshots error", status=status, body="unavailable")


@asynccontextmanager
async def local_server(routes):
    """
    Serve `routes` ([(method, path, handler), ...]) on a local port.
    Yields the TestServer; build URLs with server.make_url(path).
    """
    app = web.Application()
    for method, path, handler in routes:
        app.router.add_route(method, path, handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()
