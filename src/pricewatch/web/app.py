# src/pricewatch/web/app.py
from __future__ import annotations

import hmac
import json
from typing import Any, Protocol

import structlog
from aiohttp import web

from pricewatch.alerts.notifiers import Notifier
from pricewatch.errors import AuthorizationError, ConfigurationError, UpstreamFetchError
from pricewatch.runner import AlertRunner

log = structlog.get_logger("web")

TOKEN_HEADER = "x-trigger-token"
TEST_MESSAGE = "✅ Discord webhook works! (from pricewatch)"


class BarsProvider(Protocol):
    async def fetch_closes(self, symbol: str, timeframe: str = "1Min", limit: int = 200) -> list[float]: ...


RUNNER = web.AppKey("runner", AlertRunner)
NOTIFIER = web.AppKey("notifier", Notifier)
BARS = web.AppKey("bars", BarsProvider)
TRIGGER_TOKEN = web.AppKey("trigger_token", str)


# ---------------------------
# Helpers
# ---------------------------

def require_token(request: web.Request) -> None:
    expected = request.app[TRIGGER_TOKEN]
    got = request.headers.get(TOKEN_HEADER, "")
    # unset token disables the protected endpoints
    if not expected or not got or not hmac.compare_digest(got.encode(), expected.encode()):
        raise AuthorizationError("invalid or missing trigger token")


async def read_body(request: web.Request) -> dict[str, Any]:
    """Optional JSON object body; anything else reads as {}."""
    if not request.can_read_body:
        return {}
    raw = await request.read()
    try:
        text = raw.decode(request.charset or "utf-8")
        body = json.loads(text) if text.strip() else {}
    except (ValueError, LookupError):
        return {}
    return body if isinstance(body, dict) else {}


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except AuthorizationError:
        log.info("trigger_unauthorized", path=request.path)
        return web.Response(text="Unauthorized", status=401)
    except UpstreamFetchError as e:
        log.warning("upstream_failed", path=request.path, status=e.status, err=str(e))
        return web.json_response({"ok": False, "error": str(e), "status": e.status}, status=502)
    except ConfigurationError as e:
        log.error("configuration_error", path=request.path, err=str(e))
        return web.json_response({"ok": False, "error": str(e)}, status=500)


# ---------------------------
# Handlers
# ---------------------------

async def health(request: web.Request) -> web.Response:
    return web.json_response({"ok": True})


async def trigger_alerts(request: web.Request) -> web.Response:
    require_token(request)
    body = await read_body(request)
    force = bool(body.get("force"))
    symbols = body.get("symbols")
    if not isinstance(symbols, list):
        symbols = None

    summary = await request.app[RUNNER].run_once(symbols, force=force)
    return web.json_response(summary.to_dict())


async def test_discord(request: web.Request) -> web.Response:
    require_token(request)
    await request.app[NOTIFIER].send(TEST_MESSAGE)
    return web.Response(text="OK")


async def test_alpaca(request: web.Request) -> web.Response:
    require_token(request)
    symbol = (request.query.get("symbol") or "NVDA").strip().upper()
    closes = await request.app[BARS].fetch_closes(symbol)
    return web.json_response({
        "symbol": symbol,
        "lastClose": closes[-1] if closes else None,
        "count": len(closes),
    })


def create_app(
    *,
    runner: AlertRunner,
    notifier: Notifier,
    bars: BarsProvider,
    trigger_token: str,
) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[RUNNER] = runner
    app[NOTIFIER] = notifier
    app[BARS] = bars
    app[TRIGGER_TOKEN] = trigger_token

    app.router.add_get("/health", health)
    app.router.add_post("/trigger-alerts", trigger_alerts)
    app.router.add_get("/test-discord", test_discord)
    app.router.add_get("/test-alpaca", test_alpaca)
    return app
