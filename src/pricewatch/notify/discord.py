from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
import structlog

from pricewatch.errors import DeliveryError

log = structlog.get_logger("discord")

# Discord rejects message content above this length
MAX_CONTENT = 2000


@dataclass(slots=True)
class DiscordConfig:
    webhook_url: str
    timeout_s: float = 10.0


class DiscordNotifier:
    """
    Posts alert text to a Discord webhook. One attempt per message: a failed
    delivery raises DeliveryError and is not retried.

    The aiohttp session is opened by start() (or lazily on first send) and
    closed by stop().
    """
    def __init__(self, cfg: DiscordConfig, session: Optional[aiohttp.ClientSession] = None):
        self.cfg = cfg
        self._session = session
        self._owns_session = session is None

    async def start(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def stop(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def send(self, text: str) -> None:
        url = (self.cfg.webhook_url or "").strip()
        if not url:
            raise DeliveryError("DISCORD_WEBHOOK_URL is missing (undefined/empty)")
        session = await self.start()

        payload = {"content": text[:MAX_CONTENT]}

        try:
            async with session.post(url, json=payload) as resp:
                if 200 <= resp.status < 300:
                    log.debug("discord_sent", status=resp.status)
                    return
                detail = await _maybe_text(resp)
                log.warning("discord_send_failed", status=resp.status, body=detail)
                raise DeliveryError("Discord webhook failed", status=resp.status, body=detail)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.warning("discord_network_error", err=str(e))
            raise DeliveryError(f"Discord webhook unreachable: {e}") from e


async def _maybe_text(resp: aiohttp.ClientResponse) -> str:
    try:
        return await resp.text()
    except Exception:
        return "<no body>"
