from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp
import structlog

from pricewatch.errors import UpstreamFetchError
from pricewatch.ingest import parser
from pricewatch.utils.types import Snapshot


@dataclass(slots=True)
class AlpacaRestConfig:
    key_id: str
    secret_key: str
    base_url: str = "https://data.alpaca.markets"
    feed: Optional[str] = None       # "iex" | "sip"; None -> account default
    timeout_s: float = 10.0


class AlpacaSnapshotClient:
    """
    Alpaca market-data REST client (v2 stocks).

    One batched request per evaluation cycle:
        client = AlpacaSnapshotClient(AlpacaRestConfig(key_id=..., secret_key=...))
        snaps = await client.fetch_snapshots(["AAPL", "TSLA"])

    Non-2xx responses raise UpstreamFetchError carrying status and body.
    """
    def __init__(self, cfg: AlpacaRestConfig, session: Optional[aiohttp.ClientSession] = None):
        self.cfg = cfg
        self._session = session
        self._owns_session = session is None
        self._log = structlog.get_logger("alpaca_rest")

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

    # --------------------------- public API ---------------------------- #

    async def fetch_snapshots(self, symbols: list[str]) -> dict[str, Snapshot]:
        if not symbols:
            return {}
        params = {"symbols": ",".join(symbols)}
        if self.cfg.feed:
            params["feed"] = self.cfg.feed
        data = await self._get_json("/v2/stocks/snapshots", params, what="snapshots")
        snaps = parser.parse_snapshots(data)
        self._log.debug("snapshots_fetched", requested=len(symbols), received=len(snaps))
        return snaps

    async def fetch_closes(self, symbol: str, timeframe: str = "1Min", limit: int = 200) -> list[float]:
        """Recent bar closes for one symbol (oldest first)."""
        params = {"timeframe": timeframe, "limit": str(limit)}
        if self.cfg.feed:
            params["feed"] = self.cfg.feed
        data = await self._get_json(f"/v2/stocks/{symbol}/bars", params, what="bars")
        return parser.parse_bar_closes(data)

    # --------------------------- internals ----------------------------- #

    def _headers(self) -> dict[str, str]:
        return {
            "APCA-API-KEY-ID": self.cfg.key_id,
            "APCA-API-SECRET-KEY": self.cfg.secret_key,
            "accept": "application/json",
        }

    async def _get_json(self, path: str, params: dict[str, str], *, what: str) -> Any:
        session = await self.start()
        url = self.cfg.base_url.rstrip("/") + path
        try:
            async with session.get(url, params=params, headers=self._headers()) as resp:
                if not 200 <= resp.status < 300:
                    body = await _maybe_text(resp)
                    self._log.warning("alpaca_fetch_failed", what=what, status=resp.status, body=body)
                    raise UpstreamFetchError(f"Alpaca {what} error", status=resp.status, body=body)
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise UpstreamFetchError(f"Alpaca {what} returned invalid JSON", status=resp.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._log.warning("alpaca_network_error", what=what, err=str(e))
            raise UpstreamFetchError(f"Alpaca {what} unreachable: {e}") from e


async def _maybe_text(resp: aiohttp.ClientResponse) -> str:
    try:
        return await resp.text()
    except Exception:
        return ""
