# src/pricewatch/config.py
from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from pricewatch.alerts.rules import PriceLevelRule, normalize_symbols, parse_price_levels
from pricewatch.errors import ConfigurationError
from pricewatch.utils.market_calendar import SESSION_MODES
from pricewatch.utils.time import minutes_to_ms

DEFAULT_WATCHLIST = "AAPL,TSLA"
STATE_BACKENDS = ("redis", "memory")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@dataclass(frozen=True, slots=True)
class AppConfig:
    watchlist: list[str]
    price_levels: dict[str, PriceLevelRule]
    pct_threshold: float
    cooldown_minutes: float

    discord_webhook_url: str
    alpaca_key_id: str
    alpaca_secret_key: str
    alpaca_data_url: str = "https://data.alpaca.markets"
    alpaca_feed: Optional[str] = None

    trigger_token: str = ""
    dry_run: bool = False

    state_backend: str = "redis"
    redis_url: str = "redis://localhost:6379/0"

    http_host: str = "0.0.0.0"
    http_port: int = 8080
    http_timeout_s: float = 10.0

    schedule_interval_s: int = 300
    schedule_market_hours_only: bool = False
    schedule_session: str = "any"
    run_once: bool = False

    log_level: str = "info"

    @property
    def cooldown_ms(self) -> int:
        return minutes_to_ms(self.cooldown_minutes)


# ---------- field parsers ----------

def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    v = env.get(name)
    if v is None:
        return default
    return v.strip()


def _float(env: Mapping[str, str], name: str, default: float, *, minimum: float = 0.0,
           strict: bool = False) -> float:
    raw = _get(env, name)
    if raw == "":
        return default
    try:
        v = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(v) or v < minimum or (strict and v == minimum):
        op = ">" if strict else ">="
        raise ConfigurationError(f"{name} must be a finite number {op} {minimum:g}, got {raw!r}")
    return v


def _int(env: Mapping[str, str], name: str, default: int, *, minimum: int = 1) -> int:
    raw = _get(env, name)
    if raw == "":
        return default
    try:
        v = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if v < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {v}")
    return v


def _flag(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = _get(env, name).lower()
    if raw == "":
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean flag, got {raw!r}")


def _choice(env: Mapping[str, str], name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = _get(env, name).lower() or default
    if raw not in choices:
        raise ConfigurationError(f"{name} must be one of {', '.join(choices)}, got {raw!r}")
    return raw


def _required(env: Mapping[str, str], name: str) -> str:
    v = _get(env, name)
    if not v:
        raise ConfigurationError(f"{name} is required")
    return v


def config_from_env(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Build AppConfig from environment variables. Raises ConfigurationError on the
    first missing or malformed setting.
    """
    env = os.environ if env is None else env

    watchlist = normalize_symbols((_get(env, "WATCHLIST") or DEFAULT_WATCHLIST).split(","))
    if not watchlist:
        raise ConfigurationError("WATCHLIST must name at least one symbol")

    dry_run = _flag(env, "DRY_RUN")
    webhook = _get(env, "DISCORD_WEBHOOK_URL") if dry_run else _required(env, "DISCORD_WEBHOOK_URL")

    return AppConfig(
        watchlist=watchlist,
        price_levels=parse_price_levels(_get(env, "PRICE_LEVELS")),
        pct_threshold=_float(env, "PCT_THRESHOLD", 10.0),
        cooldown_minutes=_float(env, "ALERT_COOLDOWN_MINUTES", 30.0),
        discord_webhook_url=webhook,
        alpaca_key_id=_required(env, "ALPACA_API_KEY"),
        alpaca_secret_key=_required(env, "ALPACA_API_SECRET"),
        alpaca_data_url=_get(env, "ALPACA_DATA_URL") or "https://data.alpaca.markets",
        alpaca_feed=_get(env, "ALPACA_FEED") or None,
        trigger_token=_get(env, "TRIGGER_TOKEN"),
        dry_run=dry_run,
        state_backend=_choice(env, "STATE_BACKEND", "redis", STATE_BACKENDS),
        redis_url=_get(env, "REDIS_URL") or "redis://localhost:6379/0",
        http_host=_get(env, "HTTP_HOST") or "0.0.0.0",
        http_port=_int(env, "HTTP_PORT", 8080),
        http_timeout_s=_float(env, "HTTP_TIMEOUT_S", 10.0, strict=True),
        schedule_interval_s=_int(env, "SCHEDULE_INTERVAL_SECONDS", 300),
        schedule_market_hours_only=_flag(env, "SCHEDULE_MARKET_HOURS_ONLY"),
        schedule_session=_choice(env, "SCHEDULE_SESSION", "any", SESSION_MODES),
        run_once=_flag(env, "RUN_ONCE"),
        log_level=_choice(env, "LOG_LEVEL", "info", LOG_LEVELS),
    )
