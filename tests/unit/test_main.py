import pytest

from pricewatch.alerts.notifiers import ConsoleNotifier
from pricewatch.config import config_from_env
from pricewatch.main import build_services, configure_logging
from pricewatch.notify.discord import DiscordNotifier
from pricewatch.storage.state_store import MemoryStateStore, RedisStateStore

BASE = {
    "DISCORD_WEBHOOK_URL": "https://discord.test/api/webhooks/1/abc",
    "ALPACA_API_KEY": "KEY",
    "ALPACA_API_SECRET": "SECRET",
}


@pytest.mark.asyncio
async def test_build_services_dry_run_memory():
    cfg = config_from_env({**BASE, "DRY_RUN": "1", "STATE_BACKEND": "memory", "WATCHLIST": "nvda"})
    services = build_services(cfg)
    assert isinstance(services.notifier, ConsoleNotifier)
    assert isinstance(services.store, MemoryStateStore)
    assert services.runner.watchlist == ["NVDA"]
    await services.close()


@pytest.mark.asyncio
async def test_build_services_defaults_to_discord_and_redis():
    cfg = config_from_env(dict(BASE))
    services = build_services(cfg)
    assert isinstance(services.notifier, DiscordNotifier)
    assert isinstance(services.store, RedisStateStore)
    assert services.scheduler.cfg.interval_s == 300
    await services.close()


def test_configure_logging_accepts_levels():
    for level in ("debug", "info", "warning"):
        configure_logging(level)


@pytest.mark.asyncio
async def test_console_notifier_prints_and_records():
    printed = []
    n = ConsoleNotifier(print_fn=printed.append)
    await n.send("🔻 AAPL below target [price_below]")
    assert printed == n.sent == ["🔻 AAPL below target [price_below]"]
