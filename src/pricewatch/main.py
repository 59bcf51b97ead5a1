# src/pricewatch/main.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import structlog
from aiohttp import web
from dotenv import load_dotenv

from pricewatch.alerts.evaluator import AlertEvaluator, EvaluatorConfig
from pricewatch.alerts.notifiers import ConsoleNotifier, Notifier
from pricewatch.config import AppConfig, config_from_env
from pricewatch.errors import ConfigurationError
from pricewatch.ingest.alpaca_rest import AlpacaRestConfig, AlpacaSnapshotClient
from pricewatch.notify.discord import DiscordConfig, DiscordNotifier
from pricewatch.runner import AlertRunner
from pricewatch.scheduler import AlertScheduler, SchedulerConfig
from pricewatch.storage.state_store import MemoryStateStore, RedisStateStore, StateStore
from pricewatch.web.app import create_app

log = structlog.get_logger()


# ---------------------------
# Wiring
# ---------------------------

def configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
    )


@dataclass(slots=True)
class Services:
    alpaca: AlpacaSnapshotClient
    notifier: Notifier
    store: StateStore
    runner: AlertRunner
    scheduler: AlertScheduler

    async def start(self) -> None:
        await self.alpaca.start()
        if isinstance(self.notifier, DiscordNotifier):
            await self.notifier.start()

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.alpaca.stop()
        if isinstance(self.notifier, DiscordNotifier):
            await self.notifier.stop()
        await self.store.close()


def build_services(cfg: AppConfig, store: Optional[StateStore] = None) -> Services:
    alpaca = AlpacaSnapshotClient(AlpacaRestConfig(
        key_id=cfg.alpaca_key_id,
        secret_key=cfg.alpaca_secret_key,
        base_url=cfg.alpaca_data_url,
        feed=cfg.alpaca_feed,
        timeout_s=cfg.http_timeout_s,
    ))

    notifier: Notifier
    if cfg.dry_run:
        notifier = ConsoleNotifier()
        log.info("dry_run_console_notifier")
    else:
        notifier = DiscordNotifier(DiscordConfig(webhook_url=cfg.discord_webhook_url,
                                                 timeout_s=cfg.http_timeout_s))

    if store is None:
        if cfg.state_backend == "memory":
            store = MemoryStateStore()
            log.warning("state_backend_memory", hint="alert state is lost on restart")
        else:
            store = RedisStateStore(cfg.redis_url)

    runner = AlertRunner(
        provider=alpaca,
        store=store,
        notifier=notifier,
        evaluator=AlertEvaluator(EvaluatorConfig(pct_threshold=cfg.pct_threshold,
                                                 cooldown_ms=cfg.cooldown_ms)),
        watchlist=cfg.watchlist,
        price_levels=cfg.price_levels,
    )
    scheduler = AlertScheduler(runner, SchedulerConfig(
        interval_s=cfg.schedule_interval_s,
        market_hours_only=cfg.schedule_market_hours_only,
        session=cfg.schedule_session,
    ))
    return Services(alpaca=alpaca, notifier=notifier, store=store, runner=runner, scheduler=scheduler)


def make_web_app(cfg: AppConfig, services: Services) -> web.Application:
    app = create_app(
        runner=services.runner,
        notifier=services.notifier,
        bars=services.alpaca,
        trigger_token=cfg.trigger_token,
    )
    if not cfg.trigger_token:
        log.warning("trigger_token_unset", hint="on-demand endpoints will reject every request")

    async def lifecycle(_app: web.Application):
        await services.start()
        await services.scheduler.start()
        log.info("pricewatch_started", symbols=cfg.watchlist, interval_s=cfg.schedule_interval_s)
        yield
        await services.close()

    app.cleanup_ctx.append(lifecycle)
    return app


# ---------------------------
# Main
# ---------------------------

async def run_once(cfg: AppConfig) -> int:
    """Single scheduled cycle (cron style). Returns notifications sent."""
    services = build_services(cfg)
    await services.start()
    try:
        summary = await services.runner.run_scheduled()
        return summary.sent
    finally:
        await services.close()


def main() -> None:
    load_dotenv()
    try:
        cfg = config_from_env()
    except ConfigurationError as e:
        configure_logging("info")
        log.error("config_invalid", err=str(e))
        raise SystemExit(2)
    configure_logging(cfg.log_level)

    if cfg.run_once:
        sent = asyncio.run(run_once(cfg))
        log.info("run_once_done", sent=sent)
        return

    services = build_services(cfg)
    web.run_app(make_web_app(cfg, services), host=cfg.http_host, port=cfg.http_port, print=None)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
