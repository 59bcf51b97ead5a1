# src/pricewatch/alerts/notifiers.py
from __future__ import annotations

from typing import Callable, Optional, Protocol

import structlog

log = structlog.get_logger("notifier")


class Notifier(Protocol):
    async def send(self, text: str) -> None:
        """Deliver `text`; raise DeliveryError if it was not accepted."""
        ...


class ConsoleNotifier:
    """Prints alerts instead of delivering them (DRY_RUN=1)."""
    def __init__(self, print_fn: Optional[Callable[[str], None]] = None):
        self._print = print_fn or (lambda s: print(s, flush=True))
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        self.sent.append(text)
        self._print(text)
        log.info("console_alert", chars=len(text))
