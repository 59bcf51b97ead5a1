# src/pricewatch/errors.py
from __future__ import annotations

from typing import Optional


class PricewatchError(Exception):
    """Base class for errors raised by pricewatch."""


class ConfigurationError(PricewatchError):
    """Required setting missing or malformed. Raised before any work starts."""


class UpstreamFetchError(PricewatchError):
    """
    A remote endpoint (market data, webhook) answered with a non-success status.
    `status` is None when the request never reached the endpoint.
    """
    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (status={self.status})"


class DeliveryError(UpstreamFetchError):
    """Notification could not be delivered."""


class AuthorizationError(PricewatchError):
    """On-demand trigger without a valid token."""
