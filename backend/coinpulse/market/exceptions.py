"""Exceptions for the market data subsystem.

Nothing here is fatal to the process: callers catch these at the component
boundary, log them, and keep the last known good value.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import UpdateEvent


class MarketDataError(Exception):
    """Base exception for all market data errors."""


class InvalidTick(MarketDataError):
    """Raised when a push tick is malformed or carries a non-positive price."""


class InvalidPrice(MarketDataError):
    """Raised when a store write carries a negative or non-finite price."""


class FetchFailure(MarketDataError):
    """Raised when a history or exchange-rate fetch fails."""


class ConsumerFailure(MarketDataError):
    """A fan-out consumer raised while handling an UpdateEvent."""

    def __init__(self, consumer: str, event: UpdateEvent, error: BaseException) -> None:
        super().__init__(f"consumer {consumer!r} failed on {event.asset.value}: {error}")
        self.consumer = consumer
        self.event = event
        self.error = error
