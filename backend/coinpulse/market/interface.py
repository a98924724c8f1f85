"""Abstract interfaces for the collaborators the market core depends on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from .models import Asset, HistorySample, Tick

TickHandler = Callable[[Tick], object]
TimerHandler = Callable[[], Awaitable[None]]


class TickSource(ABC):
    """Contract for push feeds of current price / 24h change.

    The source calls `handler` synchronously once per tick, from the event
    loop. Downstream code never polls the source for prices; it reads from
    the AssetStore.

    Lifecycle:
        source = create_market_sources().ticks
        await source.start(reconciler.handle)
        # ... app runs ...
        await source.stop()
    """

    @abstractmethod
    async def start(self, handler: TickHandler) -> None:
        """Begin delivering ticks to `handler`.

        Starts a background task. Must be called exactly once.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop the background task. Safe to call multiple times."""


class ClockSource(ABC):
    """Periodic timer driving the reference refresh cycle."""

    @abstractmethod
    async def start(self, interval: float, handler: TimerHandler) -> None:
        """Await `handler` every `interval` seconds until stopped.

        The first call happens one interval after start().
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop the timer. Safe to call multiple times."""


class HistorySource(ABC):
    """Request/response source of historical candles."""

    @abstractmethod
    async def fetch_history(
        self,
        asset: Asset,
        interval: str = "15m",
        limit: int = 100,
    ) -> list[HistorySample]:
        """Return up to `limit` samples ordered oldest to newest.

        Raises FetchFailure when the source cannot be reached or returns
        something unusable.
        """

    async def aclose(self) -> None:
        """Release connections held by the source. No-op by default."""


class RateSource(ABC):
    """Request/response source of the USD to local currency rate."""

    @abstractmethod
    async def fetch_rate(self) -> float:
        """Return the current rate. Raises FetchFailure on any error."""
