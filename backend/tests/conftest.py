"""Pytest configuration and fixtures.

The fakes here stand in for the network-facing collaborators so the core can
be driven deterministically: ticks are pushed by hand and the refresh timer
fires only when a test says so.
"""

from collections.abc import Callable

import pytest

from coinpulse.market.exceptions import FetchFailure
from coinpulse.market.interface import ClockSource, HistorySource, RateSource, TickSource
from coinpulse.market.models import Asset, HistorySample, Tick
from coinpulse.market.store import AssetStore


def make_samples(closes: list[float], start: float = 1_700_000_000.0, step: float = 900.0) -> list[HistorySample]:
    """Oldest-first 15-minute samples with the given closes."""
    return [HistorySample(timestamp=start + i * step, close=close) for i, close in enumerate(closes)]


class FakeTickSource(TickSource):
    def __init__(self) -> None:
        self.handler: Callable[[Tick], object] | None = None
        self.started = False
        self.stopped = 0

    async def start(self, handler) -> None:
        self.handler = handler
        self.started = True

    async def stop(self) -> None:
        self.stopped += 1

    def push(self, asset: Asset, price: float, change_24h: float = 0.0):
        return self.handler(Tick(asset=asset, price=price, change_24h=change_24h, timestamp=1_700_000_000.0))


class ManualClock(ClockSource):
    def __init__(self) -> None:
        self.interval: float | None = None
        self.handler = None
        self.stopped = False

    async def start(self, interval, handler) -> None:
        self.interval = interval
        self.handler = handler

    async def stop(self) -> None:
        self.stopped = True

    async def fire(self) -> None:
        await self.handler()


class FakeHistorySource(HistorySource):
    """Returns canned samples per asset; an Exception value is raised instead."""

    def __init__(self, responses: dict | None = None) -> None:
        self.responses: dict[Asset, list[HistorySample] | Exception] = dict(responses or {})
        self.calls: list[tuple[Asset, str, int]] = []
        self.closed = 0

    async def fetch_history(self, asset, interval="15m", limit=100):
        self.calls.append((asset, interval, limit))
        response = self.responses.get(asset, FetchFailure(f"no data for {asset.value}"))
        if isinstance(response, Exception):
            raise response
        return list(response)

    async def aclose(self) -> None:
        self.closed += 1


class FakeRateSource(RateSource):
    def __init__(self, rate: float | Exception) -> None:
        self.rate = rate

    async def fetch_rate(self) -> float:
        if isinstance(self.rate, Exception):
            raise self.rate
        return self.rate


@pytest.fixture
def store() -> AssetStore:
    return AssetStore()


@pytest.fixture
def tick_source() -> FakeTickSource:
    return FakeTickSource()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def history() -> FakeHistorySource:
    return FakeHistorySource(
        {
            Asset.BTC: make_samples([100.0 + i for i in range(20)]),
            Asset.ETH: make_samples([10.0 + i for i in range(20)]),
        }
    )
