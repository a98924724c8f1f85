"""Wires the store, refresher, reconciler and consumers together."""

from __future__ import annotations

import logging

from .charts import ChartFeed
from .clock import AsyncioClock
from .consumers import AdvisoryGenerator, Converter, DisplayFormatter
from .dispatcher import FanoutDispatcher
from .exchange_rate import load_exchange_rate
from .interface import ClockSource, HistorySource, RateSource, TickSource
from .models import Asset
from .reconciler import TickReconciler
from .refresher import REFRESH_INTERVAL, ReferenceRefresher
from .store import AssetStore

logger = logging.getLogger(__name__)


class MarketAggregator:
    """Owns one AssetStore and every component that reads or writes it.

    Consumers run in this order for each UpdateEvent: display, converter,
    advisory (active asset only), chart feed.

    Lifecycle:
        aggregator = MarketAggregator(ticks, history, rates)
        await aggregator.start()
        await aggregator.select(Asset.ETH)
        await aggregator.stop()
    """

    def __init__(
        self,
        tick_source: TickSource,
        history_source: HistorySource,
        rate_source: RateSource | None = None,
        clock: ClockSource | None = None,
        store: AssetStore | None = None,
        refresh_interval: float = REFRESH_INTERVAL,
    ) -> None:
        self.store = store or AssetStore()
        self._ticks = tick_source
        self._history = history_source
        self._rates = rate_source

        self.display = DisplayFormatter()
        self.converter = Converter(self.store)
        self.advisory = AdvisoryGenerator()
        self.charts = ChartFeed()

        self.dispatcher = FanoutDispatcher(self.store)
        self.dispatcher.register("display", self.display)
        self.dispatcher.register("converter", self.converter)
        self.dispatcher.register("advisory", self.advisory, active_only=True)
        self.dispatcher.register("charts", self.charts)

        self.reconciler = TickReconciler(self.store, self.dispatcher)
        self.refresher = ReferenceRefresher(
            self.store,
            history_source,
            clock or AsyncioClock(),
            on_chart=self.charts.publish,
            on_advisory=self.advisory.update,
            interval=refresh_interval,
        )
        self._started = False

    async def start(self) -> None:
        """Load the exchange rate, open the tick feed, then run the first refresh."""
        if self._started:
            return
        if self._rates is not None:
            await load_exchange_rate(self.store, self._rates)
        await self._ticks.start(self.reconciler.handle)
        await self.refresher.start()
        self._started = True
        logger.info("Market aggregator started (active=%s)", self.store.active_asset.value)

    async def select(self, asset: Asset) -> bool:
        """Switch the asset shown in the main chart and advisory."""
        return await self.refresher.select(asset)

    async def stop(self) -> None:
        """Stop the timer and the feed, then close the history source. Safe to call multiple times."""
        await self.refresher.stop()
        await self._ticks.stop()
        await self._history.aclose()
        self._started = False
        logger.info("Market aggregator stopped")
