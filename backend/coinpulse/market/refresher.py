"""Reference price refresh from historical candles."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from .charts import ChartSeries
from .exceptions import InvalidPrice
from .interface import ClockSource, HistorySource
from .models import Asset, AssetView, HistorySample
from .store import AssetStore

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 60.0  # seconds
CANDLE_INTERVAL = "15m"
CANDLE_LIMIT = 100

# Anchors are looked up by position, not timestamp: with 15-minute candles,
# 4 candles back is ~1h ago and 16 back is ~4h ago.
ONE_HOUR_OFFSET = 4
FOUR_HOUR_OFFSET = 16

ChartCallback = Callable[[ChartSeries, bool], object]
AdvisoryCallback = Callable[[AssetView], object]


def derive_anchors(samples: Sequence[HistorySample]) -> tuple[float, float]:
    """Return (anchor_1h, anchor_4h) from an oldest-to-newest snapshot.

    A horizon whose window is not fully covered by the snapshot comes back
    as 0 instead of being computed from a partial window.

    >>> closes = [HistorySample(timestamp=i * 900, close=100 + i) for i in range(20)]
    >>> derive_anchors(closes)
    (115, 103)
    """
    n = len(samples)
    anchor_1h = samples[-(ONE_HOUR_OFFSET + 1)].close if n > ONE_HOUR_OFFSET else 0.0
    anchor_4h = samples[-(FOUR_HOUR_OFFSET + 1)].close if n > FOUR_HOUR_OFFSET else 0.0
    return anchor_1h, anchor_4h


class ReferenceRefresher:
    """Keeps the store's 1h / 4h anchors fresh.

    Every cycle fetches history for all tracked assets, so anchors stay fresh
    for the inactive asset too; only the main chart and the advisory follow
    the active asset. Whether a result is "active" is decided when its fetch
    completes, so a fetch that outlives a selection change still writes its
    anchors but no longer drives the main chart.
    """

    def __init__(
        self,
        store: AssetStore,
        source: HistorySource,
        clock: ClockSource,
        on_chart: ChartCallback | None = None,
        on_advisory: AdvisoryCallback | None = None,
        interval: float = REFRESH_INTERVAL,
        candle_interval: str = CANDLE_INTERVAL,
        limit: int = CANDLE_LIMIT,
    ) -> None:
        self._store = store
        self._source = source
        self._clock = clock
        self._on_chart = on_chart
        self._on_advisory = on_advisory
        self._interval = interval
        self._candle_interval = candle_interval
        self._limit = limit
        self.last_refresh: dict[Asset, float] = {}

    async def start(self) -> None:
        """Refresh once now, then on every clock interval."""
        await self.refresh_all()
        await self._clock.start(self._interval, self.refresh_all)
        logger.info("Reference refresher started: %.1fs interval", self._interval)

    async def stop(self) -> None:
        await self._clock.stop()
        logger.info("Reference refresher stopped")

    async def select(self, asset: Asset) -> bool:
        """Switch the active asset and refresh immediately.

        Returns False (and does nothing) if `asset` is already active.
        """
        if not self._store.select(asset):
            return False
        logger.info("Active asset changed to %s", asset.value)
        self._signal_advisory(asset)
        await self.refresh_all()
        return True

    async def refresh_all(self) -> int:
        """One refresh cycle over every tracked asset. Returns the number refreshed."""
        refreshed = 0
        for asset in self._store.assets:
            if await self.refresh(asset):
                refreshed += 1
        logger.debug("Refresh cycle: %d/%d assets", refreshed, len(self._store))
        return refreshed

    async def refresh(self, asset: Asset) -> bool:
        """Fetch history for one asset and rewrite its anchors.

        On any failure the previous anchors stay in place.
        """
        try:
            samples = await self._source.fetch_history(asset, self._candle_interval, self._limit)
        except Exception as e:
            logger.warning("History fetch for %s failed, keeping previous anchors: %s", asset.value, e)
            return False

        if not samples:
            logger.warning("Empty history for %s, keeping previous anchors", asset.value)
            return False

        anchor_1h, anchor_4h = derive_anchors(samples)
        previous = self._store.get(asset)
        try:
            # A horizon the snapshot cannot cover keeps whatever it had before
            self._store.set_anchors(
                asset,
                anchor_1h or previous.anchor_1h,
                anchor_4h or previous.anchor_4h,
            )
        except InvalidPrice as e:
            logger.warning("Rejected anchors for %s: %s", asset.value, e)
            return False

        self.last_refresh[asset] = time.time()
        logger.debug(
            "Anchors for %s: 1h=%s 4h=%s (%d samples)",
            asset.value,
            anchor_1h,
            anchor_4h,
            len(samples),
        )
        self._publish(asset, samples)
        return True

    def _publish(self, asset: Asset, samples: Sequence[HistorySample]) -> None:
        is_active = asset == self._store.active_asset
        if self._on_chart is not None:
            series = ChartSeries.from_samples(asset, samples)
            try:
                self._on_chart(series, False)
                if is_active:
                    self._on_chart(series, True)
            except Exception:
                logger.exception("Chart update for %s failed", asset.value)
        if is_active:
            self._signal_advisory(asset)

    def _signal_advisory(self, asset: Asset) -> None:
        if self._on_advisory is None:
            return
        try:
            self._on_advisory(self._store.get(asset))
        except Exception:
            logger.exception("Advisory update for %s failed", asset.value)
