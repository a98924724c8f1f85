"""Chart data handed to the rendering layer."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from .models import Asset, HistorySample, UpdateEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ChartSeries:
    """Close prices for one asset, oldest first, plus the markers the main
    chart draws (session high and low)."""

    asset: Asset
    timestamps: np.ndarray  # Unix seconds
    closes: np.ndarray

    @classmethod
    def from_samples(cls, asset: Asset, samples: Sequence[HistorySample]) -> ChartSeries:
        return cls(
            asset=asset,
            timestamps=np.array([s.timestamp for s in samples], dtype=np.float64),
            closes=np.array([s.close for s in samples], dtype=np.float64),
        )

    def __len__(self) -> int:
        return len(self.closes)

    @property
    def high(self) -> float:
        return float(self.closes.max())

    @property
    def high_index(self) -> int:
        """Index of the first occurrence of the high."""
        return int(self.closes.argmax())

    @property
    def low(self) -> float:
        return float(self.closes.min())

    @property
    def low_index(self) -> int:
        return int(self.closes.argmin())

    @property
    def is_up(self) -> bool:
        """Trend colour for the mini chart: last close at or above the first."""
        return bool(self.closes[-1] >= self.closes[0])

    def to_dict(self) -> dict:
        return {
            "asset": self.asset.value,
            "timestamps": self.timestamps.tolist(),
            "closes": self.closes.tolist(),
            "high": {"index": self.high_index, "value": self.high},
            "low": {"index": self.low_index, "value": self.low},
            "trend": "up" if self.is_up else "down",
        }


class ChartFeed:
    """Latest chart series per asset plus the live price from the push feed.

    `publish` is wired to the ReferenceRefresher; calling the instance with an
    UpdateEvent makes it a fan-out consumer.
    """

    def __init__(self) -> None:
        self.mini: dict[Asset, ChartSeries] = {}
        self.main: ChartSeries | None = None
        self.live_price: dict[Asset, float] = {}

    def publish(self, series: ChartSeries, main: bool) -> None:
        if len(series) == 0:
            return
        if main:
            self.main = series
            logger.debug("Main chart updated: %s, %d points", series.asset.value, len(series))
        else:
            self.mini[series.asset] = series

    def __call__(self, event: UpdateEvent) -> None:
        self.live_price[event.asset] = event.price
