"""Massive (Polygon.io) aggregates as a history source."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from .exceptions import FetchFailure
from .interface import HistorySource
from .models import Asset, HistorySample, parse_interval

logger = logging.getLogger(__name__)


class MassiveHistorySource(HistorySource):
    """HistorySource backed by the Massive REST aggregates endpoint.

    GET /v2/aggs/ticker/X:BTCUSD/range/15/minute/{from}/{to}, covering just
    enough wall-clock time for `limit` candles (crypto trades around the clock).
    """

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key
        self._client: Any = None  # Lazy import to avoid hard dependency

    async def fetch_history(
        self,
        asset: Asset,
        interval: str = "15m",
        limit: int = 100,
    ) -> list[HistorySample]:
        multiplier, timespan, candle_minutes = parse_interval(interval)
        if self._client is None:
            # Lazy import: only import massive when it is the configured source.
            from massive import RESTClient

            self._client = RESTClient(api_key=self._api_key)

        try:
            # The Massive RESTClient is synchronous; run it in a thread to
            # avoid blocking the event loop.
            aggs = await asyncio.to_thread(
                self._fetch_aggs, asset, multiplier, timespan, candle_minutes * limit
            )
        except Exception as e:
            # Common failures: 401 (bad key), 429 (rate limit), network errors.
            raise FetchFailure(f"aggregates for {asset.massive_ticker}: {e}") from e

        samples: list[HistorySample] = []
        for agg in aggs:
            try:
                # Massive timestamps are Unix milliseconds → convert to seconds
                samples.append(HistorySample(timestamp=agg.timestamp / 1000.0, close=float(agg.close)))
            except (AttributeError, TypeError) as e:
                logger.warning("Skipping aggregate for %s: %s", asset.value, e)
        return samples[-limit:]

    def _fetch_aggs(self, asset: Asset, multiplier: int, timespan: str, window_minutes: int) -> list:
        """Synchronous call to the Massive REST API. Runs in a thread."""
        end = datetime.now(timezone.utc)
        start = end - timedelta(minutes=window_minutes)
        return self._client.get_aggs(
            ticker=asset.massive_ticker,
            multiplier=multiplier,
            timespan=timespan,
            from_=start,
            to=end,
            sort="asc",
        )
