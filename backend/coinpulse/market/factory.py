"""Factory for creating market data sources."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .interface import HistorySource, RateSource, TickSource
from .models import Asset

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class MarketSources:
    ticks: TickSource
    history: HistorySource
    rates: RateSource | None = None


def create_market_sources() -> MarketSources:
    """Create the tick, history and rate sources from environment variables.

    - MARKET_SIMULATOR truthy → GBM simulator for ticks and history, no rate
      source (the store keeps its fallback rate)
    - Otherwise → Binance ticker stream, plus:
      - MASSIVE_API_KEY set and non-empty → Massive aggregates for history
      - Otherwise → Binance klines for history

    Returns unstarted sources. The MarketAggregator starts them.
    """
    if os.environ.get("MARKET_SIMULATOR", "").strip().lower() in _TRUTHY:
        from .simulator import GBMSimulator, SimulatorHistorySource, SimulatorTickSource

        logger.info("Market data source: GBM Simulator")
        simulator = GBMSimulator(tickers=[asset.value for asset in Asset])
        return MarketSources(
            ticks=SimulatorTickSource(simulator),
            history=SimulatorHistorySource(simulator),
        )

    from .binance_client import BinanceTickSource
    from .exchange_rate import ExchangeRateSource

    logger.info("Market data source: Binance ticker stream")
    return MarketSources(
        ticks=BinanceTickSource(),
        history=create_history_source(),
        rates=ExchangeRateSource(),
    )


def create_history_source() -> HistorySource:
    """Massive aggregates when MASSIVE_API_KEY is set, Binance klines otherwise."""
    api_key = os.environ.get("MASSIVE_API_KEY", "").strip()

    if api_key:
        from .massive_client import MassiveHistorySource

        logger.info("History source: Massive API")
        return MassiveHistorySource(api_key=api_key)
    else:
        from .binance_client import BinanceHistorySource

        logger.info("History source: Binance klines")
        return BinanceHistorySource()
