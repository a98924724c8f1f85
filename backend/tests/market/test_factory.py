"""Tests for market data source factories."""

import os
from unittest.mock import patch

from coinpulse.market.binance_client import BinanceHistorySource, BinanceTickSource
from coinpulse.market.exchange_rate import ExchangeRateSource
from coinpulse.market.factory import create_history_source, create_market_sources
from coinpulse.market.massive_client import MassiveHistorySource
from coinpulse.market.simulator import SimulatorHistorySource, SimulatorTickSource


class TestFactory:
    """Tests for create_market_sources / create_history_source."""

    def test_binance_by_default(self):
        with patch.dict(os.environ, {}, clear=True):
            sources = create_market_sources()

        assert isinstance(sources.ticks, BinanceTickSource)
        assert isinstance(sources.history, BinanceHistorySource)
        assert isinstance(sources.rates, ExchangeRateSource)

    def test_simulator_when_requested(self):
        with patch.dict(os.environ, {"MARKET_SIMULATOR": "true"}, clear=True):
            sources = create_market_sources()

        assert isinstance(sources.ticks, SimulatorTickSource)
        assert isinstance(sources.history, SimulatorHistorySource)
        assert sources.rates is None

    def test_simulator_sources_share_one_simulator(self):
        """Test that history backfills from the same prices the ticks report."""
        with patch.dict(os.environ, {"MARKET_SIMULATOR": "1"}, clear=True):
            sources = create_market_sources()

        assert sources.ticks._sim is sources.history._sim

    def test_simulator_flag_falsy(self):
        with patch.dict(os.environ, {"MARKET_SIMULATOR": "0"}, clear=True):
            sources = create_market_sources()

        assert isinstance(sources.ticks, BinanceTickSource)

    def test_massive_history_when_api_key_set(self):
        with patch.dict(os.environ, {"MASSIVE_API_KEY": "test-key"}, clear=True):
            source = create_history_source()

        assert isinstance(source, MassiveHistorySource)
        assert source._api_key == "test-key"

    def test_binance_history_when_api_key_whitespace(self):
        with patch.dict(os.environ, {"MASSIVE_API_KEY": "   "}, clear=True):
            source = create_history_source()

        assert isinstance(source, BinanceHistorySource)

    def test_live_sources_use_massive_history(self):
        with patch.dict(os.environ, {"MASSIVE_API_KEY": "test-key"}, clear=True):
            sources = create_market_sources()

        assert isinstance(sources.ticks, BinanceTickSource)
        assert isinstance(sources.history, MassiveHistorySource)
