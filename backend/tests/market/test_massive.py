"""Tests for MassiveHistorySource (mocked)."""

from unittest.mock import MagicMock, patch

import pytest

from coinpulse.market.exceptions import FetchFailure
from coinpulse.market.massive_client import MassiveHistorySource
from coinpulse.market.models import Asset


def _make_agg(close: float, timestamp_ms: int) -> MagicMock:
    """Create a mock Massive aggregate bar."""
    agg = MagicMock()
    agg.close = close
    agg.timestamp = timestamp_ms
    return agg


@pytest.mark.asyncio
class TestMassiveHistorySource:
    """Unit tests for MassiveHistorySource with a mocked REST client."""

    async def test_fetch_converts_aggregates(self):
        source = MassiveHistorySource(api_key="test-key")
        source._client = MagicMock()
        source._client.get_aggs.return_value = [
            _make_agg(67000.0 + i, 1707580800000 + i * 900_000) for i in range(20)
        ]

        samples = await source.fetch_history(Asset.BTC, "15m", 100)

        assert len(samples) == 20
        assert samples[0].timestamp == 1707580800.0  # Converted to seconds
        assert samples[-1].close == 67019.0

        kwargs = source._client.get_aggs.call_args.kwargs
        assert kwargs["ticker"] == "X:BTCUSD"
        assert kwargs["multiplier"] == 15
        assert kwargs["timespan"] == "minute"
        assert (kwargs["to"] - kwargs["from_"]).total_seconds() == 100 * 15 * 60

    async def test_keeps_newest_limit_samples(self):
        source = MassiveHistorySource(api_key="test-key")
        source._client = MagicMock()
        source._client.get_aggs.return_value = [_make_agg(float(i), i * 900_000) for i in range(30)]

        samples = await source.fetch_history(Asset.ETH, "15m", 10)

        assert [s.close for s in samples] == [float(i) for i in range(20, 30)]

    async def test_malformed_aggregate_skipped(self):
        source = MassiveHistorySource(api_key="test-key")
        source._client = MagicMock()
        bad = MagicMock()
        bad.timestamp = None  # Will cause TypeError
        source._client.get_aggs.return_value = [_make_agg(1.0, 0), bad, _make_agg(2.0, 900_000)]

        samples = await source.fetch_history(Asset.BTC)

        assert [s.close for s in samples] == [1.0, 2.0]

    async def test_api_error_is_fetch_failure(self):
        source = MassiveHistorySource(api_key="test-key")
        source._client = MagicMock()
        source._client.get_aggs.side_effect = Exception("401 unauthorized")

        with pytest.raises(FetchFailure):
            await source.fetch_history(Asset.BTC)

    async def test_client_created_lazily(self):
        source = MassiveHistorySource(api_key="test-key-123")
        with patch("massive.RESTClient") as rest_client:
            rest_client.return_value.get_aggs.return_value = []
            await source.fetch_history(Asset.BTC)

        rest_client.assert_called_once_with(api_key="test-key-123")

    async def test_bad_interval(self):
        source = MassiveHistorySource(api_key="test-key")
        with pytest.raises(ValueError):
            await source.fetch_history(Asset.BTC, "fortnight")
