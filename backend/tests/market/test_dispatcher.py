"""Tests for FanoutDispatcher."""

import pytest

from coinpulse.market.consumers import Converter
from coinpulse.market.dispatcher import FanoutDispatcher
from coinpulse.market.exceptions import ConsumerFailure
from coinpulse.market.models import Asset, UpdateEvent


def _event(asset: Asset = Asset.BTC, price: float = 100.0) -> UpdateEvent:
    return UpdateEvent(asset, price, 1.0, None, None, timestamp=1.0)


class TestFanoutDispatcher:
    """Unit tests for the FanoutDispatcher."""

    def test_registration_order(self, store):
        calls = []
        dispatcher = FanoutDispatcher(store)
        for name in ("display", "converter", "charts"):
            dispatcher.register(name, lambda e, n=name: calls.append(n))
        dispatcher.dispatch(_event())
        assert calls == ["display", "converter", "charts"]
        assert dispatcher.consumers == ["display", "converter", "charts"]

    def test_duplicate_name_rejected(self, store):
        dispatcher = FanoutDispatcher(store)
        dispatcher.register("display", lambda e: None)
        with pytest.raises(ValueError):
            dispatcher.register("display", lambda e: None)

    def test_active_only_filter(self, store):
        """Test that active-only consumers skip events for other assets."""
        seen = []
        dispatcher = FanoutDispatcher(store)
        dispatcher.register("advisory", lambda e: seen.append(e.asset), active_only=True)

        dispatcher.dispatch(_event(Asset.ETH))
        assert seen == []
        dispatcher.dispatch(_event(Asset.BTC))
        assert seen == [Asset.BTC]

        store.select(Asset.ETH)
        dispatcher.dispatch(_event(Asset.ETH))
        assert seen == [Asset.BTC, Asset.ETH]

    def test_failure_isolated(self, store):
        """Test that a throwing advisory does not stop the converter."""
        store.set_current(Asset.BTC, 100.0, 1.0)
        converter = Converter(store, amount=2.0, asset=Asset.BTC)

        def broken_advisory(event):
            raise RuntimeError("renderer exploded")

        dispatcher = FanoutDispatcher(store)
        dispatcher.register("advisory", broken_advisory)
        dispatcher.register("converter", converter)

        failures = dispatcher.dispatch(_event(Asset.BTC, 100.0))

        assert converter.result is not None
        assert converter.result.usd == 200.0
        assert converter.result.local == pytest.approx(200.0 * store.exchange_rate)
        assert len(failures) == 1
        assert isinstance(failures[0], ConsumerFailure)
        assert failures[0].consumer == "advisory"
        assert isinstance(failures[0].error, RuntimeError)

    def test_unregister(self, store):
        calls = []
        dispatcher = FanoutDispatcher(store)
        dispatcher.register("probe", calls.append)
        dispatcher.unregister("probe")
        dispatcher.unregister("missing")  # Should not raise
        dispatcher.dispatch(_event())
        assert calls == []

    def test_no_failures_returns_empty(self, store):
        dispatcher = FanoutDispatcher(store)
        dispatcher.register("noop", lambda e: None)
        assert dispatcher.dispatch(_event()) == []
