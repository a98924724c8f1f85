"""Tests for TickReconciler."""

import math

import pytest

from coinpulse.market.dispatcher import FanoutDispatcher
from coinpulse.market.models import Asset, Tick
from coinpulse.market.reconciler import TickReconciler


def _tick(price: float, change_24h: float = 2.5, asset: Asset = Asset.BTC) -> Tick:
    return Tick(asset=asset, price=price, change_24h=change_24h, timestamp=1_700_000_000.0)


class TestTickReconciler:
    """Unit tests for the TickReconciler."""

    def test_updates_store(self, store):
        reconciler = TickReconciler(store)
        reconciler.handle(_tick(120.0, 2.5))
        view = store.get(Asset.BTC)
        assert view.current_price == 120.0
        assert view.change_24h == 2.5

    def test_change_1h_from_anchor(self, store):
        """Tick at 120 against a 115 anchor is a ~4.347826% move."""
        store.set_anchors(Asset.BTC, 115.0, 0.0)
        event = TickReconciler(store).handle(_tick(120.0, 2.5))
        assert event.change_1h == pytest.approx(4.347826, abs=1e-6)
        assert event.change_1h == pytest.approx((120.0 - 115.0) / 115.0 * 100, abs=1e-9)

    @pytest.mark.parametrize("price", [0.5, 99.0, 115.0, 250.0, 67123.45])
    def test_change_formula_exact(self, store, price):
        store.set_anchors(Asset.BTC, 115.0, 103.0)
        event = TickReconciler(store).handle(_tick(price))
        assert event.change_1h == pytest.approx((price - 115.0) / 115.0 * 100, abs=1e-9)
        assert event.change_4h == pytest.approx((price - 103.0) / 103.0 * 100, abs=1e-9)

    def test_missing_anchor_is_unavailable(self, store):
        """Test that zero anchors report None rather than 0 or NaN."""
        event = TickReconciler(store).handle(_tick(120.0))
        assert event.change_1h is None
        assert event.change_4h is None

    def test_event_carries_tick_fields(self, store):
        event = TickReconciler(store).handle(_tick(120.0, -3.0, Asset.ETH))
        assert event.asset is Asset.ETH
        assert event.price == 120.0
        assert event.change_24h == -3.0
        assert event.timestamp == 1_700_000_000.0

    @pytest.mark.parametrize("price", [0.0, -1.0, math.nan, math.inf])
    def test_invalid_price_discarded(self, store, price):
        """Test that a non-positive price leaves the store alone and emits nothing."""
        store.set_current(Asset.BTC, 100.0, 1.0)
        received = []
        dispatcher = FanoutDispatcher(store)
        dispatcher.register("probe", received.append)
        reconciler = TickReconciler(store, dispatcher)

        assert reconciler.handle(_tick(price)) is None
        assert store.get(Asset.BTC).current_price == 100.0
        assert received == []
        assert reconciler.discarded == 1

    def test_non_finite_change_discarded(self, store):
        reconciler = TickReconciler(store)
        assert reconciler.handle(_tick(100.0, math.nan)) is None
        assert store.get(Asset.BTC).current_price == 0

    def test_untracked_asset_discarded(self):
        from coinpulse.market.store import AssetStore

        store = AssetStore(assets=(Asset.BTC,))
        assert TickReconciler(store).handle(_tick(100.0, asset=Asset.ETH)) is None

    def test_dispatches_once_per_tick(self, store):
        received = []
        dispatcher = FanoutDispatcher(store)
        dispatcher.register("probe", received.append)
        reconciler = TickReconciler(store, dispatcher)

        event = reconciler.handle(_tick(120.0))
        assert received == [event]
        assert reconciler.accepted == 1

    def test_consumers_see_consistent_store(self, store):
        """Test that consumers read the same price the event carries."""
        seen = []
        dispatcher = FanoutDispatcher(store)
        dispatcher.register("a", lambda e: seen.append(store.get(e.asset).current_price))
        dispatcher.register("b", lambda e: seen.append(store.get(e.asset).current_price))
        TickReconciler(store, dispatcher).handle(_tick(42.0))
        assert seen == [42.0, 42.0]

    def test_anchor_refresh_between_ticks(self, store):
        """Test that new anchors apply from the next tick on."""
        reconciler = TickReconciler(store)
        store.set_anchors(Asset.BTC, 100.0, 100.0)
        first = reconciler.handle(_tick(110.0))
        store.set_anchors(Asset.BTC, 110.0, 100.0)
        second = reconciler.handle(_tick(110.0))
        assert first.change_1h == pytest.approx(10.0)
        assert second.change_1h == pytest.approx(0.0)
