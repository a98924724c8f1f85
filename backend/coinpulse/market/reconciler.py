"""Turns push ticks into store writes and UpdateEvents."""

from __future__ import annotations

import logging
import math

from .dispatcher import FanoutDispatcher
from .exceptions import InvalidTick
from .models import Tick, UpdateEvent, percent_change
from .store import AssetStore

logger = logging.getLogger(__name__)


class TickReconciler:
    """Merges each tick with the cached anchors.

    1h / 4h changes are recomputed on every tick from the anchors the
    ReferenceRefresher last wrote, so they move in real time without fetching
    history per tick. Anchors are 15-minute candle closes, so "1h ago" is only
    accurate to within one candle.
    """

    def __init__(self, store: AssetStore, dispatcher: FanoutDispatcher | None = None) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self.accepted = 0
        self.discarded = 0

    def handle(self, tick: Tick) -> UpdateEvent | None:
        """Process one tick. Returns the emitted event, or None if discarded."""
        try:
            self._validate(tick)
        except InvalidTick as e:
            self.discarded += 1
            logger.warning("Discarding tick: %s", e)
            return None

        self._store.set_current(tick.asset, tick.price, tick.change_24h)
        view = self._store.get(tick.asset)

        # Built in full before any consumer runs: every consumer sees the same values
        event = UpdateEvent(
            asset=tick.asset,
            price=tick.price,
            change_24h=tick.change_24h,
            change_1h=percent_change(tick.price, view.anchor_1h),
            change_4h=percent_change(tick.price, view.anchor_4h),
            timestamp=tick.timestamp,
        )
        self.accepted += 1

        if self._dispatcher is not None:
            self._dispatcher.dispatch(event)
        return event

    def _validate(self, tick: Tick) -> None:
        if tick.asset not in self._store:
            raise InvalidTick(f"untracked asset {tick.asset!r}")
        if not math.isfinite(tick.price) or tick.price <= 0:
            raise InvalidTick(f"{tick.asset.value} price must be positive, got {tick.price!r}")
        if not math.isfinite(tick.change_24h):
            raise InvalidTick(f"{tick.asset.value} 24h change is not finite: {tick.change_24h!r}")
