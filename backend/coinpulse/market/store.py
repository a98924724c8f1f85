"""In-memory asset state store."""

from __future__ import annotations

import math

from .exceptions import InvalidPrice
from .models import Asset, AssetState, AssetView

# Used when the exchange-rate source is unreachable at startup
DEFAULT_EXCHANGE_RATE = 7.2


class AssetStore:
    """Latest price, 24h change and reference anchors for each tracked asset.

    Writers: TickReconciler (current price / 24h change) and
    ReferenceRefresher (anchors). Readers get frozen AssetView snapshots.

    Everything runs on one event loop, so there is no lock: a write and the
    reads that follow it in the same tick pass are never interleaved.
    """

    def __init__(
        self,
        assets: tuple[Asset, ...] = tuple(Asset),
        active_asset: Asset = Asset.BTC,
        exchange_rate: float = DEFAULT_EXCHANGE_RATE,
    ) -> None:
        self._states: dict[Asset, AssetState] = {asset: AssetState() for asset in assets}
        if active_asset not in self._states:
            raise ValueError(f"active asset {active_asset} is not tracked")
        self._active = active_asset
        self._exchange_rate = exchange_rate
        self._version: int = 0  # Monotonically increasing; bumped on every write

    def get(self, asset: Asset) -> AssetView:
        """Read-only snapshot for one asset. KeyError if it is not tracked."""
        state = self._states[asset]
        return AssetView(
            asset=asset,
            current_price=state.current_price,
            change_24h=state.change_24h,
            anchor_1h=state.anchor_1h,
            anchor_4h=state.anchor_4h,
        )

    def get_all(self) -> dict[Asset, AssetView]:
        """Snapshot of every tracked asset."""
        return {asset: self.get(asset) for asset in self._states}

    def set_current(self, asset: Asset, price: float, change_24h: float) -> None:
        """Record the latest price and 24h percent change for an asset."""
        _check_price(price, "price")
        state = self._states[asset]
        state.current_price = price
        state.change_24h = change_24h
        self._version += 1

    def set_anchors(self, asset: Asset, anchor_1h: float, anchor_4h: float) -> None:
        """Record reference prices. 0 leaves the horizon unestablished."""
        _check_price(anchor_1h, "anchor_1h")
        _check_price(anchor_4h, "anchor_4h")
        state = self._states[asset]
        state.anchor_1h = anchor_1h
        state.anchor_4h = anchor_4h
        self._version += 1

    @property
    def assets(self) -> tuple[Asset, ...]:
        return tuple(self._states)

    @property
    def active_asset(self) -> Asset:
        """Asset whose main chart and advisory are currently shown."""
        return self._active

    def select(self, asset: Asset) -> bool:
        """Make `asset` the active one. Returns True if the selection changed."""
        if asset not in self._states:
            raise KeyError(asset)
        if asset == self._active:
            return False
        self._active = asset
        self._version += 1
        return True

    @property
    def exchange_rate(self) -> float:
        """USD to local currency multiplier."""
        return self._exchange_rate

    @exchange_rate.setter
    def exchange_rate(self, rate: float) -> None:
        _check_price(rate, "exchange_rate")
        if rate == 0:
            raise InvalidPrice("exchange_rate must be positive")
        self._exchange_rate = rate
        self._version += 1

    @property
    def version(self) -> int:
        """Current version counter. Useful for SSE change detection."""
        return self._version

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, asset: object) -> bool:
        return asset in self._states


def _check_price(value: float, name: str) -> None:
    if not math.isfinite(value) or value < 0:
        raise InvalidPrice(f"{name} must be a finite non-negative number, got {value!r}")
