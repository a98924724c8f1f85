"""Built-in UpdateEvent consumers: display text, currency conversion, advisory."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .models import Asset, AssetView, UpdateEvent
from .store import AssetStore

logger = logging.getLogger(__name__)

UNAVAILABLE = "--"


def format_price(price: float) -> str:
    """Thousands separators, two decimals: 67123.4 -> '67,123.40'."""
    return f"{price:,.2f}"


def format_change(value: float | None) -> tuple[str, str]:
    """Return (text, direction) for a percent change, e.g. ('+4.35%', 'up')."""
    if value is None:
        return UNAVAILABLE, "flat"
    text = f"{value:.2f}"
    if float(text) > 0:
        text = "+" + text
    return f"{text}%", "up" if value >= 0 else "down"


@dataclass(frozen=True, slots=True)
class DisplayRow:
    asset: Asset
    price: str
    change_1h: tuple[str, str]
    change_4h: tuple[str, str]
    change_24h: tuple[str, str]


class DisplayFormatter:
    """Keeps the latest formatted price and stats row per asset."""

    def __init__(self) -> None:
        self.rows: dict[Asset, DisplayRow] = {}

    def __call__(self, event: UpdateEvent) -> DisplayRow:
        row = DisplayRow(
            asset=event.asset,
            price=format_price(event.price),
            change_1h=format_change(event.change_1h),
            change_4h=format_change(event.change_4h),
            change_24h=format_change(event.change_24h),
        )
        self.rows[event.asset] = row
        return row


@dataclass(frozen=True, slots=True)
class Conversion:
    asset: Asset
    amount: float
    usd: float
    local: float

    @property
    def usd_text(self) -> str:
        return "$" + format_price(self.usd)

    @property
    def local_text(self) -> str:
        return "¥" + format_price(self.local)


def convert(store: AssetStore, amount: float, asset: Asset) -> Conversion | None:
    """Value `amount` of `asset` in USD and local currency. None while the price is unknown.

    Raises ValueError for a negative or non-finite amount.
    """
    if not math.isfinite(amount) or amount < 0:
        raise ValueError(f"amount must be a finite non-negative number, got {amount}")
    price = store.get(asset).current_price
    if price == 0:
        return None
    usd = amount * price
    return Conversion(asset=asset, amount=amount, usd=usd, local=usd * store.exchange_rate)


class Converter:
    """Converts an amount of one asset to USD and local currency.

    Recomputed on every UpdateEvent (any asset: the rate or the selected
    source asset's price may be what moved) and whenever the input changes.
    """

    def __init__(self, store: AssetStore, amount: float = 1.0, asset: Asset = Asset.BTC) -> None:
        self._store = store
        self.amount = amount
        self.asset = asset
        self.result: Conversion | None = None

    def set_input(self, amount: float, asset: Asset | None = None) -> Conversion | None:
        """Change the input. A rejected amount (ValueError) leaves the input untouched."""
        asset = asset or self.asset
        result = convert(self._store, amount, asset)
        self.amount = amount
        self.asset = asset
        if result is not None:
            self.result = result
        return result

    def recompute(self) -> Conversion | None:
        """Returns None (keeping the previous result) while the price is unknown."""
        result = convert(self._store, self.amount, self.asset)
        if result is not None:
            self.result = result
        return result

    def __call__(self, event: UpdateEvent) -> Conversion | None:
        return self.recompute()


@dataclass(frozen=True, slots=True)
class Advisory:
    asset: Asset
    sentiment: str
    text: str


def advise(asset: Asset, price: float, change_24h: float) -> Advisory | None:
    """Market commentary from price and 24h change. None while price is unknown."""
    if price == 0:
        return None
    name = asset.display_name
    if change_24h > 5:
        return Advisory(
            asset,
            "Extreme greed",
            f"{name} is rallying hard ({change_24h:+.2f}%). A pullback is likely in the "
            "short term; consider taking profit in stages rather than chasing the move.",
        )
    if change_24h > 0:
        return Advisory(
            asset,
            "Optimistic",
            f"{name} is in a mild uptrend ({change_24h:+.2f}%). Holders can keep holding; "
            "newcomers may wait for a dip to enter.",
        )
    if change_24h > -5:
        return Advisory(
            asset,
            "Cautious",
            f"{name} is consolidating ({change_24h:.2f}%). Watch support levels; "
            "this can be a reasonable window for dollar-cost averaging.",
        )
    return Advisory(
        asset,
        "Fear",
        f"{name} is down sharply ({change_24h:.2f}%) and panic is spreading. Avoid panic "
        "selling; long-term investors may accumulate gradually.",
    )


class AdvisoryGenerator:
    """Holds the advisory for the active asset."""

    def __init__(self) -> None:
        self.current: Advisory | None = None

    def update(self, view: AssetView) -> Advisory | None:
        """Recompute for `view`. Clears advice left over from another asset when
        `view` has no price yet."""
        advisory = advise(view.asset, view.current_price, view.change_24h)
        if advisory is None and self.current is not None and self.current.asset != view.asset:
            logger.info("Advisory cleared: no price for %s yet", view.asset.value)
            self.current = None
        return self._set(advisory)

    def __call__(self, event: UpdateEvent) -> Advisory | None:
        return self._set(advise(event.asset, event.price, event.change_24h))

    def _set(self, advisory: Advisory | None) -> Advisory | None:
        if advisory is None:
            return None
        previous = self.current
        if previous is None or (previous.asset, previous.sentiment) != (advisory.asset, advisory.sentiment):
            logger.info("Advisory for %s is now %s", advisory.asset.value, advisory.sentiment)
        self.current = advisory
        return advisory
