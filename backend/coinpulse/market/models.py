"""Data models for market data."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


class Asset(str, Enum):
    """The fixed set of tracked assets."""

    BTC = "BTC"
    ETH = "ETH"

    @property
    def symbol(self) -> str:
        """Binance trading pair, e.g. 'BTCUSDT'."""
        return f"{self.value}USDT"

    @property
    def stream_name(self) -> str:
        """Binance 24h ticker stream, e.g. 'btcusdt@ticker'."""
        return f"{self.symbol.lower()}@ticker"

    @property
    def massive_ticker(self) -> str:
        """Massive crypto aggregate ticker, e.g. 'X:BTCUSD'."""
        return f"X:{self.value}USD"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_symbol(cls, symbol: str) -> Asset:
        """Resolve a Binance symbol ('BTCUSDT') or bare code ('btc') to an Asset.

        Raises ValueError for anything outside the tracked set.
        """
        code = symbol.upper().strip()
        if code.endswith("USDT"):
            code = code[: -len("USDT")]
        return cls(code)


_DISPLAY_NAMES = {Asset.BTC: "Bitcoin", Asset.ETH: "Ethereum"}


# Binance-style interval suffix -> (Massive timespan, minutes per unit)
_TIMESPANS: dict[str, tuple[str, int]] = {
    "m": ("minute", 1),
    "h": ("hour", 60),
    "d": ("day", 1440),
}


def parse_interval(interval: str) -> tuple[int, str, int]:
    """'15m' -> (15, 'minute', 15): multiplier, timespan, minutes per candle."""
    try:
        multiplier = int(interval[:-1])
        timespan, unit_minutes = _TIMESPANS[interval[-1]]
    except (ValueError, KeyError, IndexError) as e:
        raise ValueError(f"unsupported candle interval {interval!r}") from e
    if multiplier <= 0:
        raise ValueError(f"unsupported candle interval {interval!r}")
    return multiplier, timespan, multiplier * unit_minutes


def percent_change(price: float, anchor: float) -> float | None:
    """Percent move from anchor to price, or None while either side is unknown."""
    if anchor <= 0 or price <= 0:
        return None
    return (price - anchor) / anchor * 100


@dataclass(slots=True)
class AssetState:
    """Mutable per-asset state. Owned by AssetStore; never handed out directly."""

    current_price: float = 0.0  # 0 = no data yet
    change_24h: float = 0.0
    anchor_1h: float = 0.0  # 0 = not yet established
    anchor_4h: float = 0.0


@dataclass(frozen=True, slots=True)
class AssetView:
    """Read-only snapshot of one asset's state at a point in time."""

    asset: Asset
    current_price: float
    change_24h: float
    anchor_1h: float
    anchor_4h: float

    @property
    def has_price(self) -> bool:
        return self.current_price > 0

    @property
    def change_1h(self) -> float | None:
        return percent_change(self.current_price, self.anchor_1h)

    @property
    def change_4h(self) -> float | None:
        return percent_change(self.current_price, self.anchor_4h)

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "asset": self.asset.value,
            "price": self.current_price,
            "change_24h": self.change_24h if self.has_price else None,
            "change_1h": self.change_1h,
            "change_4h": self.change_4h,
        }


@dataclass(frozen=True, slots=True)
class Tick:
    """One push-delivered price / 24h change update for one asset."""

    asset: Asset
    price: float
    change_24h: float
    timestamp: float = field(default_factory=time.time)  # Unix seconds


@dataclass(frozen=True, slots=True)
class HistorySample:
    """One historical candle reduced to what the refresher needs."""

    timestamp: float  # Unix seconds, candle open time
    close: float


@dataclass(frozen=True, slots=True)
class UpdateEvent:
    """Derived statistics for one accepted tick.

    change_1h / change_4h are None when the matching anchor is not established.
    """

    asset: Asset
    price: float
    change_24h: float
    change_1h: float | None
    change_4h: float | None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "asset": self.asset.value,
            "price": self.price,
            "change_24h": self.change_24h,
            "change_1h": self.change_1h,
            "change_4h": self.change_4h,
            "timestamp": self.timestamp,
        }
