"""Market data subsystem for CoinPulse.

Public API:
    Asset               - The fixed set of tracked assets
    AssetStore          - In-memory per-asset price, 24h change and anchors
    UpdateEvent         - Immutable derived-stats snapshot for one tick
    TickReconciler      - Applies ticks to the store and emits UpdateEvents
    ReferenceRefresher  - Derives 1h / 4h anchors from historical candles
    FanoutDispatcher    - Delivers UpdateEvents to consumers in order
    MarketAggregator    - Wires all of the above to live sources
    create_market_sources - Factory that selects simulator, Binance or Massive
    create_stream_router - FastAPI router factory for SSE endpoint
"""

from .aggregator import MarketAggregator
from .dispatcher import FanoutDispatcher
from .factory import create_market_sources
from .interface import ClockSource, HistorySource, RateSource, TickSource
from .models import Asset, AssetView, HistorySample, Tick, UpdateEvent
from .reconciler import TickReconciler
from .refresher import ReferenceRefresher, derive_anchors
from .store import AssetStore
from .stream import create_stream_router

__all__ = [
    "Asset",
    "AssetStore",
    "AssetView",
    "ClockSource",
    "FanoutDispatcher",
    "HistorySample",
    "HistorySource",
    "MarketAggregator",
    "RateSource",
    "ReferenceRefresher",
    "Tick",
    "TickReconciler",
    "TickSource",
    "UpdateEvent",
    "create_market_sources",
    "create_stream_router",
    "derive_anchors",
]
