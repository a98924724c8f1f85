"""Binance public market data: websocket ticker stream and REST klines."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import httpx
import websockets

from .exceptions import FetchFailure, InvalidTick
from .interface import HistorySource, TickHandler, TickSource
from .models import Asset, HistorySample, Tick

logger = logging.getLogger(__name__)

BINANCE_WS_URL = "wss://stream.binance.com:9443/stream"
BINANCE_API_URL = "https://api.binance.com/api/v3"


def parse_ticker_message(raw: str | bytes | dict[str, Any]) -> Tick:
    """Parse a 24h ticker payload into a Tick.

    Accepts both the raw stream format and the combined-stream envelope
    ({"stream": ..., "data": {...}}). Fields used: s (symbol), c (last price),
    P (24h percent change), E (event time, ms).
    """
    try:
        message = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        data = message.get("data", message)
        event_time = data.get("E")
        return Tick(
            asset=Asset.from_symbol(data["s"]),
            price=float(data["c"]),
            change_24h=float(data["P"]),
            timestamp=event_time / 1000.0 if event_time else time.time(),
        )
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise InvalidTick(f"malformed ticker message: {e!r}") from e


def parse_kline(row: list[Any]) -> HistorySample:
    """[open_time_ms, open, high, low, close, ...] -> HistorySample."""
    return HistorySample(timestamp=int(row[0]) / 1000.0, close=float(row[4]))


class BinanceTickSource(TickSource):
    """TickSource backed by the Binance combined 24h ticker stream.

    One connection carries every tracked asset. On disconnect the source
    waits `reconnect_delay` seconds and reconnects; messages missed in
    between are not replayed.
    """

    def __init__(
        self,
        assets: tuple[Asset, ...] = tuple(Asset),
        base_url: str = BINANCE_WS_URL,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._assets = assets
        self._base_url = base_url
        self._reconnect_delay = reconnect_delay
        self._handler: TickHandler | None = None
        self._task: asyncio.Task | None = None
        self.malformed = 0

    @property
    def url(self) -> str:
        return f"{self._base_url}?streams=" + "/".join(a.stream_name for a in self._assets)

    async def start(self, handler: TickHandler) -> None:
        self._handler = handler
        self._task = asyncio.create_task(self._run_loop(), name="binance-ticker")
        logger.info("Binance ticker stream started: %s", ", ".join(a.value for a in self._assets))

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Binance ticker stream stopped")

    # --- Internal ---

    async def _run_loop(self) -> None:
        while True:
            try:
                async with websockets.connect(self.url, ping_interval=20, ping_timeout=20) as ws:
                    logger.info("Connected to %s", self.url)
                    async for raw in ws:
                        self._on_message(raw)
            except Exception as e:
                # Common failures: ConnectionClosed, DNS / socket errors, handshake rejects
                logger.warning(
                    "Binance stream dropped: %s; reconnecting in %.1fs",
                    e,
                    self._reconnect_delay,
                )
            await asyncio.sleep(self._reconnect_delay)

    def _on_message(self, raw: str | bytes) -> None:
        try:
            tick = parse_ticker_message(raw)
        except InvalidTick as e:
            self.malformed += 1
            logger.warning("Skipping ticker message: %s", e)
            return
        if self._handler is None:
            return
        try:
            self._handler(tick)
        except Exception:
            logger.exception("Tick handler failed for %s", tick.asset.value)


class BinanceHistorySource(HistorySource):
    """HistorySource backed by GET /api/v3/klines."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = BINANCE_API_URL,
        timeout: float = 10.0,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._base_url = base_url.rstrip("/")

    async def fetch_history(
        self,
        asset: Asset,
        interval: str = "15m",
        limit: int = 100,
    ) -> list[HistorySample]:
        try:
            response = await self._client.get(
                f"{self._base_url}/klines",
                params={"symbol": asset.symbol, "interval": interval, "limit": limit},
            )
            response.raise_for_status()
            rows = response.json()
            if not isinstance(rows, list):
                raise TypeError(f"expected a list of klines, got {type(rows).__name__}")
            return [parse_kline(row) for row in rows]
        except (httpx.HTTPError, ValueError, TypeError, IndexError) as e:
            raise FetchFailure(f"klines for {asset.symbol}: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
