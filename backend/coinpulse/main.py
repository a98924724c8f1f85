"""FastAPI application: market aggregator lifecycle plus the dashboard API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request

from .market import Asset, MarketAggregator, create_market_sources, create_stream_router
from .market.consumers import convert as convert_amount

logger = logging.getLogger(__name__)


def create_app(aggregator: MarketAggregator | None = None) -> FastAPI:
    """Create the application.

    Without an explicit aggregator, sources come from create_market_sources()
    (environment-driven). The aggregator starts and stops with the app.
    """
    if aggregator is None:
        sources = create_market_sources()
        aggregator = MarketAggregator(sources.ticks, sources.history, sources.rates)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting market aggregator")
        await aggregator.start()
        try:
            yield
        finally:
            await aggregator.stop()

    app = FastAPI(title="CoinPulse", lifespan=lifespan)
    app.state.aggregator = aggregator
    app.include_router(create_stream_router(aggregator.store))

    @app.post("/api/market/active/{symbol}")
    async def select_asset(symbol: str, request: Request) -> dict:
        """Switch the asset shown in the main chart and advisory."""
        try:
            asset = Asset.from_symbol(symbol)
        except ValueError:
            raise HTTPException(status_code=404, detail=f"Unknown asset: {symbol}")
        changed = await request.app.state.aggregator.select(asset)
        return {"active": asset.value, "changed": changed}

    @app.get("/api/market/advisory")
    async def get_advisory(request: Request) -> dict:
        advisory = request.app.state.aggregator.advisory.current
        if advisory is None:
            return {"asset": None, "sentiment": None, "text": None}
        return {"asset": advisory.asset.value, "sentiment": advisory.sentiment, "text": advisory.text}

    @app.get("/api/market/convert")
    async def convert(request: Request, amount: float = 1.0, symbol: str = "BTC") -> dict:
        try:
            asset = Asset.from_symbol(symbol)
        except ValueError:
            raise HTTPException(status_code=404, detail=f"Unknown asset: {symbol}")
        try:
            result = convert_amount(request.app.state.aggregator.store, amount, asset)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        if result is None:
            raise HTTPException(status_code=503, detail=f"No price for {asset.value} yet")
        return {"asset": asset.value, "amount": amount, "usd": result.usd, "local": result.local}

    return app
