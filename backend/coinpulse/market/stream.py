"""SSE streaming endpoint for live asset views."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .store import AssetStore

logger = logging.getLogger(__name__)


def snapshot_payload(store: AssetStore) -> dict:
    """Everything the dashboard needs in one JSON object."""
    return {
        "active": store.active_asset.value,
        "exchange_rate": store.exchange_rate,
        "assets": {asset.value: view.to_dict() for asset, view in store.get_all().items()},
    }


def create_stream_router(store: AssetStore) -> APIRouter:
    """Create the SSE streaming router with a reference to the asset store.

    This factory pattern lets us inject the AssetStore without globals.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.get("/prices")
    async def stream_prices(request: Request) -> StreamingResponse:
        """SSE endpoint for live prices and 1h / 4h / 24h changes.

        The client connects with EventSource and receives events like:

            data: {"active": "BTC", "exchange_rate": 7.2, "assets": {"BTC": {...}, ...}}
        """
        return StreamingResponse(
            _generate_events(store, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    store: AssetStore,
    request: Request,
    interval: float = 0.5,
) -> AsyncGenerator[str, None]:
    """Yield an SSE event whenever the store version moves.

    Stops when the client disconnects (detected via request.is_disconnected()).
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    last_version = -1
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = store.version
            if current_version != last_version:
                last_version = current_version
                yield f"data: {json.dumps(snapshot_payload(store))}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
