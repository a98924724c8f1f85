"""USD to local currency exchange rate."""

from __future__ import annotations

import logging
import os

import httpx

from .exceptions import FetchFailure, InvalidPrice
from .interface import RateSource
from .store import AssetStore

logger = logging.getLogger(__name__)

EXCHANGE_RATE_URL = "https://api.exchangerate-api.com/v4/latest/USD"


class ExchangeRateSource(RateSource):
    """Reads `rates[currency]` from an exchangerate-api style endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        url: str | None = None,
        currency: str = "CNY",
        timeout: float = 10.0,
    ) -> None:
        self._client = client
        self._url = url or os.environ.get("EXCHANGE_RATE_URL", "").strip() or EXCHANGE_RATE_URL
        self._currency = currency
        self._timeout = timeout

    async def fetch_rate(self) -> float:
        if self._client is not None:
            return await self._fetch(self._client)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._fetch(client)

    async def _fetch(self, client: httpx.AsyncClient) -> float:
        try:
            response = await client.get(self._url)
            response.raise_for_status()
            rate = float(response.json()["rates"][self._currency])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise FetchFailure(f"exchange rate USD/{self._currency}: {e!r}") from e
        if rate <= 0:
            raise FetchFailure(f"exchange rate USD/{self._currency} must be positive, got {rate}")
        return rate


async def load_exchange_rate(store: AssetStore, source: RateSource) -> float:
    """Fetch the rate into the store once. Keeps the current value on failure."""
    try:
        store.exchange_rate = await source.fetch_rate()
    except (FetchFailure, InvalidPrice) as e:
        logger.warning("Exchange rate unavailable, using %.4f: %s", store.exchange_rate, e)
    else:
        logger.info("Exchange rate loaded: %.4f", store.exchange_rate)
    return store.exchange_rate
