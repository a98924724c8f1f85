"""GBM-based crypto market simulator."""

from __future__ import annotations

import asyncio
import logging
import math
import random
import time

import numpy as np

from .exceptions import FetchFailure
from .interface import HistorySource, TickHandler, TickSource
from .models import Asset, HistorySample, Tick, parse_interval
from .seed_prices import ASSET_PARAMS, DEFAULT_PARAMS, OPEN_PRICE_SPREAD, PAIR_CORR, SEED_PRICES

logger = logging.getLogger(__name__)


class GBMSimulator:
    """Geometric Brownian Motion simulator for correlated crypto prices.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Where:
        S(t)   = current price
        mu     = annualized drift (expected return)
        sigma  = annualized volatility
        dt     = time step as fraction of a year
        Z      = correlated standard normal random variable

    Crypto trades around the clock, so a year is 365 * 24h of seconds.
    """

    SECONDS_PER_YEAR = 365 * 24 * 3600  # 31,536,000
    DEFAULT_DT = 1.0 / SECONDS_PER_YEAR  # one-second ticks

    def __init__(
        self,
        tickers: list[str],
        dt: float = DEFAULT_DT,
        event_probability: float = 0.001,
    ) -> None:
        self._dt = dt
        self._event_prob = event_probability

        # Per-ticker state
        self._tickers: list[str] = []
        self._prices: dict[str, float] = {}
        self._params: dict[str, dict[str, float]] = {}

        # Cholesky decomposition of the correlation matrix (for correlated moves)
        self._cholesky: np.ndarray | None = None

        for ticker in tickers:
            self._add_ticker(ticker)
        self._rebuild_cholesky()

    # --- Public API ---

    def step(self) -> dict[str, float]:
        """Advance all tickers by one time step. Returns {ticker: new_price}."""
        n = len(self._tickers)
        if n == 0:
            return {}

        z_independent = np.random.standard_normal(n)
        if self._cholesky is not None:
            z_correlated = self._cholesky @ z_independent
        else:
            z_correlated = z_independent

        result: dict[str, float] = {}
        for i, ticker in enumerate(self._tickers):
            params = self._params[ticker]
            mu = params["mu"]
            sigma = params["sigma"]

            drift = (mu - 0.5 * sigma**2) * self._dt
            diffusion = sigma * math.sqrt(self._dt) * z_correlated[i]
            self._prices[ticker] *= math.exp(drift + diffusion)

            # Random event: a sudden 2-5% move, like a liquidation cascade
            if random.random() < self._event_prob:
                shock_magnitude = random.uniform(0.02, 0.05)
                shock_sign = random.choice([-1, 1])
                self._prices[ticker] *= 1 + shock_magnitude * shock_sign
                logger.debug(
                    "Random event on %s: %.1f%% %s",
                    ticker,
                    shock_magnitude * 100,
                    "up" if shock_sign > 0 else "down",
                )

            result[ticker] = round(self._prices[ticker], 2)

        return result

    def backfill(self, ticker: str, count: int, step_seconds: float) -> np.ndarray:
        """Synthetic closes for the `count` candles ending at the current price.

        The path is drawn forward and then shifted so its last value equals
        the live price, so history and live ticks join without a gap.
        """
        price = self._prices[ticker]
        if count <= 0:
            return np.empty(0)
        params = self._params[ticker]
        dt = step_seconds / self.SECONDS_PER_YEAR
        z = np.random.standard_normal(count - 1)
        log_steps = (params["mu"] - 0.5 * params["sigma"] ** 2) * dt + params["sigma"] * math.sqrt(dt) * z
        log_path = np.concatenate(([0.0], np.cumsum(log_steps)))
        return np.round(price * np.exp(log_path - log_path[-1]), 2)

    def get_price(self, ticker: str) -> float | None:
        """Current price for a ticker, or None if not tracked."""
        return self._prices.get(ticker)

    @property
    def tickers(self) -> list[str]:
        return list(self._tickers)

    # --- Internals ---

    def _add_ticker(self, ticker: str) -> None:
        if ticker in self._prices:
            return
        self._tickers.append(ticker)
        self._prices[ticker] = SEED_PRICES.get(ticker, random.uniform(1.0, 100.0))
        self._params[ticker] = ASSET_PARAMS.get(ticker, dict(DEFAULT_PARAMS))

    def _rebuild_cholesky(self) -> None:
        n = len(self._tickers)
        if n <= 1:
            self._cholesky = None
            return

        corr = np.full((n, n), PAIR_CORR)
        np.fill_diagonal(corr, 1.0)
        self._cholesky = np.linalg.cholesky(corr)


class SimulatorTickSource(TickSource):
    """TickSource backed by the GBM simulator.

    Runs a background asyncio task that calls GBMSimulator.step() every
    `update_interval` seconds and hands one Tick per asset to the handler.
    The 24h change is measured against a synthetic open drawn at start.
    """

    def __init__(
        self,
        simulator: GBMSimulator,
        update_interval: float = 1.0,
    ) -> None:
        self._sim = simulator
        self._interval = update_interval
        self._handler: TickHandler | None = None
        self._opens: dict[str, float] = {}
        self._task: asyncio.Task | None = None

    async def start(self, handler: TickHandler) -> None:
        self._handler = handler
        for ticker in self._sim.tickers:
            price = self._sim.get_price(ticker)
            self._opens[ticker] = price * (1 + random.uniform(-OPEN_PRICE_SPREAD, OPEN_PRICE_SPREAD))
        # Emit the starting prices so consumers have data immediately
        self._emit({t: round(self._sim.get_price(t), 2) for t in self._sim.tickers})
        self._task = asyncio.create_task(self._run_loop(), name="simulator-loop")
        logger.info("Simulator started with %d assets", len(self._sim.tickers))

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Simulator stopped")

    def _emit(self, prices: dict[str, float]) -> None:
        now = time.time()
        for ticker, price in prices.items():
            open_price = self._opens[ticker]
            self._handler(
                Tick(
                    asset=Asset(ticker),
                    price=price,
                    change_24h=(price - open_price) / open_price * 100,
                    timestamp=now,
                )
            )

    async def _run_loop(self) -> None:
        """Core loop: step the simulation, emit ticks, sleep."""
        while True:
            try:
                self._emit(self._sim.step())
            except Exception:
                logger.exception("Simulator step failed")
            await asyncio.sleep(self._interval)


class SimulatorHistorySource(HistorySource):
    """HistorySource that backfills candles from the shared simulator."""

    def __init__(self, simulator: GBMSimulator) -> None:
        self._sim = simulator

    async def fetch_history(
        self,
        asset: Asset,
        interval: str = "15m",
        limit: int = 100,
    ) -> list[HistorySample]:
        _, _, candle_minutes = parse_interval(interval)
        step = candle_minutes * 60
        try:
            closes = self._sim.backfill(asset.value, limit, step)
        except KeyError as e:
            raise FetchFailure(f"{asset.value} is not simulated") from e
        # Align the newest candle's open time to the current interval boundary
        newest = time.time() // step * step
        return [
            HistorySample(timestamp=newest - (len(closes) - 1 - i) * step, close=float(close))
            for i, close in enumerate(closes)
        ]
