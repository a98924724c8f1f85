"""Seed prices and per-asset parameters for the market simulator."""

# Realistic starting prices (as of project creation)
SEED_PRICES: dict[str, float] = {
    "BTC": 67000.00,
    "ETH": 3500.00,
}

# Per-asset GBM parameters
# sigma: annualized volatility (higher = more price movement)
# mu: annualized drift / expected return
ASSET_PARAMS: dict[str, dict[str, float]] = {
    "BTC": {"sigma": 0.60, "mu": 0.10},
    "ETH": {"sigma": 0.75, "mu": 0.10},  # Higher beta than BTC
}

# Default parameters for anything not listed above
DEFAULT_PARAMS: dict[str, float] = {"sigma": 0.70, "mu": 0.05}

# BTC and ETH move together most of the time
PAIR_CORR = 0.8

# Simulated 24h opens sit within this fraction of the seed price
OPEN_PRICE_SPREAD = 0.03
