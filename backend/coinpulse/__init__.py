"""CoinPulse: live BTC / ETH price and rolling-change dashboard backend."""
