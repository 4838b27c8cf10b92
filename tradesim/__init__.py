"""Trade cost simulator: slippage, market impact and fee estimates from a live L2 order book feed."""

__version__ = "1.0.0"