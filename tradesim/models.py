"""Cost models for slippage, market impact and fees."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

from tradesim.orderbook import OrderBookSnapshot


def _dollar_depth(levels) -> float:
    return sum(lvl.price * lvl.size for lvl in levels)


class SlippageModel(ABC):
    """Computes expected slippage in USD for an order."""

    @abstractmethod
    def compute(self, snapshot: OrderBookSnapshot, order_size_usd: float) -> float:
        """Return expected slippage in USD."""


class MarketImpactModel(ABC):
    """Computes expected market impact in USD for an order."""

    @abstractmethod
    def compute(self, snapshot: OrderBookSnapshot, order_size_usd: float) -> float:
        """Return expected market impact in USD."""


class FeesModel(ABC):
    """Computes expected fees in USD for an order."""

    @abstractmethod
    def compute(self, snapshot: OrderBookSnapshot, order_size_usd: float) -> float:
        """Return expected fees in USD."""


class LinearSlippageModel(SlippageModel):
    """Slippage = k * (order / top-of-book liquidity) * order."""

    def __init__(self, k: float = 0.001) -> None:
        self.k = k

    def compute(self, snapshot: OrderBookSnapshot, order_size_usd: float) -> float:
        if not snapshot.bids or not snapshot.asks:
            return 0.0
        best_bid, best_ask = snapshot.bids[0], snapshot.asks[0]
        liquidity = best_bid.price * best_bid.size + best_ask.price * best_ask.size
        liquidity = max(liquidity, 1e-6)
        return self.k * (order_size_usd / liquidity) * order_size_usd


class AlmgrenChrissModel(MarketImpactModel):
    """Impact = eta * (order / visible liquidity) ** gamma * order."""

    MIN_LIQUIDITY = 1e3

    def __init__(self, eta: float = 0.1, gamma: float = 0.6) -> None:
        self.eta = eta
        self.gamma = gamma

    def compute(self, snapshot: OrderBookSnapshot, order_size_usd: float) -> float:
        liquidity = _dollar_depth(snapshot.bids) + _dollar_depth(snapshot.asks)
        liquidity = max(liquidity, self.MIN_LIQUIDITY)
        ratio = order_size_usd / liquidity
        try:
            scaled = math.pow(ratio, self.gamma)
        except ValueError:
            return math.nan
        return self.eta * scaled * order_size_usd


class FeeTierModel(FeesModel):
    """Blends maker and taker fee rates by the bid share of visible liquidity."""

    def __init__(self, maker_fee: float = 0.001, taker_fee: float = 0.002) -> None:
        self.maker_fee = maker_fee
        self.taker_fee = taker_fee

    def compute(self, snapshot: OrderBookSnapshot, order_size_usd: float) -> float:
        bid_liquidity = _dollar_depth(snapshot.bids)
        ask_liquidity = _dollar_depth(snapshot.asks)
        total = bid_liquidity + ask_liquidity
        maker_ratio = bid_liquidity / total if total > 0.0 else 0.5
        blended = maker_ratio * self.maker_fee + (1.0 - maker_ratio) * self.taker_fee
        return blended * order_size_usd