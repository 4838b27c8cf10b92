"""Metrics computed for one order-book snapshot."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Metrics:
    """Expected execution costs for an order, in USD, plus processing latency."""

    slippage: float = 0.0
    fees: float = 0.0
    impact: float = 0.0
    net_cost: float = 0.0
    maker_taker_ratio: float = 0.0
    internal_latency: float = 0.0

    def to_dict(self) -> dict[str, float]:
        """Return the metrics keyed by the names used on the UI wire."""
        return {
            "slippage": self.slippage,
            "fees": self.fees,
            "impact": self.impact,
            "netCost": self.net_cost,
            "makerTakerRatio": self.maker_taker_ratio,
            "internalLatency": self.internal_latency,
        }