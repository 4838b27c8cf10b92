"""Thread-safe L2 order book, its snapshots and update events."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Iterable


@dataclass(frozen=True)
class Level:
    """One price level of the book."""

    price: float
    size: float


_EMPTY_LEVEL = Level(0.0, 0.0)


def _parse_number(value: Any) -> float:
    if not isinstance(value, str):
        raise ValueError(f"expected a numeric string, got {value!r}")
    return float(value)


class OrderBook:
    """L2 order book; bids are ordered highest first, asks lowest first."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._bids: dict[float, float] = {}
        self._asks: dict[float, float] = {}

    def update_bids(self, bids: Iterable[Level]) -> None:
        """Replace the bid side with the given levels."""
        side = {lvl.price: lvl.size for lvl in bids}
        with self._lock:
            self._bids = side

    def update_asks(self, asks: Iterable[Level]) -> None:
        """Replace the ask side with the given levels."""
        side = {lvl.price: lvl.size for lvl in asks}
        with self._lock:
            self._asks = side

    def top_of_book(self) -> tuple[Level, Level]:
        """Return the best bid and best ask; an empty side gives Level(0, 0)."""
        with self._lock:
            bids, asks = self._bids, self._asks
            best_bid = Level(max(bids), bids[max(bids)]) if bids else _EMPTY_LEVEL
            best_ask = Level(min(asks), asks[min(asks)]) if asks else _EMPTY_LEVEL
        return best_bid, best_ask

    def get_bids(self) -> list[Level]:
        """All bid levels, best (highest price) first."""
        with self._lock:
            items = sorted(self._bids.items(), reverse=True)
        return [Level(price, size) for price, size in items]

    def get_asks(self) -> list[Level]:
        """All ask levels, best (lowest price) first."""
        with self._lock:
            items = sorted(self._asks.items())
        return [Level(price, size) for price, size in items]

    def extract_bids(self) -> list[Level]:
        """Same as get_bids()."""
        return self.get_bids()

    def extract_asks(self) -> list[Level]:
        """Same as get_asks()."""
        return self.get_asks()

    def top_levels(self, n: int, is_bid: bool) -> list[Level]:
        """Up to n best levels of one side."""
        levels = self.get_bids() if is_bid else self.get_asks()
        return levels[:n]

    @staticmethod
    def parse_levels(entries: Iterable[Any]) -> list[Level]:
        """Parse [["price", "size", ...], ...] entries into levels."""
        if entries is None:
            return []
        levels = []
        for entry in entries:
            try:
                price_text, size_text = entry[0], entry[1]
            except (IndexError, KeyError, TypeError) as exc:
                raise ValueError(f"malformed level entry: {entry!r}") from exc
            levels.append(Level(_parse_number(price_text), _parse_number(size_text)))
        return levels

    @staticmethod
    def from_json(raw: str) -> "OrderBook":
        """Build a book from a raw feed message.

        Accepts either top-level "bids"/"asks" or a "data" array whose first
        item holds them. Raises ValueError for anything else.
        """
        doc = json.loads(raw)
        if not isinstance(doc, dict):
            raise ValueError("OrderBook.from_json: unexpected JSON format")

        if "bids" in doc and "asks" in doc:
            bids, asks = doc["bids"], doc["asks"]
        elif isinstance(doc.get("data"), list) and doc["data"]:
            item = doc["data"][0]
            if item is None:
                item = {}
            if not isinstance(item, dict):
                raise ValueError("OrderBook.from_json: data item is not an object")
            bids, asks = item.get("bids"), item.get("asks")
        else:
            raise ValueError("OrderBook.from_json: unexpected JSON format")

        book = OrderBook()
        book.update_bids(OrderBook.parse_levels(bids))
        book.update_asks(OrderBook.parse_levels(asks))
        return book


@dataclass
class OrderBookSnapshot:
    """Top levels of the book plus the parameters the cost models use."""

    bids: list[Level]
    asks: list[Level]
    estimated_daily_volume: float
    maker_taker_ratio: float
    timestamp: float = field(default_factory=time.monotonic)

    @staticmethod
    def from_book(
        book: OrderBook,
        depth: int = 10,
        daily_vol: float = 1e6,
        maker_r: float = 0.3,
    ) -> "OrderBookSnapshot":
        """Capture `depth` levels per side of a live book."""
        return OrderBookSnapshot(
            bids=book.top_levels(depth, is_bid=True),
            asks=book.top_levels(depth, is_bid=False),
            estimated_daily_volume=daily_vol,
            maker_taker_ratio=maker_r,
        )


@dataclass
class OrderBookUpdatedEvent:
    """Published whenever a fresh book has been parsed from the feed."""

    order_book: OrderBook