"""Application controller wiring the feed, the order book, the cost models and the UI."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
import time
from typing import Any, Mapping, Optional

from tradesim.connector import MarketDataConnector, OKXWebSocketConnector
from tradesim.events import EventDispatcher
from tradesim.logsetup import DEFAULT_LOG_FILE, LOGGER_NAME, init_logging
from tradesim.metrics import Metrics
from tradesim.models import (
    AlmgrenChrissModel,
    FeesModel,
    FeeTierModel,
    LinearSlippageModel,
    MarketImpactModel,
    SlippageModel,
)
from tradesim.orderbook import OrderBook, OrderBookSnapshot, OrderBookUpdatedEvent
from tradesim.ringqueue import QueueEmpty, SpscQueue
from tradesim.uiserver import DEFAULT_UI_PORT, UIBroadcastServer

log = logging.getLogger(LOGGER_NAME)

FEE_TIER_MAKER_RATIOS = {"Tier 1": 0.3, "Tier 2": 0.2, "Tier 3": 0.1}

_IDLE_POLL_SECONDS = 0.001


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {value!r}")
    return float(value)


class AppController:
    """Runs the pipeline: feed -> raw queue -> order book -> snapshot -> metrics -> UI."""

    def __init__(
        self,
        ui_port: int = DEFAULT_UI_PORT,
        connector: Optional[MarketDataConnector] = None,
        queue_capacity: int = 1024,
    ) -> None:
        self.ui_port = ui_port
        self.raw_queue: SpscQueue[str] = SpscQueue(queue_capacity)
        self.order_book = OrderBook()

        self.book_updated: EventDispatcher[OrderBookSnapshot] = EventDispatcher()
        self.metrics_ready: EventDispatcher[Metrics] = EventDispatcher()
        self.order_book_updated: EventDispatcher[OrderBookUpdatedEvent] = EventDispatcher()

        self.connector: MarketDataConnector = (
            connector if connector is not None else OKXWebSocketConnector(self.raw_queue)
        )
        self.slippage_model: SlippageModel = LinearSlippageModel()
        self.impact_model: MarketImpactModel = AlmgrenChrissModel()
        self.fees_model: FeesModel = FeeTierModel()

        self.daily_volume = 1_000_000.0
        self.maker_ratio = 0.3
        self.order_size_usd = 100.0
        self.volatility = 1.0

        self.ui_server: Optional[UIBroadcastServer] = None
        self._book_thread: Optional[threading.Thread] = None
        self._running = threading.Event()

        self.book_updated.subscribe(self.compute_metrics)

    @property
    def running(self) -> bool:
        """True between run() and stop()."""
        return self._running.is_set()

    def run(self) -> None:
        """Start the UI server, the market-data feed and the book-processing thread."""
        if self._running.is_set():
            return
        self._running.set()

        self.ui_server = UIBroadcastServer(port=self.ui_port, on_control=self.apply_settings)
        try:
            self.ui_server.run()
        except BaseException:
            self._running.clear()
            self.ui_server = None
            raise

        self.connector.start(None)
        self._book_thread = threading.Thread(
            target=self._book_loop, name="book-loop", daemon=True
        )
        self._book_thread.start()

    def stop(self) -> None:
        """Stop every component; does nothing if not running."""
        if not self._running.is_set():
            return
        self._running.clear()
        self.connector.stop()
        if self.ui_server is not None:
            self.ui_server.stop()
        thread = self._book_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._book_thread = None

    def apply_settings(self, params: Any) -> None:
        """Apply a "settings" control message from a UI client.

        Recognised keys: quantity (order size in USD), volatility and
        feeTier ("Tier 1".."Tier 3", which sets the maker ratio).
        """
        if not isinstance(params, Mapping):
            return
        if "quantity" in params:
            self.order_size_usd = _as_float("quantity", params["quantity"])
            log.info("[Control] order size set to %s", self.order_size_usd)
        if "volatility" in params:
            self.volatility = _as_float("volatility", params["volatility"])
            log.info("[Control] volatility set to %s", self.volatility)
        if "feeTier" in params:
            tier = params["feeTier"]
            if not isinstance(tier, str):
                raise TypeError(f"feeTier must be a string, got {tier!r}")
            self.maker_ratio = FEE_TIER_MAKER_RATIOS.get(tier, self.maker_ratio)
            log.info("[Control] maker ratio set to %s for %s", self.maker_ratio, tier)

    def process_raw(self, raw: str) -> OrderBookSnapshot:
        """Parse one feed message, update the shared book and publish a snapshot.

        Raises ValueError if the message is not a recognised order-book update.
        """
        parsed = OrderBook.from_json(raw)
        self.order_book_updated.publish(OrderBookUpdatedEvent(parsed))

        self.order_book.update_bids(parsed.extract_bids())
        self.order_book.update_asks(parsed.extract_asks())

        # The configured daily volume doubles as the capture depth, so the
        # snapshot in practice holds every level of the book.
        snapshot = OrderBookSnapshot.from_book(
            self.order_book,
            depth=int(self.daily_volume),
            daily_vol=self.daily_volume,
            maker_r=self.maker_ratio,
        )
        self.book_updated.publish(snapshot)
        return snapshot

    def compute_metrics(self, snapshot: OrderBookSnapshot) -> Metrics:
        """Run the cost models on a snapshot, publish the result and send it to the UI."""
        started = time.perf_counter()
        size = self.order_size_usd
        metrics = Metrics(
            slippage=self.slippage_model.compute(snapshot, size),
            impact=self.impact_model.compute(snapshot, size),
            fees=self.fees_model.compute(snapshot, size),
        )
        metrics.net_cost = metrics.slippage + metrics.impact + metrics.fees
        metrics.maker_taker_ratio = 0.0
        metrics.internal_latency = (time.perf_counter() - started) * 1000.0

        log.info(
            "[ModelLoop] Slippage=%.8f  Impact=%.6f  Fees=%.6f  Net=%.6f  M/T=%.6f  Latency=%.6fms",
            metrics.slippage,
            metrics.impact,
            metrics.fees,
            metrics.net_cost,
            metrics.maker_taker_ratio,
            metrics.internal_latency,
        )

        self.metrics_ready.publish(metrics)

        if self.ui_server is not None:
            try:
                self.ui_server.broadcast(json.dumps(metrics.to_dict()))
            except Exception as exc:
                log.error("[UI] Broadcast failed: %s", exc)
        return metrics

    def _book_loop(self) -> None:
        while self._running.is_set():
            try:
                raw = self.raw_queue.pop()
            except QueueEmpty:
                time.sleep(_IDLE_POLL_SECONDS)
                continue
            try:
                self.process_raw(raw)
            except Exception as exc:
                log.error("[BookLoop] Failed to process tick: %s", exc)


def main(argv: Optional[list[str]] = None) -> int:
    """Start the simulator and run until interrupted."""
    parser = argparse.ArgumentParser(
        prog="tradesim", description="Live trade cost simulator."
    )
    parser.add_argument("--ui-port", type=int, default=DEFAULT_UI_PORT)
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    args = parser.parse_args(argv)

    logger = init_logging(args.log_file)
    if logger is not None:
        logger.setLevel(logging.INFO)

    app = AppController(ui_port=args.ui_port)
    app.run()

    shutdown = threading.Event()

    def _on_signal(signum, frame) -> None:
        log.info("Signal received, shutting down...")
        shutdown.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    try:
        while not shutdown.wait(1.0):
            pass
    finally:
        app.stop()
    return 0