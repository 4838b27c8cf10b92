"""Market-data connectors that feed raw order-book messages into a queue."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

import websockets

from tradesim.logsetup import LOGGER_NAME
from tradesim.ringqueue import QueueFull, SpscQueue

JsonCallback = Callable[[str], object]

DEFAULT_HOST = "ws.gomarket-cpp.goquant.io"
DEFAULT_PORT = 443
DEFAULT_TARGET = "/ws/l2-orderbook/okx/BTC-USDT-SWAP"
DEFAULT_URL = f"wss://{DEFAULT_HOST}:{DEFAULT_PORT}{DEFAULT_TARGET}"
DEFAULT_INST_ID = "BTC-USDT"
USER_AGENT = "tradesim OKXBot"

log = logging.getLogger(LOGGER_NAME)


def subscription_message(inst_id: str = DEFAULT_INST_ID) -> str:
    """Return the JSON text that subscribes to the order-book channel of an instrument."""
    message = {"op": "subscribe", "args": [{"channel": "books", "instId": inst_id}]}
    return json.dumps(message, separators=(",", ":"), sort_keys=True)


class MarketDataConnector(ABC):
    """A source of raw market-data messages."""

    @abstractmethod
    def start(self, callback: Optional[JsonCallback] = None) -> None:
        """Start receiving; `callback` is called with each raw message."""

    @abstractmethod
    def stop(self) -> None:
        """Stop receiving and release resources."""


class OKXWebSocketConnector(MarketDataConnector):
    """Reads an L2 order-book WebSocket feed on a background thread.

    Every message received is pushed, as text, onto the given queue.
    """

    def __init__(
        self,
        queue: SpscQueue[str],
        url: str = DEFAULT_URL,
        inst_id: str = DEFAULT_INST_ID,
    ) -> None:
        self.queue = queue
        self.url = url
        self.inst_id = inst_id
        self.last_error: Optional[BaseException] = None
        self._callback: Optional[JsonCallback] = None
        self._running = False
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        """True between start() and stop()."""
        return self._running

    def start(self, callback: Optional[JsonCallback] = None) -> None:
        """Connect and read in a background thread; does nothing if already started."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._callback = callback
            self.last_error = None
            self._thread = threading.Thread(
                target=self._run, name="ws-connector", daemon=True
            )
        self._thread.start()

    def stop(self) -> None:
        """Stop reading and wait for the background thread to finish."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            loop, task = self._loop, self._task
            thread = self._thread
        if loop is not None and task is not None:
            try:
                loop.call_soon_threadsafe(task.cancel)
            except RuntimeError:
                pass
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def handle_message(self, message: str | bytes) -> None:
        """Queue one raw message received from the feed."""
        text = message.decode("utf-8") if isinstance(message, bytes) else message
        log.info("[WS] Received %d bytes", len(text))
        try:
            self.queue.push(text)
        except QueueFull:
            log.warning("[WS] Queue full, dropping tick")
        else:
            log.info("[WS] Pushed tick into queue")
        if self._callback is not None:
            self._callback(text)

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        try:
            with self._lock:
                if not self._running:
                    return
                self._loop = loop
                self._task = loop.create_task(self._read_loop())
            loop.run_until_complete(self._task)
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            self.last_error = exc
            log.error("[WS] Error: %s", exc)
        finally:
            with self._lock:
                self._loop = None
                self._task = None
            loop.close()

    async def _read_loop(self) -> None:
        async with websockets.connect(self.url, user_agent_header=USER_AGENT) as ws:
            log.info("[WS] Connected & handshake succeeded")
            request = subscription_message(self.inst_id)
            await ws.send(request)
            log.info("[WS] Sent subscription message: %s", request)
            async for message in ws:
                if not self._running:
                    break
                self.handle_message(message)