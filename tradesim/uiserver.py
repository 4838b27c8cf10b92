"""WebSocket server that broadcasts metrics to UI clients and receives settings."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from tradesim.logsetup import LOGGER_NAME

ControlCallback = Callable[[Any], object]

DEFAULT_UI_PORT = 9000

log = logging.getLogger(LOGGER_NAME)


class UIBroadcastServer:
    """Broadcasts text messages to every connected client.

    Incoming messages of the form {"type": "settings", "params": ...} are
    passed, params only, to `on_control`.
    """

    def __init__(
        self,
        port: int = DEFAULT_UI_PORT,
        host: str = "0.0.0.0",
        on_control: Optional[ControlCallback] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.on_control = on_control
        self._sessions: set = set()
        self._state_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopped: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._startup_error: Optional[BaseException] = None

    @property
    def client_count(self) -> int:
        """Number of connected clients."""
        return len(self._sessions)

    def run(self) -> None:
        """Start accepting connections on a background thread.

        Returns once the server is listening; `port` then holds the bound port.
        Raises the bind error if the server cannot listen.
        """
        with self._state_lock:
            if self._thread is not None:
                raise RuntimeError("server is already running")
            self._ready.clear()
            self._startup_error = None
            self._thread = threading.Thread(
                target=self._serve_forever, name="ui-server", daemon=True
            )
            thread = self._thread
        thread.start()
        self._ready.wait()
        if self._startup_error is not None:
            thread.join()
            with self._state_lock:
                self._thread = None
            raise self._startup_error

    def stop(self) -> None:
        """Close all sessions, stop listening and wait for the server thread."""
        with self._state_lock:
            loop, stopped, thread = self._loop, self._stopped, self._thread
            self._loop = None
            self._thread = None
        if loop is not None and stopped is not None:
            try:
                loop.call_soon_threadsafe(stopped.set)
            except RuntimeError:
                pass
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def broadcast(self, message: str) -> None:
        """Send a text message to every client, dropping those that fail."""
        with self._state_lock:
            loop = self._loop
            if loop is None:
                return
            try:
                future = asyncio.run_coroutine_threadsafe(self._broadcast(message), loop)
            except RuntimeError:
                return
            future.result()

    def handle_message(self, text: str | bytes) -> None:
        """Apply one control message received from a client."""
        try:
            doc = json.loads(text)
            if (
                isinstance(doc, dict)
                and doc.get("type") == "settings"
                and self.on_control is not None
            ):
                self.on_control(doc.get("params"))
        except Exception as exc:
            log.error("[UI] Invalid JSON control message: %s", exc)

    def _serve_forever(self) -> None:
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(self._main(loop))
        except Exception as exc:
            if not self._ready.is_set():
                self._startup_error = exc
            else:
                log.error("[UI] Server error: %s", exc)
        finally:
            self._ready.set()
            loop.close()

    async def _main(self, loop: asyncio.AbstractEventLoop) -> None:
        self._stopped = asyncio.Event()
        async with websockets.serve(self._session, self.host, self.port) as server:
            self.port = server.sockets[0].getsockname()[1]
            with self._state_lock:
                self._loop = loop
            self._ready.set()
            await self._stopped.wait()
        self._sessions.clear()

    async def _session(self, ws, *_args) -> None:
        self._sessions.add(ws)
        try:
            async for message in ws:
                self.handle_message(message)
        except ConnectionClosed:
            pass
        finally:
            self._sessions.discard(ws)

    async def _broadcast(self, message: str) -> None:
        for ws in list(self._sessions):
            try:
                await ws.send(message)
            except ConnectionClosed as exc:
                log.error("[UI] Write error, removing session: %s", exc)
                self._sessions.discard(ws)