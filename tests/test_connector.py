import json
import socket
import threading
import time

import pytest
from websockets.exceptions import ConnectionClosed
from websockets.sync.server import serve

from tradesim.connector import (
    MarketDataConnector,
    OKXWebSocketConnector,
    subscription_message,
)
from tradesim.ringqueue import QueueEmpty, SpscQueue


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class _FeedServer:
    def __init__(self, messages):
        self.messages = messages
        self.received = []
        self._server = serve(self._handler, "127.0.0.1", 0)
        self.port = self._server.socket.getsockname()[1]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    def _handler(self, conn):
        try:
            self.received.append(conn.recv())
            for message in self.messages:
                conn.send(message)
            for _ in conn:
                pass
        except ConnectionClosed:
            pass

    def __enter__(self):
        self._thread.start()
        return self

    def __exit__(self, *exc):
        self._server.shutdown()
        self._thread.join(5)

    @property
    def url(self):
        return f"ws://127.0.0.1:{self.port}"


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_subscription_message_wire_format():
    assert subscription_message("BTC-USDT") == (
        '{"args":[{"channel":"books","instId":"BTC-USDT"}],"op":"subscribe"}'
    )


def test_subscription_message_default_instrument():
    assert json.loads(subscription_message())["args"][0]["instId"] == "BTC-USDT"


def test_subscription_message_carries_instrument():
    doc = json.loads(subscription_message("ETH-USDT"))
    assert doc["op"] == "subscribe"
    assert doc["args"] == [{"channel": "books", "instId": "ETH-USDT"}]


def test_connector_is_a_market_data_connector():
    queue = SpscQueue()
    connector = OKXWebSocketConnector(queue)
    assert isinstance(connector, MarketDataConnector)
    connector.handle_message("tick")
    assert queue.pop() == "tick"
    connector.stop()
    assert connector.running is False


def test_handle_message_pushes_text():
    queue = SpscQueue()
    connector = OKXWebSocketConnector(queue)
    connector.handle_message('{"bids":[],"asks":[]}')
    assert queue.pop() == '{"bids":[],"asks":[]}'


def test_handle_message_decodes_bytes():
    queue = SpscQueue()
    connector = OKXWebSocketConnector(queue)
    connector.handle_message(b'{"a":1}')
    assert queue.pop() == '{"a":1}'


def test_handle_message_drops_when_full():
    queue = SpscQueue(capacity=2)
    connector = OKXWebSocketConnector(queue)
    connector.handle_message("first")
    connector.handle_message("second")
    assert len(queue) == 1
    assert queue.pop() == "first"
    with pytest.raises(QueueEmpty):
        queue.pop()


def test_stop_without_start():
    connector = OKXWebSocketConnector(SpscQueue())
    connector.stop()
    assert connector.running is False


def test_reads_feed_into_queue():
    messages = ['{"bids":[["1","2"]],"asks":[["3","4"]]}', '{"data":[]}']
    queue = SpscQueue()
    seen = []
    with _FeedServer(messages) as feed:
        connector = OKXWebSocketConnector(queue, url=feed.url, inst_id="BTC-USDT")
        connector.start(seen.append)
        assert connector.running
        assert _wait_until(lambda: len(queue) == 2)
        connector.stop()
        assert connector.running is False
    assert [queue.pop(), queue.pop()] == messages
    assert seen == messages
    assert feed.received == [subscription_message("BTC-USDT")]


def test_connection_failure_is_recorded():
    queue = SpscQueue()
    connector = OKXWebSocketConnector(queue, url=f"ws://127.0.0.1:{_free_port()}")
    connector.start()
    assert _wait_until(lambda: connector.last_error is not None)
    connector.stop()
    assert isinstance(connector.last_error, Exception)
    assert len(queue) == 0