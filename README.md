# tradesim

`tradesim` reads a level-2 order book feed over WebSocket. For every update it
estimates what an order of a given USD size would cost to execute:

- **slippage**: a linear model on top-of-book liquidity (`LinearSlippageModel`)
- **market impact**: an Almgren–Chriss style power-law model on the visible
  liquidity (`AlmgrenChrissModel`)
- **fees**: maker and taker fee rates blended by the bid/ask liquidity split
  (`FeeTierModel`)
- **net cost**: the sum of the three, plus the time the models took to run

The results are sent to every client connected to a local WebSocket server. That
server also accepts settings messages from those clients.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running

```
tradesim [--ui-port PORT] [--log-file PATH]
```

This connects to the feed at `tradesim.connector.DEFAULT_URL` and subscribes to
the `books` channel for `BTC-USDT`. It starts the UI broadcast server on all
interfaces, on port 9000 by default. Log messages at info level and above go to
the console and to the log file, which defaults to `trade_simulator.log` and
rotates at 5 MB with 3 backups. Stop the program with Ctrl-C or SIGTERM.

Each connected client receives one JSON message per order-book update:

```json
{"slippage": 0.0001, "fees": 0.15, "impact": 0.02, "netCost": 0.17,
 "makerTakerRatio": 0.0, "internalLatency": 0.05}
```

`internalLatency` is in milliseconds. `makerTakerRatio` is always `0.0`.

A client can change the simulation parameters by sending:

```json
{"type": "settings", "params": {"quantity": 250.0, "volatility": 0.8, "feeTier": "Tier 2"}}
```

- `quantity` sets the order size in USD. The default is 100.
- `volatility` is stored on the controller. None of the models use it.
- `feeTier` may be `"Tier 1"`, `"Tier 2"` or `"Tier 3"`. These set the
  controller's maker ratio to 0.3, 0.2 and 0.1, and any other string leaves it
  unchanged. The ratio is carried on each snapshot. `FeeTierModel` computes its
  own ratio from the book and does not read it.

Messages that are not valid JSON are logged and ignored, and so are messages
whose `type` is not `"settings"`.

## Using the library

```python
from tradesim.orderbook import OrderBook, OrderBookSnapshot
from tradesim.models import LinearSlippageModel, AlmgrenChrissModel, FeeTierModel

book = OrderBook.from_json(
    '{"bids": [["100.0", "2"], ["99.5", "1"]], "asks": [["100.5", "3"]]}'
)
snapshot = OrderBookSnapshot.from_book(book, 10, 1e6, 0.3)

order_usd = 100.0
print(LinearSlippageModel().compute(snapshot, order_usd))
print(AlmgrenChrissModel().compute(snapshot, order_usd))
print(FeeTierModel().compute(snapshot, order_usd))
```

### Modules

- `tradesim.orderbook`: `Level`, `OrderBook` and `OrderBookSnapshot`.
  - `OrderBook` is thread-safe. Bids are ordered highest first and asks lowest
    first.
  - `OrderBook.from_json` accepts either top-level `"bids"`/`"asks"` arrays or a
    `"data"` array whose first item holds them.
  - Prices and sizes must be numeric strings. Any other format raises
    `ValueError`.
  - `OrderBookUpdatedEvent` wraps a freshly parsed book.
- `tradesim.models`: the abstract `SlippageModel`, `MarketImpactModel` and
  `FeesModel`, and the concrete models listed above.
  - `LinearSlippageModel(k=0.001)`
  - `AlmgrenChrissModel(eta=0.1, gamma=0.6)`: liquidity has a floor of $1,000.
  - `FeeTierModel(maker_fee=0.001, taker_fee=0.002)`
- `tradesim.metrics`: the `Metrics` dataclass. `to_dict()` gives the key names
  used on the wire.
- `tradesim.events`: `EventDispatcher`, a thread-safe publish/subscribe helper.
  Handlers run in the publisher's thread, in the order they subscribed.
- `tradesim.ringqueue`: `SpscQueue`, a bounded FIFO. A queue of capacity N holds
  at most N − 1 items. `push` raises `QueueFull` and `pop` raises `QueueEmpty`.
- `tradesim.connector`: `MarketDataConnector` and `OKXWebSocketConnector`.
  - The connector reads the feed on a background thread and pushes each message
    onto an `SpscQueue`.
  - When the queue is full, the message is dropped with a warning.
  - `subscription_message(inst_id)` builds the subscribe request.
- `tradesim.uiserver`: `UIBroadcastServer`, which runs on a background thread.
  - `run()` returns once the server is listening.
  - `broadcast()` sends to all clients and drops those whose connection has
    closed.
  - `stop()` shuts the server down.
- `tradesim.logsetup`: `init_logging(log_file, max_file_size, max_files)`
  configures the `trade` logger.
  - Messages at info level and above go to the console, and debug and above go
    to the rotating file.
  - If the file cannot be opened, it prints a message to stderr and returns
    `None`.
- `tradesim.app`: `AppController` and the `main` entry point.
  - `AppController` wires the pieces together: feed → queue → book → snapshot →
    metrics → UI.
  - `process_raw()` and `compute_metrics()` can be called directly, without
    starting any network components.
  - Each snapshot built by `process_raw()` holds every level of the book.

## What it does not do

- There is no graphical window. Results are only sent as JSON to WebSocket
  clients, and any display is up to those clients.
- The feed URL and instrument cannot be set from the command line. To use
  another feed, construct `OKXWebSocketConnector` with a different `url` or
  `inst_id` and pass it to `AppController(connector=...)`.
- If the feed connection fails or closes, the error is logged and stored in the
  connector's `last_error`. The connector does not reconnect.
- Nothing is stored. There is no history of books or metrics beyond the log
  file.
- Only `quantity`, `volatility` and `feeTier` are read from settings messages.
  Any other keys are ignored.