import json
import time

import pytest

from tradesim.orderbook import Level, OrderBook, OrderBookSnapshot, OrderBookUpdatedEvent


def make_book():
    book = OrderBook()
    book.update_bids([Level(99.0, 1.0), Level(101.0, 2.0), Level(100.0, 3.0)])
    book.update_asks([Level(105.0, 4.0), Level(103.0, 5.0), Level(104.0, 6.0)])
    return book


def test_bids_sorted_highest_first():
    prices = [lvl.price for lvl in make_book().get_bids()]
    assert prices == sorted(prices, reverse=True)
    assert len(prices) == 3


def test_asks_sorted_lowest_first():
    prices = [lvl.price for lvl in make_book().get_asks()]
    assert prices == sorted(prices)


def test_top_of_book():
    best_bid, best_ask = make_book().top_of_book()
    assert best_bid == Level(101.0, 2.0)
    assert best_ask == Level(103.0, 5.0)


def test_top_of_book_empty_gives_zero_levels():
    assert OrderBook().top_of_book() == (Level(0, 0), Level(0, 0))


def test_update_replaces_side():
    book = make_book()
    book.update_bids([Level(50.0, 1.0)])
    assert book.get_bids() == [Level(50.0, 1.0)]
    assert len(book.get_asks()) == 3


def test_duplicate_price_keeps_last_size():
    book = OrderBook()
    book.update_asks([Level(10.0, 1.0), Level(10.0, 7.0)])
    assert book.get_asks() == [Level(10.0, 7.0)]


def test_extract_aliases_match_getters():
    book = make_book()
    assert book.extract_bids() == book.get_bids()
    assert book.extract_asks() == book.get_asks()


def test_top_levels_truncates():
    book = make_book()
    assert book.top_levels(2, True) == book.get_bids()[:2]
    assert book.top_levels(1, False) == book.get_asks()[:1]
    assert book.top_levels(10, True) == book.get_bids()


def test_parse_levels_reads_strings():
    levels = OrderBook.parse_levels([["41006.8", "0.6", "0", "1"], ["41007.0", "1.25"]])
    assert levels == [Level(41006.8, 0.6), Level(41007.0, 1.25)]


def test_parse_levels_rejects_numbers():
    with pytest.raises(ValueError):
        OrderBook.parse_levels([[100.0, "1"]])


def test_parse_levels_rejects_short_entry():
    with pytest.raises(ValueError):
        OrderBook.parse_levels([["100.0"]])


def test_from_json_flat():
    raw = json.dumps({"bids": [["10.5", "2"]], "asks": [["11.5", "3"]]})
    book = OrderBook.from_json(raw)
    assert book.get_bids() == [Level(10.5, 2.0)]
    assert book.get_asks() == [Level(11.5, 3.0)]


def test_from_json_nested_data():
    raw = json.dumps(
        {
            "arg": {"channel": "books", "instId": "BTC-USDT"},
            "data": [
                {
                    "asks": [["41006.8", "0.60038921", "0", "1"]],
                    "bids": [["41006.3", "0.30178218", "0", "2"]],
                    "ts": "1629966436396",
                }
            ],
        }
    )
    best_bid, best_ask = OrderBook.from_json(raw).top_of_book()
    assert best_bid == Level(41006.3, 0.30178218)
    assert best_ask == Level(41006.8, 0.60038921)


def test_from_json_nested_missing_side_is_empty():
    raw = json.dumps({"data": [{"bids": [["1.0", "1.0"]]}]})
    book = OrderBook.from_json(raw)
    assert book.get_asks() == []
    assert book.get_bids() == [Level(1.0, 1.0)]


@pytest.mark.parametrize(
    "raw",
    [
        json.dumps({"event": "subscribe"}),
        json.dumps({"data": []}),
        json.dumps({"bids": []}),
        json.dumps([1, 2, 3]),
        "not json",
    ],
)
def test_from_json_rejects_unexpected(raw):
    with pytest.raises(ValueError):
        OrderBook.from_json(raw)


def test_snapshot_from_book_defaults():
    book = make_book()
    before = time.monotonic()
    snap = OrderBookSnapshot.from_book(book)
    assert snap.bids == book.get_bids()
    assert snap.asks == book.get_asks()
    assert snap.estimated_daily_volume == 1e6
    assert snap.maker_taker_ratio == 0.3
    assert snap.timestamp >= before


def test_snapshot_from_book_depth_and_params():
    book = make_book()
    snap = OrderBookSnapshot.from_book(book, depth=1, daily_vol=5e5, maker_r=0.1)
    assert snap.bids == book.get_bids()[:1]
    assert snap.asks == book.get_asks()[:1]
    assert snap.estimated_daily_volume == 5e5
    assert snap.maker_taker_ratio == 0.1


def test_updated_event_holds_book():
    book = make_book()
    event = OrderBookUpdatedEvent(book)
    assert event.order_book.top_of_book() == book.top_of_book()