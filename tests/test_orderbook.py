from __future__ import annotations

from decimal import Decimal

from swapdesk.domain.events import LevelUpdate
from swapdesk.domain.models import AggregatedLevel
from swapdesk.market.orderbook import OrderBook, group_levels


def _level(level_id: int, price: str, quantity: str) -> AggregatedLevel:
    return AggregatedLevel(id=level_id, price=Decimal(price), quantity=Decimal(quantity))


def _book() -> OrderBook:
    return OrderBook(
        asks=[_level(2, "102", "1"), _level(1, "101", "3")],
        bids=[_level(3, "98", "2"), _level(4, "99", "5")],
    )


def test_ladders_are_sorted() -> None:
    book = _book()

    assert [level.price for level in book.asks] == [Decimal(101), Decimal(102)]
    assert [level.price for level in book.bids] == [Decimal(99), Decimal(98)]


def test_upsert_inserts_on_the_given_side() -> None:
    book = _book()

    assert book.apply({"id": 5, "side": 0, "price": "99.5", "quantity": "1"})

    assert [level.id for level in book.bids] == [5, 4, 3]
    assert len(book.asks) == 2


def test_upsert_replaces_existing_level() -> None:
    book = _book()

    book.apply(LevelUpdate(data={"id": 1, "side": 1, "price": "101", "quantity": "7"}))

    assert book.asks[0].quantity == Decimal(7)
    assert len(book.asks) == 2


def test_delete_removes_from_both_sides() -> None:
    book = _book()

    assert book.apply({"id": 4})
    assert book.apply({"id": 1, "price": "101"})

    assert [level.id for level in book.bids] == [3]
    assert [level.id for level in book.asks] == [2]


def test_update_without_id_is_ignored() -> None:
    book = _book()

    assert not book.apply({"side": 0, "price": "1", "quantity": "1"})
    assert len(book.bids) == 2


def test_buffered_updates_flush_as_one_batch() -> None:
    book = _book()
    book.enqueue({"id": 6, "side": 1, "price": "100.5", "quantity": "2"})
    book.enqueue({"id": 2})
    book.enqueue({"quantity": "1"})

    assert book.pending == 3
    assert book.flush() == 2
    assert book.pending == 0
    assert [level.id for level in book.asks] == [6, 1]


def test_load_replaces_ladders_and_drops_buffer() -> None:
    book = _book()
    book.enqueue({"id": 9})

    book.load([_level(7, "110", "1")], [])

    assert book.pending == 0
    assert [level.id for level in book.asks] == [7]
    assert book.bids == []


def test_group_levels_sums_price_buckets() -> None:
    levels = [_level(1, "101", "1"), _level(2, "105", "2"), _level(3, "112", "4")]

    grouped = group_levels(levels, Decimal(10))

    assert [(level.id, level.price, level.quantity) for level in grouped] == [
        (0, Decimal(100), Decimal(3)),
        (0, Decimal(110), Decimal(4)),
    ]


def test_group_levels_without_step_is_identity() -> None:
    levels = [_level(1, "101", "1")]

    assert group_levels(levels, Decimal(0)) == levels


def test_grouped_keeps_ladder_order() -> None:
    asks, bids = _book().grouped(Decimal(5))

    assert [level.price for level in asks] == [Decimal(100)]
    assert [level.price for level in bids] == [Decimal(95)]
    assert bids[0].quantity == Decimal(7)
