from __future__ import annotations

import sqlite3
from decimal import Decimal
from pathlib import Path

from swapdesk.state.sqlite_store import SqliteKeyValueStore
from swapdesk.state.store import MemoryStore


def test_sqlite_store_persists_values_across_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "state.db"
    store = SqliteKeyValueStore(str(db_path))
    store.set("ticket/1", {"price": "1.", "condition": 1})
    store.set("__swap__/whitelist", ["b", "a"])
    store.close()

    reopened = SqliteKeyValueStore(str(db_path))

    assert reopened.get("ticket/1") == {"condition": 1, "price": "1."}
    assert reopened.get("__swap__/whitelist") == ["b", "a"]
    assert reopened.get("missing", "fallback") == "fallback"
    reopened.close()

    connection = sqlite3.connect(db_path)
    row = connection.execute("SELECT value FROM kv WHERE key='ticket/1'").fetchone()
    connection.close()

    assert row == ('{"condition": 1, "price": "1."}',)


def test_sqlite_store_keys_by_prefix_and_delete(tmp_path: Path) -> None:
    store = SqliteKeyValueStore(str(tmp_path / "state.db"))
    store.set("__swap__/prices", {})
    store.set("__swap__/markets", [])
    store.set("__orderbook__", {"marketId": "1"})

    assert store.keys("__swap__/") == ["__swap__/markets", "__swap__/prices"]
    assert store.keys() == ["__orderbook__", "__swap__/markets", "__swap__/prices"]

    store.delete("__orderbook__")
    store.set("__swap__/prices", {"ETH": "1"})

    assert store.get("__orderbook__") is None
    assert store.get("__swap__/prices") == {"ETH": "1"}
    store.close()


def test_sqlite_store_serializes_decimals_as_text(tmp_path: Path) -> None:
    store = SqliteKeyValueStore(str(tmp_path / "state.db"))
    store.set("value", {"amount": Decimal("1.50")})

    assert store.get("value") == {"amount": "1.50"}
    store.close()


def test_memory_store_copies_values() -> None:
    store = MemoryStore()
    value = {"accounts": ["a"]}
    store.set("k", value)
    value["accounts"].append("b")

    loaded = store.get("k")
    loaded["accounts"].append("c")

    assert store.get("k") == {"accounts": ["a"]}
    assert store.keys("k") == ["k"]
    store.delete("k")
    assert store.get("k") is None
