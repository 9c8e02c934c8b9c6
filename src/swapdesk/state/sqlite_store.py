"""SQLite key-value store for drafts, chart options and price caches."""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class SqliteKeyValueStore:
    """SQLite-backed implementation of the key-value store."""

    def __init__(self, db_path: str) -> None:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.connection = sqlite3.connect(path)
        self.connection.row_factory = sqlite3.Row
        self._initialize_schema()

    def get(self, key: str, default: Any = None) -> Any:
        row = self.connection.execute(
            """
            SELECT value
            FROM kv
            WHERE key = ?
            """,
            (key,),
        ).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except ValueError:
            return default

    def set(self, key: str, value: Any) -> None:
        now = self._utc_now()
        self.connection.execute(
            """
            INSERT OR REPLACE INTO kv(key, value, updated_ts)
            VALUES(?, ?, ?)
            """,
            (key, json.dumps(value, sort_keys=True, default=str), now),
        )
        self.connection.commit()

    def delete(self, key: str) -> None:
        self.connection.execute("DELETE FROM kv WHERE key = ?", (key,))
        self.connection.commit()

    def keys(self, prefix: str = "") -> list[str]:
        rows = self.connection.execute(
            """
            SELECT key
            FROM kv
            WHERE substr(key, 1, ?) = ?
            ORDER BY key ASC
            """,
            (len(prefix), prefix),
        ).fetchall()
        return [str(row["key"]) for row in rows]

    def close(self) -> None:
        self.connection.close()

    def _initialize_schema(self) -> None:
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS kv(
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_ts TEXT NOT NULL
            )
            """
        )
        self.connection.commit()

    @staticmethod
    def _utc_now() -> str:
        return datetime.now(tz=UTC).isoformat()
