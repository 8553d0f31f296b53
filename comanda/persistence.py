"""Persisted collections: each key holds one JSON array of records."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Protocol

from comanda.config import DB_PATH
from comanda.errors import CorruptStateError

logger = logging.getLogger(__name__)

Records = list[dict[str, Any]]


class CollectionStore(Protocol):
    def load(self, key: str) -> Records | None: ...

    def save(self, key: str, records: Records) -> None: ...

    def save_many(self, collections: Mapping[str, Records]) -> None: ...


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def encode_records(records: Records) -> str:
    return json.dumps(records, ensure_ascii=False, separators=(",", ":"))


def decode_records(key: str, payload: str) -> Records:
    """Parse a stored payload, raising CorruptStateError unless it is a JSON array."""
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise CorruptStateError(f"collection {key!r} is not valid JSON: {exc}", keys=(key,)) from exc
    if not isinstance(value, list):
        raise CorruptStateError(f"collection {key!r} is not a JSON array", keys=(key,))
    return value


class MemoryCollectionStore:
    """Store backed by a dict of JSON strings."""

    def __init__(self, payloads: dict[str, str] | None = None) -> None:
        self.payloads: dict[str, str] = dict(payloads or {})

    def load(self, key: str) -> Records | None:
        payload = self.payloads.get(key)
        if payload is None:
            return None
        return decode_records(key, payload)

    def save(self, key: str, records: Records) -> None:
        self.save_many({key: records})

    def save_many(self, collections: Mapping[str, Records]) -> None:
        # Encode everything first so a bad record leaves every key untouched.
        encoded = {key: encode_records(records) for key, records in collections.items()}
        self.payloads.update(encoded)


class SqliteCollectionStore:
    """Store backed by one SQLite row per collection."""

    def __init__(self, db_path: str | Path = DB_PATH) -> None:
        self.db_path = Path(db_path)
        self._schema_ready = False

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        if not self._schema_ready:
            self._bootstrap_schema(conn)
        return conn

    def _bootstrap_schema(self, conn: sqlite3.Connection) -> None:
        with conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        self._schema_ready = True

    def load(self, key: str) -> Records | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT payload FROM collections WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return decode_records(key, row[0])

    def save(self, key: str, records: Records) -> None:
        self.save_many({key: records})

    def save_many(self, collections: Mapping[str, Records]) -> None:
        """Write all collections in one transaction."""
        encoded = [(key, encode_records(records)) for key, records in collections.items()]
        updated_at = _utc_now_iso()
        conn = self._connect()
        try:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO collections (key, payload, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at
                    """,
                    [(key, payload, updated_at) for key, payload in encoded],
                )
        finally:
            conn.close()
        logger.debug("saved collections %s", ", ".join(key for key, _ in encoded))
