"""Durable key/value storage for raidcue.

Two implementations of the same small interface: ``get(key)`` returns the
stored string or ``None``, ``set(key, value)`` overwrites it. Callers treat
both as best-effort; errors are theirs to swallow.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol

import aiosqlite

SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Single-value records keyed by name
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL
);
"""


class DurableStore(Protocol):
    """What the reference cache needs from a store."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Dict-backed store. Survives nothing, but is handy in tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class SQLiteStore:
    """
    Store backed by a SQLite file via aiosqlite.

    The connection is opened lazily on first use.

    Example:
        store = SQLiteStore("raidcue.db")
        await store.set("platform_manifest", raw_json)
        raw = await store.get("platform_manifest")
        await store.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None
        self._open_lock = asyncio.Lock()

    async def _connection(self) -> aiosqlite.Connection:
        async with self._open_lock:
            if self._conn is None:
                conn = await aiosqlite.connect(self.db_path)
                conn.row_factory = aiosqlite.Row
                # The dashboard may read the file while the CLI writes it
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.executescript(SCHEMA)
                await conn.execute(
                    "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                    (SCHEMA_VERSION,),
                )
                await conn.commit()
                self._conn = conn
        return self._conn

    async def schema_version(self) -> int | None:
        conn = await self._connection()
        async with conn.execute("SELECT MAX(version) AS version FROM schema_version") as cursor:
            row = await cursor.fetchone()
            return row["version"] if row else None

    async def get(self, key: str) -> str | None:
        conn = await self._connection()
        async with conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()
            return row["value"] if row else None

    async def set(self, key: str, value: str) -> None:
        conn = await self._connection()
        await conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, time.time()),
        )
        await conn.commit()

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
