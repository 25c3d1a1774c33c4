"""Tests for the durable key/value stores."""

import pytest

from raidcue import MemoryStore, SQLiteStore


@pytest.fixture
async def store():
    """Create an in-memory SQLite store and ensure cleanup."""
    s = SQLiteStore(":memory:")
    yield s
    await s.close()


class TestSQLiteStore:
    async def test_missing_key_is_none(self, store):
        assert await store.get("platform_manifest") is None

    async def test_set_then_get(self, store):
        await store.set("platform_manifest", '{"storedAt": 1}')
        assert await store.get("platform_manifest") == '{"storedAt": 1}'

    async def test_set_overwrites(self, store):
        await store.set("k", "first")
        await store.set("k", "second")
        assert await store.get("k") == "second"

    async def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "raidcue.db")

        first = SQLiteStore(path)
        await first.set("k", "kept")
        await first.close()

        second = SQLiteStore(path)
        try:
            assert await second.get("k") == "kept"
        finally:
            await second.close()

    async def test_schema_version_recorded_once(self, tmp_path):
        path = str(tmp_path / "raidcue.db")

        for _ in range(2):
            s = SQLiteStore(path)
            try:
                assert await s.schema_version() == 1
            finally:
                await s.close()

    async def test_close_is_idempotent(self):
        s = SQLiteStore(":memory:")
        await s.close()
        await s.close()


class TestMemoryStore:
    async def test_round_trip(self):
        s = MemoryStore({"a": "1"})
        assert await s.get("a") == "1"
        await s.set("b", "2")
        assert s.data == {"a": "1", "b": "2"}
