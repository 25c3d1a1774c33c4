"""Single-flight, stale-while-revalidate cache for one shared payload."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from raidcue.models import CachedRecord, CacheState, StoredRecord
from raidcue.store import DurableStore

logger = logging.getLogger(__name__)

Payload = dict[str, Any]


class ReferenceCache:
    """
    Keeps one large, slow-to-fetch payload available to many callers.

    The in-memory copy is authoritative for the life of the process. A copy
    in the durable store is used to warm up after a restart and is treated
    as untrusted input: anything that fails to load counts as absent.

    At most one fetch is in flight at any time. Every caller that needs it
    awaits the same task, so concurrent callers never fan out into several
    network calls. A stale copy is returned immediately while a single
    background refresh runs.

    Args:
        fetch: Zero-argument coroutine function producing a fresh payload.
        store: Durable store used for warm-up and persistence.
        key: Key of the record in the durable store.
        max_age: Freshness window in seconds.
        clock: Returns the current time in Unix seconds.
        validate: Optional extra check applied to the payload of a stored
            record; raise ``ValueError`` to reject it.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Payload]],
        store: DurableStore,
        *,
        key: str,
        max_age: float = 3600.0,
        clock: Callable[[], float] = time.time,
        validate: Callable[[Payload], Any] | None = None,
    ) -> None:
        self._fetch = fetch
        self._store = store
        self._key = key
        self._max_age = max_age
        self._clock = clock
        self._validate = validate

        self._record: CachedRecord[Payload] | None = None
        self._inflight: asyncio.Task[Payload] | None = None
        self._hydration: asyncio.Task[None] | None = None
        self._hydrated = False

        self.fetch_count = 0

    @property
    def state(self) -> CacheState:
        if self._record is None:
            return CacheState.EMPTY if self._inflight is None else CacheState.COLD_FETCHING
        if self._is_stale(self._record):
            return CacheState.WARM_STALE
        return CacheState.WARM_FRESH

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None

    @property
    def record(self) -> CachedRecord[Payload] | None:
        return self._record

    async def get(self, *, force_refresh: bool = False) -> Payload:
        """
        Return the payload, fetching it only when no usable copy exists.

        Args:
            force_refresh: Ignore freshness and wait for a fetch (joining
                the one already in flight, if any).

        Raises:
            Whatever the fetch raises, when the caller had to wait for it.
        """
        if force_refresh:
            return await self._join_fetch()

        if self._record is None and not self._hydrated:
            await self._hydrate_once()

        record = self._record
        if record is None:
            logger.debug("Cache miss for %s", self._key)
            return await self._join_fetch()

        if self._is_stale(record):
            logger.debug("Serving stale %s, revalidating", self._key)
            self._start_fetch()
        return record.payload

    def invalidate(self) -> None:
        """Forget the in-memory copy. The next get() reloads or refetches."""
        self._record = None
        self._hydrated = False

    async def wait_idle(self) -> None:
        """Wait for a running background refresh, ignoring its outcome."""
        task = self._inflight
        if task is not None:
            await asyncio.wait({task})

    def _is_stale(self, record: CachedRecord[Payload]) -> bool:
        return self._clock() - record.fetched_at >= self._max_age

    async def _join_fetch(self) -> Payload:
        # Shield so one caller giving up does not cancel the shared fetch
        return await asyncio.shield(self._start_fetch())

    def _start_fetch(self) -> asyncio.Task[Payload]:
        if self._inflight is None:
            self.fetch_count += 1
            logger.debug("Fetching %s", self._key)
            task = asyncio.ensure_future(self._run_fetch())
            task.add_done_callback(self._log_fetch_failure)
            self._inflight = task
        return self._inflight

    async def _run_fetch(self) -> Payload:
        try:
            payload = await self._fetch()
            record = CachedRecord(fetched_at=self._clock(), payload=payload)
            self._record = record
            await self._persist(record)
            return payload
        finally:
            self._inflight = None

    def _log_fetch_failure(self, task: asyncio.Task[Payload]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Fetching %s failed: %s", self._key, exc)

    async def _hydrate_once(self) -> None:
        if self._hydration is None:
            self._hydration = asyncio.ensure_future(self._hydrate())
        task = self._hydration
        try:
            await asyncio.shield(task)
        finally:
            if task.done() and self._hydration is task:
                self._hydration = None

    async def _hydrate(self) -> None:
        record = await self._load()
        # A fetch may have landed while the store was being read
        if record is not None and self._record is None:
            self._record = record
        self._hydrated = True

    async def _load(self) -> CachedRecord[Payload] | None:
        """Read the durable copy. Any failure means there is none."""
        try:
            raw = await self._store.get(self._key)
        except Exception as exc:
            logger.warning("Could not read %s from store: %s", self._key, exc)
            return None
        if not raw:
            return None

        try:
            stored = StoredRecord.model_validate_json(raw)
            if self._validate is not None:
                self._validate(stored.payload)
        except (ValidationError, ValueError) as exc:
            logger.warning("Ignoring unusable stored %s: %s", self._key, exc)
            return None

        logger.debug("Loaded %s from store", self._key)
        return CachedRecord(fetched_at=stored.stored_at / 1000, payload=stored.payload)

    async def _persist(self, record: CachedRecord[Payload]) -> None:
        try:
            stored = StoredRecord(
                stored_at=int(record.fetched_at * 1000), payload=record.payload
            )
            await self._store.set(self._key, stored.model_dump_json(by_alias=True))
        except Exception as exc:
            logger.warning("Could not persist %s: %s", self._key, exc)
