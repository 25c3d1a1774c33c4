"""Client for the rate-limited game platform API."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

import httpx

from raidcue.cache import Payload, ReferenceCache
from raidcue.config import Settings
from raidcue.errors import DecodeFailure
from raidcue.models import Method, Request
from raidcue.scheduler import BoundedScheduler
from raidcue.schemas import Manifest, PlatformEnvelope
from raidcue.store import DurableStore, MemoryStore
from raidcue.transport import ResilientTransport

logger = logging.getLogger(__name__)

MANIFEST_STORAGE_KEY = "platform_manifest"
ACTIVITY_DEFINITIONS = "DestinyActivityDefinition"


def _unwrap(data: Any) -> Any:
    """Pull the payload out of the platform's response envelope."""
    return PlatformEnvelope.model_validate(data).response


class PlatformClient:
    """
    Every call to the platform goes through one shared scheduler.

    The scheduler caps how many requests are in flight, so callers can fire
    as many requests as they like without tripping the platform's
    connection limit. The manifest, which is large and needed by almost
    every screen, sits behind a ``ReferenceCache``.

    Example:
        client = PlatformClient(api_key, concurrency=20, store=SQLiteStore("raidcue.db"))
        report = await client.get_post_game_carnage_report("1234567890")
        definitions = await client.get_activity_definitions()
        await client.close()
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://www.bungie.net",
        stats_url: str = "https://stats.bungie.net",
        concurrency: int = 20,
        auth_prefixes: tuple[str, ...] | list[str] = ("/Platform/",),
        retry: int = 0,
        timeout: float | None = 30.0,
        backoff: float = 0.2,
        store: DurableStore | None = None,
        manifest_max_age: float = 3600.0,
        clock: Callable[[], float] = time.time,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("A platform API key is required")
        if retry < 0:
            raise ValueError(f"Retry budget must be non-negative, got {retry}")

        self.base_url = base_url.rstrip("/")
        self.stats_url = stats_url.rstrip("/")
        self.retry = retry

        self.scheduler = BoundedScheduler(concurrency)
        self.transport = ResilientTransport(
            api_key=api_key,
            auth_prefixes=auth_prefixes,
            timeout=timeout,
            backoff=backoff,
            client=client,
        )
        self.store = store if store is not None else MemoryStore()
        self.manifest_cache = ReferenceCache(
            self._fetch_manifest,
            self.store,
            key=MANIFEST_STORAGE_KEY,
            max_age=manifest_max_age,
            clock=clock,
            validate=Manifest.model_validate,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: DurableStore | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> PlatformClient:
        return cls(
            settings.platform_api_key,
            base_url=settings.platform_base_url,
            stats_url=settings.platform_stats_url,
            concurrency=settings.platform_concurrency,
            auth_prefixes=settings.platform_auth_prefixes,
            retry=settings.retry_budget,
            timeout=settings.request_timeout_seconds,
            backoff=settings.backoff_seconds,
            store=store,
            manifest_max_age=settings.manifest_max_age_seconds,
            client=client,
        )

    async def close(self) -> None:
        await self.scheduler.drain()
        await self.transport.close()

    async def __aenter__(self) -> PlatformClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # --- Raw access ---

    async def request(
        self,
        path: str,
        *,
        method: Method | str = Method.GET,
        params: dict[str, Any] | None = None,
        json: Any = None,
        cancel: asyncio.Event | None = None,
        retry: int | None = None,
        validate: Callable[[Any], Any] | None = None,
        host: str | None = None,
    ) -> Any:
        """
        Send one request through the scheduler.

        Args:
            path: Path relative to ``host`` (default: the base URL), or an
                absolute URL.
            method: HTTP method.
            params: Query parameters.
            json: Body for POST requests.
            cancel: Event that abandons the request when set.
            retry: Retry budget for >=500 responses (default: the client's).
            validate: Optional ``validate(json) -> T``.
            host: Host to resolve ``path`` against.
        """
        request = Request(
            url=self._url(path, host),
            method=Method(method),
            params=dict(params or {}),
            json=json,
            cancel=cancel,
            retry=self.retry if retry is None else retry,
        )
        return await self.scheduler.schedule(
            lambda: self.transport.call(request, validate)
        )

    async def platform(self, path: str, **kwargs: Any) -> Any:
        """Like ``request`` but returns the payload inside the envelope."""
        validate = kwargs.pop("validate", None)
        data = await self.request(path, validate=_unwrap, **kwargs)
        if validate is None:
            return data
        try:
            return validate(data)
        except ValueError as exc:
            raise DecodeFailure(
                message="Response validation failed",
                url=self._url(path, kwargs.get("host")),
                body=data,
            ) from exc

    def _url(self, path: str, host: str | None = None) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return (host or self.base_url) + path

    # --- Reference data ---

    async def get_manifest(self, *, force_refresh: bool = False) -> Payload:
        """The platform manifest, from cache when possible."""
        return await self.manifest_cache.get(force_refresh=force_refresh)

    async def _fetch_manifest(self) -> Payload:
        manifest = await self.platform("/Platform/Destiny2/Manifest/")
        try:
            Manifest.model_validate(manifest)
        except ValueError as exc:
            raise DecodeFailure(
                message="Manifest did not have the expected shape",
                url=self._url("/Platform/Destiny2/Manifest/"),
                body=manifest,
            ) from exc
        return manifest

    async def get_manifest_component(
        self, table_name: str, language: str = "en"
    ) -> dict[str, Any]:
        """Fetch one definitions table named in the manifest."""
        manifest = Manifest.model_validate(await self.get_manifest())
        try:
            path = manifest.world_component_paths[language][table_name]
        except KeyError:
            raise ValueError(
                f"Manifest has no {table_name!r} table for language {language!r}"
            ) from None
        return await self.request(path)

    async def get_activity_definitions(self, language: str = "en") -> dict[str, Any]:
        return await self.get_manifest_component(ACTIVITY_DEFINITIONS, language)

    # --- Endpoints ---

    async def get_post_game_carnage_report(
        self, activity_id: str | int, *, cancel: asyncio.Event | None = None
    ) -> dict[str, Any]:
        return await self.platform(
            f"/Platform/Destiny2/Stats/PostGameCarnageReport/{activity_id}/",
            host=self.stats_url,
            cancel=cancel,
        )

    async def get_groups_for_member(
        self,
        membership_id: str | int,
        membership_type: int,
        *,
        group_type: int = 1,
        filter: int = 0,
        cancel: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        return await self.platform(
            f"/Platform/GroupV2/User/{membership_type}/{membership_id}/{filter}/{group_type}/",
            cancel=cancel,
        )
