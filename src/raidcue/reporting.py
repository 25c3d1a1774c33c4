"""Client for the internal reporting service.

Plain request/response. These calls go straight through the transport;
the reporting service has no connection limit worth scheduling around.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx

from raidcue.config import Settings
from raidcue.models import Method, Request
from raidcue.schemas import (
    ActivityLoadResponse,
    ActivityReport,
    LeaderboardEntry,
    OpType,
    Player,
    PlayerSearchResult,
    validator,
)
from raidcue.transport import ResilientTransport

_players = validator(list[Player])
_search_results = validator(list[PlayerSearchResult])
_op_types = validator(list[OpType])
_reports = validator(list[ActivityReport])
_leaderboard = validator(list[LeaderboardEntry])


class ReportingClient:
    """
    Typed access to players, activity reports and leaderboards.

    Example:
        async with ReportingClient("http://localhost:8080/api") as reporting:
            players = await reporting.search_players("Guardian")
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080/api",
        *,
        retry: int = 0,
        timeout: float | None = 30.0,
        backoff: float = 0.2,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.retry = retry
        self.transport = ResilientTransport(timeout=timeout, backoff=backoff, client=client)

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: httpx.AsyncClient | None = None
    ) -> ReportingClient:
        return cls(
            settings.reporting_base_url,
            retry=settings.retry_budget,
            timeout=settings.request_timeout_seconds,
            backoff=settings.backoff_seconds,
            client=client,
        )

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> ReportingClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path

    async def send(
        self,
        method: Method | str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        cancel: asyncio.Event | None = None,
        validate: Callable[[Any], Any] | None = None,
    ) -> Any:
        request = Request(
            url=self.url(path),
            method=Method(method),
            params=dict(params or {}),
            json=json,
            cancel=cancel,
            retry=self.retry,
        )
        return await self.transport.call(request, validate)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.send(Method.GET, path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return await self.send(Method.POST, path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return await self.send(Method.PUT, path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.send(Method.DELETE, path, **kwargs)

    # --- Players ---

    async def list_players(self) -> list[Player]:
        return await self.get("/players", validate=_players)

    async def search_players(self, name: str) -> list[PlayerSearchResult]:
        return await self.post(
            "/players/search", {"playerName": name}, validate=_search_results
        )

    async def get_player(self, player_id: str, membership_type: int) -> Player:
        return await self.get(
            f"/players/{membership_type}/{player_id}", validate=Player.model_validate
        )

    async def get_player_reports(self, player_id: str, activity_id: str) -> list[ActivityReport]:
        return await self.get(f"/players/{player_id}/stats/{activity_id}", validate=_reports)

    async def load_player_reports(self, player_id: str) -> ActivityLoadResponse:
        """Ask the service to pull the player's latest activity history."""
        return await self.post(
            f"/players/{player_id}/load", {}, validate=ActivityLoadResponse.model_validate
        )

    # --- Activities ---

    async def list_activities(self) -> list[OpType]:
        return await self.get("/activities", validate=_op_types)

    async def completions_leaderboard(self, activity_id: str) -> list[LeaderboardEntry]:
        return await self.get(
            f"/activities/leaderboards/completions/{activity_id}", validate=_leaderboard
        )

    async def speed_leaderboard(self, activity_id: str) -> list[LeaderboardEntry]:
        return await self.get(
            f"/activities/leaderboards/speed/{activity_id}", validate=_leaderboard
        )

    async def total_time_leaderboard(self, activity_id: str) -> list[LeaderboardEntry]:
        return await self.get(
            f"/activities/leaderboards/totalTime/{activity_id}", validate=_leaderboard
        )
