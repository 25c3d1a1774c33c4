"""Test helpers: a scripted fake upstream built on httpx.MockTransport."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

import httpx


class FakeUpstream:
    """Records every request and answers with a scripted handler."""

    def __init__(self, handler: Callable[[httpx.Request], Any]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            response = self.handler(request)
            if inspect.isawaitable(response):
                response = await response
            return response
        finally:
            self.in_flight -= 1

    @property
    def attempts(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_response(status: int, body: Any = None) -> httpx.Response:
    """Fresh response: str bodies are sent as text, None as empty, else JSON."""
    if body is None:
        return httpx.Response(status)
    if isinstance(body, str):
        return httpx.Response(status, text=body)
    return httpx.Response(status, json=body)


def sequence(*specs: tuple[int, Any]) -> Callable[[httpx.Request], httpx.Response]:
    """Handler that replays (status, body) pairs in order, repeating the last."""
    remaining = list(specs)

    def handler(request: httpx.Request) -> httpx.Response:
        status, body = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return make_response(status, body)

    return handler


async def settle(rounds: int = 50) -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def envelope(payload: Any) -> dict[str, Any]:
    """Wrap a payload the way the platform does."""
    return {"Response": payload, "ErrorCode": 1, "Message": "Ok"}
