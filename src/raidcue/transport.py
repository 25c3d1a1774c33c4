"""Resilient transport: one HTTP call, typed failures, optional retry."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Iterable, TypeVar

import httpx
from pydantic import ValidationError

from raidcue.errors import DecodeFailure, HttpStatusFailure, NetworkFailure
from raidcue.models import Method, Request

logger = logging.getLogger(__name__)

T = TypeVar("T")

API_KEY_HEADER = "X-API-Key"


def _parse_body(response: httpx.Response) -> Any:
    """Best-effort body for failure reports: JSON if it parses, else text."""
    text = response.text
    if not text:
        return ""
    try:
        return json.loads(text)
    except ValueError:
        return text


class ResilientTransport:
    """
    Performs single HTTP requests and turns outcomes into typed results.

    Responses in the 2xx range are decoded as JSON (204 gives ``None``).
    Anything else raises a ``TransportFailure`` subclass. Responses with
    status >= 500 are retried up to the request's retry budget, waiting
    ``attempt * backoff`` seconds before each new attempt.

    The API key is attached only to requests whose path starts with one of
    ``auth_prefixes``.

    ``timeout`` bounds each attempt as a whole, body included, not just the
    gaps between bytes.

    Example:
        transport = ResilientTransport(api_key="...", auth_prefixes=["/Platform/"])
        data = await transport.call(Request("https://host/Platform/Thing/"))
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        auth_prefixes: Iterable[str] = (),
        timeout: float | None = 30.0,
        backoff: float = 0.2,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._auth_prefixes = tuple(auth_prefixes)
        self._timeout = timeout
        self._backoff = backoff
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ResilientTransport:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def requires_auth(self, url: httpx.URL) -> bool:
        return any(url.path.startswith(prefix) for prefix in self._auth_prefixes)

    def build(self, request: Request) -> httpx.Request:
        """Translate a request descriptor into an ``httpx.Request``."""
        url = httpx.URL(request.url)
        if request.params:
            url = url.copy_merge_params(
                {k: str(v) for k, v in request.params.items()}
            )

        headers: dict[str, str] = {}
        if self._api_key and self.requires_auth(url):
            headers[API_KEY_HEADER] = self._api_key

        body = None
        if request.json is not None and request.method != Method.GET:
            headers["Content-Type"] = "application/json"
            body = json.dumps(request.json).encode()

        return self._client.build_request(
            request.method.value, url, headers=headers, content=body
        )

    async def call(
        self,
        request: Request,
        validate: Callable[[Any], T] | None = None,
    ) -> Any:
        """
        Perform ``request`` and return its decoded payload.

        Args:
            request: The request descriptor.
            validate: Optional ``validate(json) -> T``. Its ``ValueError``
                (pydantic's ``ValidationError`` included) becomes a
                ``DecodeFailure``.

        Raises:
            HttpStatusFailure: Non-success status after retries ran out.
            NetworkFailure: No response, timeout, or cancellation.
            DecodeFailure: Body was not JSON or failed validation.
        """
        attempt = 0
        while True:
            response = await self._send(request)
            if response.is_success:
                return self._decode(request, response, validate)

            if response.status_code >= 500 and attempt < request.retry:
                attempt += 1
                delay = attempt * self._backoff
                logger.warning(
                    "%s %s returned %d, retry %d/%d in %.2fs",
                    request.method.value, response.url.path, response.status_code,
                    attempt, request.retry, delay,
                )
                await self._wait(request, delay)
                continue

            raise HttpStatusFailure(
                message=f"Request failed {response.status_code}",
                url=str(response.url),
                status=response.status_code,
                body=_parse_body(response),
            )

    async def _send(self, request: Request) -> httpx.Response:
        http_request = self.build(request)
        try:
            if request.cancel is None:
                return await self._attempt(http_request)
            return await self._race_cancel(request, request.cancel, self._attempt(http_request))
        except asyncio.TimeoutError as exc:
            logger.warning(
                "%s %s exceeded %.2fs deadline",
                request.method.value, http_request.url.path, self._timeout,
            )
            raise NetworkFailure(
                message=f"Request timed out after {self._timeout}s",
                url=request.url,
                timed_out=True,
            ) from exc
        except httpx.TimeoutException as exc:
            raise NetworkFailure(
                message=f"Request timed out: {exc}",
                url=request.url,
                timed_out=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkFailure(
                message=f"Network error: {exc}",
                url=request.url,
            ) from exc

    async def _attempt(self, http_request: httpx.Request) -> httpx.Response:
        # httpx only bounds each read; a trickling body needs an overall cap
        if self._timeout is None:
            return await self._client.send(http_request)
        return await asyncio.wait_for(self._client.send(http_request), self._timeout)

    async def _wait(self, request: Request, delay: float) -> None:
        if request.cancel is None:
            await asyncio.sleep(delay)
        else:
            await self._race_cancel(request, request.cancel, asyncio.sleep(delay))

    async def _race_cancel(self, request: Request, cancel: asyncio.Event, coro: Any) -> Any:
        """Run ``coro`` unless ``cancel`` fires first."""
        if cancel.is_set():
            coro.close()
            raise self._cancelled(request)

        work = asyncio.ensure_future(coro)
        cancelled = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({work, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            cancelled.cancel()

        if not work.done():
            work.cancel()
            try:
                await work
            except asyncio.CancelledError:
                pass
            raise self._cancelled(request)
        return work.result()

    def _cancelled(self, request: Request) -> NetworkFailure:
        logger.info("%s %s cancelled", request.method.value, request.url)
        return NetworkFailure(message="Request cancelled", url=request.url, cancelled=True)

    def _decode(
        self,
        request: Request,
        response: httpx.Response,
        validate: Callable[[Any], T] | None,
    ) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            data = response.json()
        except ValueError as exc:
            raise DecodeFailure(
                message=f"Response was not valid JSON: {exc}",
                url=str(response.url),
                status=response.status_code,
                body=response.text,
            ) from exc

        if validate is None:
            return data
        try:
            return validate(data)
        except (ValidationError, ValueError) as exc:
            raise DecodeFailure(
                message="Response validation failed",
                url=str(response.url),
                status=response.status_code,
                body=data,
            ) from exc
