"""Failure types raised by the transport.

Every failure carries the status code when one was received and a
human-readable message, so callers can show something sensible without
inspecting the failure's internals.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Messages shown for statuses users commonly hit
STATUS_MESSAGES: dict[int, str] = {
    401: "Not authorized.",
    404: "Requested resource not found.",
    429: "Too many requests. Slow down a bit.",
    500: "Server error. Please try again later.",
}


@dataclass(eq=False)
class TransportFailure(Exception):
    """Base failure for a call that did not produce a usable payload.

    Attributes:
        message: Human-readable description.
        url: Target address of the failed call.
        status: HTTP status code, when a response was received.
        body: Response body (parsed JSON or text), when one was received.
    """

    message: str
    url: str = ""
    status: int | None = None
    body: Any = None

    kind = "transport"

    def __post_init__(self) -> None:
        super().__init__(self.message)


class HttpStatusFailure(TransportFailure):
    """The upstream responded with a non-success status."""

    kind = "http_status"

    @property
    def retryable(self) -> bool:
        return self.status is not None and self.status >= 500


@dataclass(eq=False)
class NetworkFailure(TransportFailure):
    """No response was obtained (connection error, timeout, cancellation)."""

    cancelled: bool = False
    timed_out: bool = False

    kind = "network"


class DecodeFailure(TransportFailure):
    """The response body did not parse or did not have the expected shape."""

    kind = "decode"


def user_message(err: BaseException | str | None) -> str:
    """Render a failure as a message fit for an end user."""
    if err is None:
        return "Unknown error"
    if isinstance(err, str):
        return err
    if isinstance(err, TransportFailure):
        if err.status is not None and err.status in STATUS_MESSAGES:
            return STATUS_MESSAGES[err.status]
        if err.message:
            return err.message
        if err.status is not None:
            return f"HTTP error {err.status}"
        return "Error occurred"
    return str(err) or f"{type(err).__name__} error"
