"""Core data models for raidcue."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt

T = TypeVar("T")


class Method(str, Enum):
    """HTTP methods the transport knows how to send."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class CacheState(str, Enum):
    """Where the reference cache sits in its refresh cycle."""

    EMPTY = "empty"
    COLD_FETCHING = "cold_fetching"
    WARM_FRESH = "warm_fresh"
    WARM_STALE = "warm_stale"


@dataclass
class Request:
    """Everything the transport needs to perform one call."""

    url: str
    method: Method = Method.GET
    params: dict[str, Any] = field(default_factory=dict)
    json: Any = None
    cancel: asyncio.Event | None = None  # Set it to abandon the call
    retry: int = 0  # Additional attempts on >=500

    def __post_init__(self) -> None:
        if self.retry < 0:
            raise ValueError(f"Retry budget must be non-negative, got {self.retry}")
        self.method = Method(self.method)


@dataclass(frozen=True)
class CachedRecord(Generic[T]):
    """A payload and when it was fetched. Replaced whole, never mutated."""

    fetched_at: float  # Unix seconds
    payload: T


class StoredRecord(BaseModel):
    """Shape of the record kept in the durable store."""

    model_config = ConfigDict(populate_by_name=True)

    stored_at: StrictInt = Field(alias="storedAt", gt=0)  # Epoch millis
    payload: dict[str, Any]
