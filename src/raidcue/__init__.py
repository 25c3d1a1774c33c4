"""raidcue - A control tower for calls to a rate-limited game platform API."""

from raidcue.cache import ReferenceCache
from raidcue.errors import (
    DecodeFailure,
    HttpStatusFailure,
    NetworkFailure,
    TransportFailure,
    user_message,
)
from raidcue.models import CachedRecord, CacheState, Method, Request
from raidcue.platform import PlatformClient
from raidcue.reporting import ReportingClient
from raidcue.scheduler import BoundedScheduler
from raidcue.store import MemoryStore, SQLiteStore
from raidcue.transport import ResilientTransport

__version__ = "0.1.0"
__all__ = [
    "BoundedScheduler",
    "CacheState",
    "CachedRecord",
    "DecodeFailure",
    "HttpStatusFailure",
    "MemoryStore",
    "Method",
    "NetworkFailure",
    "PlatformClient",
    "ReferenceCache",
    "ReportingClient",
    "Request",
    "ResilientTransport",
    "SQLiteStore",
    "TransportFailure",
    "user_message",
]
