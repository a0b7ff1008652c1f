"""Expose storage and transport backends."""

from .entity_cache import CacheChange, CacheTransaction, SQLiteEntityCache
from .http_transport import HttpTransport, TransportError, TransportResponse
from .sqlite_store import SQLiteStore

__all__ = [
    "CacheChange",
    "CacheTransaction",
    "HttpTransport",
    "SQLiteEntityCache",
    "SQLiteStore",
    "TransportError",
    "TransportResponse",
]
