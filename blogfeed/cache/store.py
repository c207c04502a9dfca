"""
Cache Stores
============

Key/value stores for opaque string blobs with a per-entry TTL.

Absence is a normal answer (``None``). Stores raise CacheError when the
backend itself misbehaves; callers decide whether that matters.
"""

import asyncio
import sqlite3
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from ..database.connection import DatabaseConnection
from ..utils.exceptions import CacheError, ErrorCode
from ..utils.logging import get_logger_for_component


class CacheStore(ABC):
    """Async key/value cache interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""


class MemoryCacheStore(CacheStore):
    """In-process store. Entries vanish with the process."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self.clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self.clock() + ttl_seconds)

    def __len__(self) -> int:
        return len(self._entries)


class SQLiteCacheStore(CacheStore):
    """
    Store backed by an SQLite file, shared by every worker on one host.

    Blocking calls run in a worker thread so the event loop stays free.
    """

    def __init__(
        self,
        db_path: str,
        clock: Callable[[], float] = time.time,
        connection: Optional[DatabaseConnection] = None,
    ):
        self.clock = clock
        self.db = connection or DatabaseConnection(db_path)
        self.logger = get_logger_for_component("cache_store")

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get_sync, key)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        await asyncio.to_thread(self._put_sync, key, value, ttl_seconds)

    def _get_sync(self, key: str) -> Optional[str]:
        try:
            row = self.db.execute_one(
                "SELECT value, expires_at FROM cache_entries WHERE key = ?", (key,)
            )
        except sqlite3.Error as e:
            raise CacheError(
                f"Cache read failed: {e}",
                cache_key=key,
                error_code=ErrorCode.CACHE_READ_FAILED,
            ) from e

        if row is None:
            return None
        if self.clock() >= row["expires_at"]:
            return None
        return row["value"]

    def _put_sync(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.db.execute_update(
                "INSERT OR REPLACE INTO cache_entries (key, value, expires_at) VALUES (?, ?, ?)",
                (key, value, self.clock() + ttl_seconds),
            )
        except sqlite3.Error as e:
            raise CacheError(
                f"Cache write failed: {e}",
                cache_key=key,
                error_code=ErrorCode.CACHE_WRITE_FAILED,
            ) from e

    def close(self) -> None:
        self.db.close_all_connections()


class NullCacheStore(CacheStore):
    """Store for deployments without a cache: every read misses."""

    async def get(self, key: str) -> Optional[str]:
        return None

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        return None


def create_cache_store(settings) -> CacheStore:
    """Build the store selected by ``settings.cache.backend``.

    Raises:
        CacheError: If the configured backend cannot be opened
    """
    from ..config.settings import CacheBackend

    backend = settings.cache.backend
    if backend == CacheBackend.SQLITE:
        try:
            return SQLiteCacheStore(settings.cache.sqlite_path)
        except (sqlite3.Error, OSError) as e:
            raise CacheError(
                f"Cannot open SQLite cache at {settings.cache.sqlite_path}: {e}",
                error_code=ErrorCode.CACHE_UNAVAILABLE,
            ) from e
    if backend == CacheBackend.NONE:
        return NullCacheStore()
    return MemoryCacheStore()
