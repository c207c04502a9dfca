"""
BlogFeed Cache Layer
====================

Time-boxed caching of the parsed feed in front of the upstream source.
"""

from .store import CacheStore, MemoryCacheStore, SQLiteCacheStore, NullCacheStore, create_cache_store
from .gateway import CacheGateway, create_gateway

__all__ = [
    "CacheStore",
    "MemoryCacheStore",
    "SQLiteCacheStore",
    "NullCacheStore",
    "create_cache_store",
    "CacheGateway",
    "create_gateway",
]
