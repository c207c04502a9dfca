"""
Cache Gateway
=============

Serves the latest parsed record set while bounding how often the upstream
feed is fetched.

A fresh cache entry is served as-is. Otherwise the feed is fetched and
parsed, and a non-empty result is stored for the next caller. The cache is
best-effort: read and write failures are logged and never reach the caller.
Upstream failures always do.

Concurrent misses may each fetch upstream; the last write wins.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_parser import FeedParser
from ..ingestion.models import FeedRecord, FeedSnapshot
from ..utils.exceptions import CacheError, ErrorCode
from ..utils.logging import get_logger_for_component
from .store import CacheStore


DEFAULT_CACHE_KEY = "blog_feed_cache"
DEFAULT_TTL_SECONDS = 600


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def encode_entry(records: List[FeedRecord], cached_at: datetime) -> str:
    """Serialize a cache entry to its stored JSON form."""
    return json.dumps(
        {
            "items": [record.model_dump(by_alias=True) for record in records],
            "updatedAt": format_timestamp(cached_at),
        },
        ensure_ascii=False,
    )


def decode_entry(blob: str) -> Tuple[List[FeedRecord], datetime]:
    """Inverse of encode_entry.

    Raises:
        CacheError: If the blob is not a well-formed entry
    """
    try:
        data = json.loads(blob)
        records = [FeedRecord.model_validate(item) for item in data["items"]]
        raw_cached_at = data["updatedAt"]
        cached_at = datetime.fromisoformat(raw_cached_at.replace("Z", "+00:00"))
    except (ValueError, KeyError, TypeError, AttributeError, PydanticValidationError) as e:
        raise CacheError(
            f"Corrupt cache entry: {e}", error_code=ErrorCode.CACHE_CORRUPT_ENTRY
        ) from e

    if cached_at.tzinfo is None:
        cached_at = cached_at.replace(tzinfo=timezone.utc)
    return records, cached_at


class CacheGateway:
    """Read-through cache in front of the feed fetcher and parser."""

    def __init__(
        self,
        fetcher: FeedFetcher,
        store: Optional[CacheStore] = None,
        parser: Optional[FeedParser] = None,
        cache_key: str = DEFAULT_CACHE_KEY,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        cache_timeout: Optional[float] = 2.0,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize gateway.

        Args:
            fetcher: Upstream document source
            store: Cache store; None disables caching
            parser: Feed parser (default extractor settings when omitted)
            cache_key: Key of the single feed entry
            ttl_seconds: Seconds an entry stays fresh
            cache_timeout: Upper bound for one cache read or write, None for no bound
            clock: Returns the current UTC instant
        """
        self.fetcher = fetcher
        self.store = store
        self.parser = parser or FeedParser()
        self.cache_key = cache_key
        self.ttl_seconds = ttl_seconds
        self.cache_timeout = cache_timeout
        self.clock = clock
        self.logger = get_logger_for_component("cache_gateway", cache_key=cache_key)

    async def get(self) -> FeedSnapshot:
        """Return the current record set.

        Raises:
            FeedFetchError: If the cache cannot answer and upstream fails
        """
        cached = await self._read_cache()
        if cached is not None:
            records, cached_at = cached
            self.logger.info(f"Serving {len(records)} cached records")
            return FeedSnapshot(records=records, cached=True, updated_at=cached_at)

        document = await self.fetcher.fetch()
        records = self.parser.parse(document)
        # Stored entries keep millisecond precision
        now = self.clock()
        fetched_at = now.replace(microsecond=now.microsecond // 1000 * 1000)

        if records:
            await self._write_cache(records, fetched_at)
        else:
            self.logger.info("Upstream feed has no items; not caching")

        return FeedSnapshot(records=records, cached=False, updated_at=fetched_at)

    async def _read_cache(self) -> Optional[Tuple[List[FeedRecord], datetime]]:
        if self.store is None:
            return None

        try:
            blob = await asyncio.wait_for(self.store.get(self.cache_key), self.cache_timeout)
            if blob is None:
                return None

            records, cached_at = decode_entry(blob)

        except asyncio.TimeoutError:
            self.logger.warning(f"Cache read timed out after {self.cache_timeout}s, fetching fresh feed")
            return None
        except Exception as e:
            self.logger.warning(f"Cache read failed, fetching fresh feed: {e}")
            return None

        age = (self.clock() - cached_at).total_seconds()
        if age >= self.ttl_seconds:
            self.logger.debug(f"Cache entry is {age:.0f}s old, refreshing")
            return None

        return records, cached_at

    async def _write_cache(self, records: List[FeedRecord], cached_at: datetime) -> None:
        if self.store is None:
            return

        try:
            await asyncio.wait_for(
                self.store.put(self.cache_key, encode_entry(records, cached_at), self.ttl_seconds),
                self.cache_timeout,
            )
            self.logger.info(f"Cached {len(records)} records for {self.ttl_seconds}s")
        except asyncio.TimeoutError:
            self.logger.warning(f"Cache write timed out after {self.cache_timeout}s")
        except Exception as e:
            self.logger.warning(f"Failed to cache feed: {e}")


def create_gateway(settings, store: Optional[CacheStore] = None, session=None) -> CacheGateway:
    """Wire a gateway from settings.

    Args:
        settings: Application settings
        store: Cache store; built from ``settings.cache`` when omitted
        session: Optional shared aiohttp session for upstream fetches
    """
    from ..ingestion.field_extractor import ExtractionDefaults, FieldExtractor
    from .store import create_cache_store

    if store is None:
        try:
            store = create_cache_store(settings)
        except CacheError as e:
            get_logger_for_component("cache_gateway").warning(
                f"Cache unavailable, serving uncached: {e}"
            )
            store = None

    fetcher = FeedFetcher(
        feed_url=str(settings.feed.url),
        timeout=settings.limits.request_timeout,
        session=session,
        user_agent=f"{settings.app_name}/{settings.version}",
    )
    parser = FeedParser(FieldExtractor(defaults=ExtractionDefaults.from_settings(settings)))

    return CacheGateway(
        fetcher=fetcher,
        store=store,
        parser=parser,
        cache_key=settings.cache.key,
        ttl_seconds=settings.cache.ttl_seconds,
        cache_timeout=settings.cache.operation_timeout,
    )
