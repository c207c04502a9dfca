"""
Feed Fetcher
============

Async retrieval of the upstream syndication document with a bounded
timeout. Any non-success outcome is raised as FeedFetchError.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import aiohttp
import certifi

from ..config.settings import get_settings
from ..utils.exceptions import ErrorCode, FeedFetchError
from ..utils.logging import PerformanceLogger, get_logger_for_component


def create_ssl_context() -> ssl.SSLContext:
    """TLS context trusting the certifi CA bundle."""
    return ssl.create_default_context(cafile=certifi.where())


def create_connector(ssl_context: Optional[ssl.SSLContext] = None) -> aiohttp.TCPConnector:
    return aiohttp.TCPConnector(ssl=ssl_context or create_ssl_context(), limit_per_host=2)


class FeedFetcher:
    """Fetches the raw feed document over HTTPS."""

    def __init__(
        self,
        feed_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: Optional[str] = None,
    ):
        """Initialize feed fetcher.

        Args:
            feed_url: Upstream feed URL (default from config)
            timeout: Total request timeout in seconds (default from config)
            session: Shared aiohttp session; a private one is opened per fetch otherwise
            user_agent: User-Agent header (default built from app name and version)
        """
        if feed_url is None or timeout is None or user_agent is None:
            settings = get_settings()
            feed_url = feed_url or str(settings.feed.url)
            timeout = timeout or settings.limits.request_timeout
            user_agent = user_agent or f"{settings.app_name}/{settings.version}"

        self.feed_url = feed_url
        self.timeout = timeout
        self.user_agent = user_agent
        self._session = session
        self.logger = get_logger_for_component("feed_fetcher", feed_url=feed_url)

        self.ssl_context = create_ssl_context()

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Yield the shared session, or a configured short-lived one."""
        if self._session is not None:
            yield self._session
            return

        connector = create_connector(self.ssl_context)
        async with aiohttp.ClientSession(
            connector=connector, headers=self.default_headers()
        ) as session:
            yield session

    def default_headers(self) -> dict:
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/xml, text/xml, */*",
        }

    async def fetch(self) -> str:
        """Fetch the feed document.

        Returns:
            Response body decoded as text

        Raises:
            FeedFetchError: On timeout, network failure or non-2xx status
        """
        start_time = datetime.now(timezone.utc)
        client_timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            with PerformanceLogger(self.logger, "feed fetch", feed_url=self.feed_url):
                async with self.get_session() as session:
                    async with session.get(
                        self.feed_url,
                        timeout=client_timeout,
                        headers=self.default_headers(),
                        ssl=self.ssl_context,
                    ) as response:
                        if not 200 <= response.status < 300:
                            raise FeedFetchError(
                                f"HTTP {response.status}: {response.reason}",
                                status=response.status,
                                feed_url=self.feed_url,
                                error_code=self._status_error_code(response.status),
                            )

                        content = await response.text(errors="replace")

        except FeedFetchError as e:
            self.logger.warning(f"Feed fetch failed: {e}")
            raise

        except asyncio.TimeoutError as e:
            error_msg = f"Request timeout after {self.timeout}s"
            self.logger.warning(f"Feed fetch timeout: {error_msg}")
            raise FeedFetchError(
                error_msg,
                feed_url=self.feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e

        except aiohttp.ClientError as e:
            error_msg = f"Network error: {e}"
            self.logger.warning(f"Feed fetch failed: {error_msg}")
            raise FeedFetchError(
                error_msg,
                feed_url=self.feed_url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        self.logger.info(f"Fetched {len(content)} chars in {elapsed:.2f}s")
        return content

    @staticmethod
    def _status_error_code(status: int) -> ErrorCode:
        if status in (401, 403):
            return ErrorCode.FEED_ACCESS_DENIED
        if status in (404, 410):
            return ErrorCode.FEED_NOT_FOUND
        return ErrorCode.FEED_UPSTREAM_ERROR
