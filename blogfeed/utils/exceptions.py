"""
BlogFeed Custom Exceptions
==========================

Every error raised by BlogFeed code is a BlogFeedError carrying an error
code, a context dict for logs, and a message safe to show on the page.

Cache errors stay inside the cache gateway. Feed errors travel up to the
HTTP boundary, which renders them as the error envelope.
"""

import asyncio
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration (C)
    CONFIG_INVALID = "C001"

    # Upstream feed (F)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_NETWORK_ERROR = "F004"
    FEED_ACCESS_DENIED = "F005"
    FEED_NOT_FOUND = "F006"
    FEED_UPSTREAM_ERROR = "F007"

    # Cache store (K)
    CACHE_UNAVAILABLE = "K001"
    CACHE_READ_FAILED = "K002"
    CACHE_WRITE_FAILED = "K003"
    CACHE_CORRUPT_ENTRY = "K004"

    # Runtime (S)
    SYSTEM_UNEXPECTED = "S001"
    SYSTEM_TIMEOUT = "S005"


class BlogFeedError(Exception):
    """Base exception for all BlogFeed errors."""

    default_code: Optional[ErrorCode] = None
    default_user_message: Optional[str] = None
    default_recoverable = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
    ):
        """Initialize BlogFeed error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code (class default when omitted)
            context: Additional context information
            user_message: Message safe to show to site visitors
            recoverable: Whether a later request may succeed
        """
        super().__init__(message)
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})
        self.user_message = user_message or self.default_user_message or message
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Flatten for ``extra=`` in log calls."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        message = super().__str__()
        if self.error_code:
            return f"[{self.error_code.value}] {message}"
        return message


class ConfigurationError(BlogFeedError):
    """Settings could not be loaded or failed validation."""

    default_code = ErrorCode.CONFIG_INVALID

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        super().__init__(message, **kwargs)
        if config_key:
            self.context["config_key"] = config_key


class FeedError(BlogFeedError):
    """The upstream feed could not be turned into records."""

    default_code = ErrorCode.FEED_UPSTREAM_ERROR
    default_user_message = "Unable to fetch blog posts"
    default_recoverable = True

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if feed_url:
            self.context["feed_url"] = feed_url


class FeedFetchError(FeedError):
    """Upstream feed could not be fetched (network, timeout or HTTP status).

    ``status`` is the upstream HTTP status when one was received.
    """

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status
        if status is not None:
            self.context["http_status"] = status


class CacheError(BlogFeedError):
    """Cache store misbehaved. Never surfaced past the cache gateway."""

    default_code = ErrorCode.CACHE_UNAVAILABLE
    default_user_message = "Cache temporarily unavailable"
    default_recoverable = True

    def __init__(self, message: str, cache_key: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if cache_key:
            self.context["cache_key"] = cache_key


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> BlogFeedError:
    """Log ``exception`` and return it as a BlogFeedError.

    BlogFeed errors are returned unchanged. Timeouts and connection
    failures get their own codes; anything else is unexpected.

    Args:
        exception: Original exception
        logger: Logger used for the error record
        operation: What was being done, for the log message
        context: Additional context information

    Returns:
        The categorized error
    """
    if isinstance(exception, BlogFeedError):
        error = exception
    else:
        context = {
            **(context or {}),
            "operation": operation,
            "original_exception_type": type(exception).__name__,
        }

        if isinstance(exception, (asyncio.TimeoutError, TimeoutError)):
            error = BlogFeedError(
                f"Timed out during {operation}",
                error_code=ErrorCode.SYSTEM_TIMEOUT,
                context=context,
                user_message="Blog posts took too long to load",
                recoverable=True,
            )
        elif isinstance(exception, ConnectionError):
            error = FeedError(
                f"Network error during {operation}: {exception}",
                error_code=ErrorCode.FEED_NETWORK_ERROR,
                context=context,
            )
        else:
            error = BlogFeedError(
                f"Unexpected error during {operation}: {exception}",
                error_code=ErrorCode.SYSTEM_UNEXPECTED,
                context=context,
                user_message="An unexpected error occurred",
                recoverable=True,
            )

    logger.error(f"Operation '{operation}' failed: {error}", extra=error.to_dict())
    return error


def is_retryable_error(exception: BlogFeedError) -> bool:
    """Whether a later request may succeed where this one failed."""
    if not exception.recoverable:
        return False

    return exception.error_code in {
        ErrorCode.FEED_NETWORK_ERROR,
        ErrorCode.FEED_FETCH_TIMEOUT,
        ErrorCode.FEED_UPSTREAM_ERROR,
        ErrorCode.CACHE_UNAVAILABLE,
        ErrorCode.SYSTEM_TIMEOUT,
    }


def get_user_friendly_message(exception: Exception) -> str:
    if isinstance(exception, BlogFeedError):
        return exception.user_message
    return "An unexpected error occurred. Please try again later."
