"""
BlogFeed - Blog Feed Mirror
===========================

Fetches the site's syndication feed, extracts post records without a full
XML parser, and serves them through a short-lived cache.

Main Components:
- Ingestion: feed fetching, item splitting, per-field extraction
- Cache: pluggable key/value stores and the read-through gateway
- Web: aiohttp endpoint with the JSON envelope
- Configuration: environment variables with Pydantic validation
"""

__version__ = "1.0.0"
__author__ = "Dream the Wilderness"
__description__ = "Cached blog feed mirror for the Dream the Wilderness site"

from .config.settings import get_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import BlogFeedError

__all__ = [
    "get_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "BlogFeedError",
]
