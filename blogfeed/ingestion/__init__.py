"""
BlogFeed Ingestion Module
=========================

Feed retrieval and record extraction.

This module handles:
- Fetching the upstream feed document
- Splitting it into item blocks
- Extracting and normalizing one record per item
"""

from .models import FeedRecord, FeedSnapshot, UNPARSABLE_TIMESTAMP
from .field_extractor import FieldExtractor, ExtractionDefaults
from .feed_parser import FeedParser, parse_feed
from .feed_fetcher import FeedFetcher

__all__ = [
    "FeedRecord",
    "FeedSnapshot",
    "UNPARSABLE_TIMESTAMP",
    "FieldExtractor",
    "ExtractionDefaults",
    "FeedParser",
    "parse_feed",
    "FeedFetcher",
]
