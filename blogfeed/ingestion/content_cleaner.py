"""
Content Cleaner
===============

Text normalization helpers for feed item markup.

This module provides:
- HTML entity decoding
- Tag stripping and whitespace normalization for descriptions
- Featured image discovery inside description HTML
- Publish date to sortable timestamp conversion
"""

import re
import html
import warnings
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from blogfeed.ingestion.models import UNPARSABLE_TIMESTAMP
from blogfeed.utils.logging import get_logger_for_component


class ContentCleaner:
    """
    Converts raw item markup fragments into plain display values.

    Every public method is total: malformed input yields an empty or
    sentinel value, never an exception.
    """

    # Elements whose text is never part of an excerpt
    NON_CONTENT_ELEMENTS = {"script", "style", "noscript", "template", "iframe"}

    WHITESPACE_PATTERN = re.compile(r"\s+")
    TAG_PATTERN = re.compile(r"<[^>]*>")

    JAVASCRIPT_URL_PATTERN = re.compile(r"^\s*javascript:", re.IGNORECASE)
    DATA_URL_PATTERN = re.compile(r"^\s*data:", re.IGNORECASE)
    IMG_SRC_PATTERN = re.compile(
        r"<img\b[^>]*?(?<![\w-])src\s*=\s*([\"'])\s*([^\"']+?)\s*\1", re.IGNORECASE
    )

    def __init__(self):
        self.logger = get_logger_for_component("content_cleaner")
        self.parser = "html.parser"  # Built-in parser, no external deps

    def decode_entities(self, text: str) -> str:
        """Decode HTML entities; non-breaking spaces become plain spaces."""
        if not text:
            return ""
        return html.unescape(text).replace("\xa0", " ")

    def extract_text_only(self, html_content: str) -> str:
        """
        Extract only text content from HTML, removing all markup.

        Args:
            html_content: HTML fragment (already unwrapped from CDATA)

        Returns:
            Entity-decoded plain text with whitespace runs collapsed
        """
        if not html_content or not html_content.strip():
            return ""

        try:
            soup = self._soup(html_content)

            for element in soup(self.NON_CONTENT_ELEMENTS):
                element.decompose()

            text = soup.get_text()

        except Exception as e:
            self.logger.warning(f"Failed to extract text, using fallback: {e}")
            text = self.decode_entities(self.TAG_PATTERN.sub("", html_content))

        text = text.replace("\xa0", " ")
        return self.WHITESPACE_PATTERN.sub(" ", text).strip()

    def extract_first_image(self, html_content: str) -> Optional[str]:
        """
        Find the source of the first image in an HTML fragment.

        The attribute text is returned as written, entities included, so
        the address matches the markup exactly. Only absolute http(s) and
        protocol-relative sources count.

        Args:
            html_content: HTML fragment to search

        Returns:
            The image address exactly as written, or None
        """
        if not html_content:
            return None

        for match in self.IMG_SRC_PATTERN.finditer(html_content):
            src = match.group(2)

            if self.JAVASCRIPT_URL_PATTERN.match(src) or self.DATA_URL_PATTERN.match(src):
                continue

            if src.startswith("//"):
                return src

            parsed = urlparse(src)
            if parsed.scheme in ("http", "https") and parsed.netloc:
                return src

        return None

    @staticmethod
    def truncate(text: str, limit: int) -> str:
        """Hard cut at ``limit`` characters, no ellipsis."""
        if len(text) <= limit:
            return text
        return text[:limit]

    @staticmethod
    def to_timestamp(date_string: str) -> int:
        """
        Convert a feed date string to epoch milliseconds.

        RFC 822 (``Mon, 01 Jan 2024 10:00:00 GMT``) and ISO-8601 forms are
        understood. Dates without a zone are read as UTC. Anything else maps
        to UNPARSABLE_TIMESTAMP so it sorts oldest.
        """
        value = (date_string or "").strip()
        if not value:
            return UNPARSABLE_TIMESTAMP

        parsed = None
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            parsed = None

        if parsed is None:
            iso_value = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
            try:
                parsed = datetime.fromisoformat(iso_value)
            except ValueError:
                return UNPARSABLE_TIMESTAMP

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)

        try:
            return int(parsed.timestamp() * 1000)
        except (OverflowError, OSError, ValueError):
            return UNPARSABLE_TIMESTAMP

    def _soup(self, html_content: str) -> BeautifulSoup:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
            return BeautifulSoup(html_content, self.parser)
