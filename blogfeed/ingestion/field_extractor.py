"""
Field Extractor
===============

Pulls one FeedRecord out of the raw markup of a single feed item.

Extraction is a table of named rules, one per field. Each rule runs on its
own and falls back to its own default, so a malformed field never costs
the rest of the record.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from blogfeed.ingestion.content_cleaner import ContentCleaner
from blogfeed.ingestion.models import FeedRecord
from blogfeed.utils.logging import get_logger_for_component


TITLE_CDATA_PATTERN = re.compile(
    r"<title[^>]*>\s*<!\[CDATA\[(.*?)\]\]>\s*</title>", re.DOTALL | re.IGNORECASE
)
TITLE_PLAIN_PATTERN = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
DESCRIPTION_CDATA_PATTERN = re.compile(
    r"<description[^>]*>\s*<!\[CDATA\[(.*?)\]\]>\s*</description>",
    re.DOTALL | re.IGNORECASE,
)
LINK_PATTERN = re.compile(r"<link[^>]*>([^<]*)</link>", re.IGNORECASE)
PUB_DATE_PATTERN = re.compile(r"<pubDate[^>]*>([^<]*)</pubDate>", re.IGNORECASE)
AUTHOR_PATTERN = re.compile(
    r"<((?:dc:)?creator|author)[^>]*>\s*(?:<!\[CDATA\[(.*?)\]\]>|([^<]*))\s*</\1>",
    re.DOTALL | re.IGNORECASE,
)


@dataclass(frozen=True)
class ExtractionDefaults:
    """Sentinel values used when a field cannot be extracted."""

    title: str = "Untitled"
    link: str = "#"
    author: str = "Dream the Wilderness"
    description_limit: int = 200

    @classmethod
    def from_settings(cls, settings) -> "ExtractionDefaults":
        feed = settings.feed
        return cls(
            title=feed.untitled_title,
            link=feed.placeholder_link,
            author=feed.site_author,
            description_limit=feed.description_limit,
        )


def _iso_now() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FieldExtractor:
    """Best-effort extraction of a FeedRecord from one item block."""

    def __init__(
        self,
        defaults: Optional[ExtractionDefaults] = None,
        cleaner: Optional[ContentCleaner] = None,
        now: Callable[[], str] = _iso_now,
    ):
        """Initialize extractor.

        Args:
            defaults: Sentinel values (site defaults when omitted)
            cleaner: Content cleaner used for entity and markup handling
            now: Returns the serialized current instant for undated items
        """
        self.defaults = defaults or ExtractionDefaults()
        self.cleaner = cleaner or ContentCleaner()
        self.now = now
        self.logger = get_logger_for_component("field_extractor")

        self.rules: Tuple[Tuple[str, Callable[[str], Any]], ...] = (
            ("title", self._extract_title),
            ("description", self._extract_description),
            ("link", self._extract_link),
            ("published_at", self._extract_published_at),
            ("author", self._extract_author),
        )

    def extract(self, block: str) -> FeedRecord:
        """Build a record from raw item markup. Never raises."""
        block = block or ""
        fields: Dict[str, Any] = {}

        for name, rule in self.rules:
            try:
                fields[name] = rule(block)
            except Exception as e:
                self.logger.debug(f"Rule '{name}' failed, using default: {e}")
                fields[name] = None

        description, image = fields["description"] or ("", None)
        published_at = fields["published_at"] or self.now()

        return FeedRecord(
            title=fields["title"] or self.defaults.title,
            description=description,
            image=image,
            link=fields["link"] or self.defaults.link,
            published_at=published_at,
            timestamp=self.cleaner.to_timestamp(published_at),
            author=fields["author"] or self.defaults.author,
        )

    def _extract_title(self, block: str) -> Optional[str]:
        match = TITLE_CDATA_PATTERN.search(block) or TITLE_PLAIN_PATTERN.search(block)
        if not match:
            return None
        return self.cleaner.decode_entities(match.group(1)).strip() or None

    def _extract_description(self, block: str) -> Optional[Tuple[str, Optional[str]]]:
        match = DESCRIPTION_CDATA_PATTERN.search(block)
        if not match:
            return None

        body = match.group(1)
        image = self.cleaner.extract_first_image(body)
        text = self.cleaner.extract_text_only(body)
        return self.cleaner.truncate(text, self.defaults.description_limit), image

    def _extract_link(self, block: str) -> Optional[str]:
        match = LINK_PATTERN.search(block)
        if not match:
            return None
        return match.group(1).strip() or None

    def _extract_published_at(self, block: str) -> Optional[str]:
        match = PUB_DATE_PATTERN.search(block)
        if not match or not match.group(1).strip():
            return None
        return match.group(1)

    def _extract_author(self, block: str) -> Optional[str]:
        match = AUTHOR_PATTERN.search(block)
        if not match:
            return None
        raw = match.group(2) if match.group(2) is not None else match.group(3)
        return self.cleaner.decode_entities(raw or "").strip() or None
