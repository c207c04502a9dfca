"""
Feed Parser
===========

Turns a whole raw feed document into records ordered newest first.
"""

import re
from typing import Iterator, List, Optional

from blogfeed.ingestion.field_extractor import FieldExtractor
from blogfeed.ingestion.models import FeedRecord
from blogfeed.utils.logging import get_logger_for_component


# Items are assumed not to nest
ITEM_PATTERN = re.compile(r"<item(?:\s[^>]*)?>(.*?)</item>", re.DOTALL | re.IGNORECASE)


class FeedParser:
    """Splits a feed document into item blocks and extracts each one."""

    def __init__(self, extractor: Optional[FieldExtractor] = None):
        self.extractor = extractor or FieldExtractor()
        self.logger = get_logger_for_component("feed_parser")

    @staticmethod
    def iter_item_blocks(document: str) -> Iterator[str]:
        """Yield the inner markup of every item in document order."""
        for match in ITEM_PATTERN.finditer(document or ""):
            yield match.group(1)

    def parse(self, document: str) -> List[FeedRecord]:
        """
        Parse a feed document.

        Args:
            document: Raw feed text

        Returns:
            Records sorted by timestamp descending. Equal timestamps keep
            document order. A document without items yields an empty list.
        """
        records = [self.extractor.extract(block) for block in self.iter_item_blocks(document)]

        if not records:
            self.logger.info("Feed document contains no items")
            return []

        # sorted() is stable with reverse=True
        records = sorted(records, key=lambda record: record.timestamp, reverse=True)

        self.logger.debug(f"Parsed {len(records)} items from feed document")
        return records


def parse_feed(document: str, extractor: Optional[FieldExtractor] = None) -> List[FeedRecord]:
    """Convenience function to parse one document."""
    return FeedParser(extractor).parse(document)
