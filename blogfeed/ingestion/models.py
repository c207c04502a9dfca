"""
BlogFeed Data Models
====================

Pydantic models for parsed feed records and the snapshot handed to the
HTTP boundary.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, AliasChoices


# Sorts below every real date, stays a safe JSON integer
UNPARSABLE_TIMESTAMP = -(2**53 - 1)


class FeedRecord(BaseModel):
    """One syndicated post, immutable once built."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(..., min_length=1, description="Entity-decoded post title")
    description: str = Field(default="", description="Plain-text excerpt")
    link: str = Field(..., min_length=1, description="Post URL or placeholder")
    published_at: str = Field(
        ...,
        serialization_alias="publishedAt",
        validation_alias=AliasChoices("published_at", "publishedAt", "pubDate"),
        description="Publish date exactly as the feed wrote it",
    )
    timestamp: int = Field(
        default=UNPARSABLE_TIMESTAMP,
        description="Epoch milliseconds derived from published_at, used for ordering",
    )
    author: str = Field(..., min_length=1, description="Post author")
    image: Optional[str] = Field(default=None, description="Featured image URL")

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the JSON envelope, keeping the legacy pubDate name."""
        payload = self.model_dump(by_alias=True)
        payload["pubDate"] = self.published_at
        return payload

    def __str__(self) -> str:
        return f"FeedRecord({self.title[:50]})"


@dataclass
class FeedSnapshot:
    """Result of one cache gateway read."""

    records: List[FeedRecord]
    cached: bool
    updated_at: datetime
    count: int = field(init=False)

    def __post_init__(self):
        self.count = len(self.records)
