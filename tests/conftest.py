"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for BlogFeed tests.
"""

import pytest
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["BLOGFEED_LOGGING__FILE_PATH"] = ""
os.environ["BLOGFEED_CACHE__BACKEND"] = "memory"
os.environ["BLOGFEED_DEBUG"] = "true"


# ============================================================================
# Feed documents
# ============================================================================


def make_item(
    title="Morning on the Ridge",
    cdata_title=True,
    description='<p>First light over the <b>pines</b>.</p>',
    link="https://dreamthewilderness.substack.com/p/morning-on-the-ridge",
    pub_date="Mon, 01 Jan 2024 10:00:00 GMT",
    creator="River Vale",
) -> str:
    """Build one RSS item block; pass None to omit a field."""
    parts = ["<item>"]
    if title is not None:
        if cdata_title:
            parts.append(f"<title><![CDATA[{title}]]></title>")
        else:
            parts.append(f"<title>{title}</title>")
    if description is not None:
        parts.append(f"<description><![CDATA[{description}]]></description>")
    if link is not None:
        parts.append(f"<link>{link}</link>")
    if pub_date is not None:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    if creator is not None:
        parts.append(f"<dc:creator><![CDATA[{creator}]]></dc:creator>")
    parts.append("</item>")
    return "\n".join(parts)


def make_feed(*items: str) -> str:
    """Wrap item blocks in a Substack-style RSS document."""
    body = "\n".join(items)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:dc="http://purl.org/dc/elements/1.1/" version="2.0">
  <channel>
    <title><![CDATA[Dream the Wilderness]]></title>
    <link>https://dreamthewilderness.substack.com</link>
    <description><![CDATA[Notes from the trail]]></description>
    {body}
  </channel>
</rss>"""


@pytest.fixture
def sample_feed():
    """Two-item feed in document order oldest first."""
    return make_feed(
        make_item(
            title="New Year Walk",
            pub_date="Mon, 01 Jan 2024 10:00:00 GMT",
            link="https://dreamthewilderness.substack.com/p/new-year-walk",
        ),
        make_item(
            title="Summer Solstice",
            pub_date="Sat, 01 Jun 2024 10:00:00 GMT",
            link="https://dreamthewilderness.substack.com/p/summer-solstice",
            description='<img src="https://substackcdn.com/image/solstice.jpg" alt="">'
                        '<p>The longest day.</p>',
        ),
    )


@pytest.fixture
def empty_feed():
    """Valid document with no posts."""
    return make_feed()


# ============================================================================
# Collaborator doubles
# ============================================================================


class FakeFetcher:
    """Stands in for FeedFetcher; counts calls and can fail on demand."""

    def __init__(self, document: str = "", error: Exception = None):
        self.document = document
        self.error = error
        self.calls = 0

    async def fetch(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.document


class FrozenClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 7, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)

    def epoch(self) -> float:
        return self.now.timestamp()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def fake_fetcher(sample_feed):
    return FakeFetcher(sample_feed)
