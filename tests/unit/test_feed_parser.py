"""
Unit Tests for the Feed Parser
==============================

Tests item splitting, ordering and empty-document handling.
"""

from blogfeed.ingestion.feed_parser import FeedParser, parse_feed
from blogfeed.ingestion.field_extractor import FieldExtractor
from blogfeed.ingestion.models import UNPARSABLE_TIMESTAMP

from conftest import make_feed, make_item


def _assert_descending(records):
    for newer, older in zip(records, records[1:]):
        assert newer.timestamp >= older.timestamp


class TestFeedParser:
    """Test cases for FeedParser."""

    def setup_method(self):
        self.parser = FeedParser(FieldExtractor(now=lambda: "2024-07-01T12:00:00.000Z"))

    def test_newest_first(self, sample_feed):
        """June item comes before the January item listed first."""
        records = self.parser.parse(sample_feed)

        assert [r.title for r in records] == ["Summer Solstice", "New Year Walk"]
        assert records[0].image == "https://substackcdn.com/image/solstice.jpg"
        _assert_descending(records)

    def test_iso_dates_ordered(self):
        document = make_feed(
            make_item(title="Early", pub_date="2024-01-01"),
            make_item(title="Late", pub_date="2024-06-01"),
        )
        assert [r.title for r in self.parser.parse(document)] == ["Late", "Early"]

    def test_zero_items_is_empty_list(self, empty_feed):
        assert self.parser.parse(empty_feed) == []

    def test_non_feed_text_is_empty_list(self):
        assert self.parser.parse("") == []
        assert self.parser.parse("<html><body>Maintenance</body></html>") == []

    def test_channel_title_not_mistaken_for_item(self, sample_feed):
        titles = [r.title for r in self.parser.parse(sample_feed)]
        assert "Dream the Wilderness" not in titles

    def test_mixed_title_styles_per_item(self):
        document = make_feed(
            make_item(title="Cdata &amp; Co", cdata_title=True, pub_date="2024-03-01"),
            make_item(title="Plain &amp; Simple", cdata_title=False, pub_date="2024-02-01"),
        )
        records = self.parser.parse(document)

        assert [r.title for r in records] == ["Cdata & Co", "Plain & Simple"]

    def test_ties_keep_document_order(self):
        same = "Tue, 02 Apr 2024 08:00:00 GMT"
        document = make_feed(
            make_item(title="First", pub_date=same),
            make_item(title="Second", pub_date=same),
            make_item(title="Third", pub_date=same),
        )
        assert [r.title for r in self.parser.parse(document)] == ["First", "Second", "Third"]

    def test_unparsable_dates_sort_last(self):
        document = make_feed(
            make_item(title="Mystery", pub_date="not a date"),
            make_item(title="Dated", pub_date="Fri, 01 Mar 2024 08:00:00 GMT"),
        )
        records = self.parser.parse(document)

        assert [r.title for r in records] == ["Dated", "Mystery"]
        assert records[-1].timestamp == UNPARSABLE_TIMESTAMP

    def test_malformed_item_does_not_affect_neighbours(self):
        document = make_feed(
            "<item><title><![CDATA[broken</item>",
            make_item(title="Healthy", pub_date="Fri, 01 Mar 2024 08:00:00 GMT"),
        )
        records = self.parser.parse(document)

        assert len(records) == 2
        assert "Healthy" in [r.title for r in records]
        assert "Untitled" in [r.title for r in records]

    def test_item_with_attributes(self):
        document = make_feed('<item rdf:about="x"><title>Attr</title></item>')
        assert [r.title for r in self.parser.parse(document)] == ["Attr"]

    def test_one_record_per_item(self):
        items = [make_item(title=f"Post {i}", pub_date=f"2024-01-{i:02d}") for i in range(1, 8)]
        records = self.parser.parse(make_feed(*items))

        assert len(records) == 7
        assert records[0].title == "Post 7"
        _assert_descending(records)

    def test_iter_item_blocks(self, sample_feed):
        blocks = list(FeedParser.iter_item_blocks(sample_feed))
        assert len(blocks) == 2
        assert "New Year Walk" in blocks[0]

    def test_parse_feed_helper(self, sample_feed):
        assert len(parse_feed(sample_feed)) == 2
