"""
Tests for the pull cursor reader.
"""

from datetime import timedelta

import pytest

from wakenet.adapters import CandidateEvent
from wakenet.database import DeliveryStatus
from wakenet.database.converters import utc_now
from wakenet.exceptions import InvalidCursor, SubscriptionNotPullable
from wakenet.pull import normalize_cursor, pull_deliveries

SECRET = "d" * 64


@pytest.fixture
def pull_sub(test_db, rss_feed):
    return test_db.add_subscription(rss_feed, "pull", SECRET, pull_enabled=True)


def add_sent(db, feed_id, sub_id, count, start=None, status=DeliveryStatus.SENT):
    start = start or utc_now() - timedelta(hours=1)
    ids = []
    for n in range(count):
        candidate = CandidateEvent(id=f"{start.isoformat()}-{n}", source="s", title=f"T{n}")
        event = db.insert_event_if_new(feed_id, candidate).created
        ids.append(db.deliveries.add(sub_id, event.id, status, created_at=start + timedelta(seconds=n)))
    return ids


class TestPullDeliveries:
    def test_first_page(self, test_db, rss_feed, pull_sub):
        ids = add_sent(test_db, rss_feed, pull_sub, 3)

        page = pull_deliveries(test_db, pull_sub)

        assert [item["deliveryId"] for item in page.items] == ids
        assert page.items[0]["event"]["title"] == "T0"
        assert page.next_cursor == page.items[-1]["createdAt"]

    def test_cursor_pages_strictly_after(self, test_db, rss_feed, pull_sub):
        ids = add_sent(test_db, rss_feed, pull_sub, 3)

        first = pull_deliveries(test_db, pull_sub, limit=2)
        second = pull_deliveries(test_db, pull_sub, after=first.next_cursor, limit=2)
        third = pull_deliveries(test_db, pull_sub, after=second.next_cursor, limit=2)

        assert [i["deliveryId"] for i in first.items] == ids[:2]
        assert [i["deliveryId"] for i in second.items] == ids[2:]
        assert third.items == []
        assert third.next_cursor is None

    def test_page_size_is_fifty(self, test_db, rss_feed, pull_sub):
        add_sent(test_db, rss_feed, pull_sub, 55)
        page = pull_deliveries(test_db, pull_sub)
        assert len(page.items) == 50
        rest = pull_deliveries(test_db, pull_sub, after=page.next_cursor)
        assert len(rest.items) == 5

    def test_only_sent_deliveries(self, test_db, rss_feed, pull_sub):
        add_sent(test_db, rss_feed, pull_sub, 2, status=DeliveryStatus.QUEUED)
        assert pull_deliveries(test_db, pull_sub).items == []

    def test_not_pullable(self, test_db, rss_feed):
        hook_only = test_db.add_subscription(
            rss_feed, "hook", SECRET, webhook_url="https://hooks.example.com"
        )
        with pytest.raises(SubscriptionNotPullable):
            pull_deliveries(test_db, hook_only)
        with pytest.raises(SubscriptionNotPullable):
            pull_deliveries(test_db, 12345)

    def test_invalid_cursor(self, test_db, pull_sub):
        with pytest.raises(InvalidCursor):
            pull_deliveries(test_db, pull_sub, after="yesterday")


class TestNormalizeCursor:
    def test_z_suffix_and_offsets_normalized(self):
        assert normalize_cursor("2024-01-01T00:00:00Z") == "2024-01-01T00:00:00.000000+00:00"
        assert normalize_cursor("2024-01-01T02:00:00+02:00") == "2024-01-01T00:00:00.000000+00:00"

    def test_unencoded_plus(self):
        assert normalize_cursor("2024-01-01T00:00:00 00:00") == "2024-01-01T00:00:00.000000+00:00"

    def test_empty_is_none(self):
        assert normalize_cursor("") is None
        assert normalize_cursor(None) is None
