"""
Tests for the event store.
"""

import sqlite3
from datetime import timedelta

import pytest

from wakenet.adapters import CandidateEvent
from wakenet.database import DeliveryStatus, FeedType, SubscriptionFilters
from wakenet.database.converters import utc_now


def make_candidate(**overrides) -> CandidateEvent:
    fields = dict(id="item-1", source="Example", title="Hello", link="https://example.com/1")
    fields.update(overrides)
    return CandidateEvent(**fields)


class TestInsertEventIfNew:
    def test_first_insert_creates(self, test_db, rss_feed):
        result = test_db.insert_event_if_new(rss_feed, make_candidate(), score=5)
        assert not result.duplicate
        assert result.created.external_id == "item-1"
        assert result.created.score == 5
        assert result.created.normalized["title"] == "Hello"

    def test_same_candidate_is_duplicate(self, test_db, rss_feed):
        test_db.insert_event_if_new(rss_feed, make_candidate())
        assert test_db.insert_event_if_new(rss_feed, make_candidate()).duplicate
        assert len(test_db.get_events(rss_feed)) == 1

    def test_same_external_id_new_content_is_duplicate(self, test_db, rss_feed):
        test_db.insert_event_if_new(rss_feed, make_candidate())
        assert test_db.insert_event_if_new(rss_feed, make_candidate(title="Edited")).duplicate

    def test_new_external_id_is_new_event(self, test_db, rss_feed):
        test_db.insert_event_if_new(rss_feed, make_candidate(body="x"))
        other = make_candidate(id="item-2", body="x")
        assert not test_db.insert_event_if_new(rss_feed, other).duplicate

    def test_dedup_is_per_feed(self, test_db, rss_feed):
        other_feed = test_db.add_feed(FeedType.RSS, {"url": "https://example.org/rss"})
        test_db.insert_event_if_new(rss_feed, make_candidate())
        assert not test_db.insert_event_if_new(other_feed, make_candidate()).duplicate

    def test_metadata_omitted_when_none(self, test_db, rss_feed):
        result = test_db.insert_event_if_new(rss_feed, make_candidate())
        assert "metadata" not in result.created.normalized

    def test_unique_index_rejects_concurrent_duplicate(self, test_db, rss_feed):
        created = test_db.insert_event_if_new(rss_feed, make_candidate()).created
        with pytest.raises(sqlite3.IntegrityError):
            with test_db._connection.conn() as conn:
                conn.execute(
                    """INSERT INTO events
                       (feed_id, external_id, content_hash, normalized, score, created_at)
                       VALUES (?, ?, ?, '{}', 0, '2024-01-01T00:00:00.000000+00:00')""",
                    (rss_feed, "other-id", created.content_hash)
                )

    def test_integrity_error_reported_as_duplicate(self, test_db, rss_feed):
        created = test_db.insert_event_if_new(rss_feed, make_candidate()).created
        # Lookups miss (new external id), but the hash collides at insert time
        result = test_db.events.insert_if_new(
            rss_feed, "other-id", created.content_hash, {"id": "other-id"}
        )
        assert result is None


class TestFeedsDueForPoll:
    def test_never_polled_is_due(self, test_db, rss_feed):
        assert [f.id for f in test_db.list_feeds_due_for_poll()] == [rss_feed]

    def test_recently_polled_is_not_due(self, test_db, rss_feed):
        test_db.mark_feed_polled(rss_feed)
        assert test_db.list_feeds_due_for_poll() == []

    def test_due_after_interval(self, test_db, rss_feed):
        test_db.mark_feed_polled(rss_feed, utc_now() - timedelta(minutes=16))
        assert [f.id for f in test_db.list_feeds_due_for_poll()] == [rss_feed]

    def test_inbox_and_disabled_feeds_excluded(self, test_db, rss_feed, inbox_feed):
        test_db.update_feed(rss_feed, enabled=False)
        assert test_db.list_feeds_due_for_poll() == []


class TestSubscriptions:
    def test_registration_order_and_enabled_only(self, test_db, rss_feed):
        first = test_db.add_subscription(rss_feed, "a", "s" * 64, pull_enabled=True)
        second = test_db.add_subscription(rss_feed, "b", "s" * 64, pull_enabled=True)
        test_db.update_subscription(first, {"enabled": False})
        assert [s.id for s in test_db.list_subscriptions(rss_feed)] == [second]
        assert [s.id for s in test_db.list_subscriptions(rss_feed, enabled_only=False)] == [
            first, second
        ]

    def test_filters_round_trip(self, test_db, rss_feed):
        filters = SubscriptionFilters(include_keywords=["x"], min_score=5)
        sub_id = test_db.add_subscription(rss_feed, "a", "s" * 64, pull_enabled=True, filters=filters)
        assert test_db.get_subscription(sub_id).filters == filters

    def test_secret_is_not_updatable(self, test_db, rss_feed):
        sub_id = test_db.add_subscription(rss_feed, "a", "s" * 64, pull_enabled=True)
        with pytest.raises(ValueError):
            test_db.update_subscription(sub_id, {"secret": "new"})


class TestDeliveries:
    def test_update_status_counts_attempts(self, test_db, rss_feed):
        event = test_db.insert_event_if_new(rss_feed, make_candidate()).created
        sub_id = test_db.add_subscription(rss_feed, "a", "s" * 64, webhook_url="https://example.com/hook")
        delivery_id = test_db.record_delivery(sub_id, event.id, DeliveryStatus.PENDING)

        test_db.update_delivery_status(delivery_id, DeliveryStatus.FAILED, 500)

        delivery = test_db.get_delivery(delivery_id)
        assert delivery.status == DeliveryStatus.FAILED
        assert delivery.response_code == 500
        assert delivery.retries == 1
        assert delivery.last_attempt_at is not None
