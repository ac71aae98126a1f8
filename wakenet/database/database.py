"""
Database facade - the event store.

Provides unified access to all repositories. This is the only writer of
feeds, subscriptions, events, deliveries and digest entries.
"""

from datetime import datetime
from pathlib import Path
from typing import Any

from ..adapters.base import CandidateEvent
from ..identity import fingerprint
from .connection import DatabaseConnection
from .feed_repository import FeedRepository
from .subscription_repository import SubscriptionRepository
from .event_repository import EventRepository
from .delivery_repository import DeliveryRepository
from .models import (
    DBDelivery,
    DBDigestEntry,
    DBEvent,
    DBFeed,
    DBSubscription,
    DeliveryMode,
    DeliveryStatus,
    FeedType,
    InsertResult,
    OutputFormat,
    SubscriptionFilters,
)


class Database:
    """
    Unified database access facade.

    Every method runs in its own transaction; an event insert is committed
    before any delivery for it is recorded.
    """

    def __init__(self, db_path: Path):
        self._connection = DatabaseConnection(db_path)

        # Initialize repositories
        self.feeds = FeedRepository(self._connection)
        self.subscriptions = SubscriptionRepository(self._connection)
        self.events = EventRepository(self._connection)
        self.deliveries = DeliveryRepository(self._connection)

    def ping(self) -> bool:
        """Run a trivial query to check the database is reachable."""
        with self._connection.conn() as conn:
            conn.execute("SELECT 1 FROM feeds LIMIT 1").fetchall()
        return True

    # ─────────────────────────────────────────────────────────────
    # Feed operations (delegated to FeedRepository)
    # ─────────────────────────────────────────────────────────────

    def add_feed(
        self,
        feed_type: FeedType,
        config: dict[str, Any],
        poll_interval_minutes: int = 15,
        inbox_token: str | None = None,
        inbox_secret: str | None = None,
    ) -> int:
        return self.feeds.add(feed_type, config, poll_interval_minutes, inbox_token, inbox_secret)

    def get_feed(self, feed_id: int) -> DBFeed | None:
        return self.feeds.get(feed_id)

    def get_feeds(self) -> list[DBFeed]:
        return self.feeds.get_all()

    def update_feed(
        self,
        feed_id: int,
        enabled: bool | None = None,
        poll_interval_minutes: int | None = None,
    ):
        return self.feeds.update(feed_id, enabled, poll_interval_minutes)

    def mark_feed_polled(self, feed_id: int, polled_at: datetime | None = None):
        return self.feeds.mark_polled(feed_id, polled_at)

    def list_feeds_due_for_poll(self, now: datetime | None = None) -> list[DBFeed]:
        return self.feeds.get_due_for_poll(now)

    def find_inbox_feed(self, token: str) -> DBFeed | None:
        return self.feeds.find_inbox_feed(token)

    def inbox_token_in_use(self, values: list[str]) -> bool:
        return self.feeds.inbox_token_in_use(values)

    # ─────────────────────────────────────────────────────────────
    # Subscription operations (delegated to SubscriptionRepository)
    # ─────────────────────────────────────────────────────────────

    def add_subscription(
        self,
        feed_id: int,
        name: str,
        secret: str,
        webhook_url: str | None = None,
        pull_enabled: bool = False,
        filters: SubscriptionFilters | None = None,
        output_format: OutputFormat = OutputFormat.DEFAULT,
        delivery_mode: DeliveryMode = DeliveryMode.IMMEDIATE,
        delivery_rate_limit_minutes: int | None = None,
        digest_schedule_time: str | None = None,
    ) -> int:
        return self.subscriptions.add(
            feed_id, name, secret, webhook_url, pull_enabled, filters,
            output_format, delivery_mode, delivery_rate_limit_minutes, digest_schedule_time
        )

    def get_subscription(self, subscription_id: int) -> DBSubscription | None:
        return self.subscriptions.get(subscription_id)

    def get_subscriptions(self) -> list[DBSubscription]:
        return self.subscriptions.get_all()

    def list_subscriptions(self, feed_id: int, enabled_only: bool = True) -> list[DBSubscription]:
        return self.subscriptions.get_for_feed(feed_id, enabled_only)

    def update_subscription(self, subscription_id: int, changes: dict[str, Any]):
        return self.subscriptions.update(subscription_id, changes)

    def set_last_delivery(self, subscription_id: int, delivered_at: datetime):
        return self.subscriptions.set_last_delivery(subscription_id, delivered_at)

    def get_digest_subscriptions(self, schedule_time: str) -> list[DBSubscription]:
        return self.subscriptions.get_digest_due(schedule_time)

    # ─────────────────────────────────────────────────────────────
    # Event operations (delegated to EventRepository)
    # ─────────────────────────────────────────────────────────────

    def insert_event_if_new(
        self,
        feed_id: int,
        candidate: CandidateEvent,
        score: int = 0,
    ) -> InsertResult:
        """Store a candidate event unless its external ID or fingerprint is already known."""
        created = self.events.insert_if_new(
            feed_id=feed_id,
            external_id=candidate.id,
            content_hash=fingerprint(candidate),
            normalized=candidate.to_dict(),
            score=score,
        )
        return InsertResult(created=created)

    def get_event(self, event_id: int) -> DBEvent | None:
        return self.events.get(event_id)

    def get_events(self, feed_id: int | None = None, limit: int = 50) -> list[DBEvent]:
        return self.events.get_many(feed_id, limit)

    def get_events_by_ids(self, event_ids: list[int]) -> dict[int, DBEvent]:
        return self.events.get_by_ids(event_ids)

    # ─────────────────────────────────────────────────────────────
    # Delivery operations (delegated to DeliveryRepository)
    # ─────────────────────────────────────────────────────────────

    def record_delivery(
        self,
        subscription_id: int,
        event_id: int,
        initial_status: DeliveryStatus,
    ) -> int:
        return self.deliveries.add(subscription_id, event_id, initial_status)

    def update_delivery_status(
        self,
        delivery_id: int,
        status: DeliveryStatus,
        response_code: int | None = None,
    ):
        return self.deliveries.update_status(delivery_id, status, response_code)

    def get_delivery(self, delivery_id: int) -> DBDelivery | None:
        return self.deliveries.get(delivery_id)

    def get_queued_deliveries(self) -> list[DBDelivery]:
        return self.deliveries.get_queued()

    def get_subscription_deliveries(
        self,
        subscription_id: int,
        status: DeliveryStatus | None = None,
    ) -> list[DBDelivery]:
        return self.deliveries.get_for_subscription(subscription_id, status)

    def get_sent_deliveries_page(
        self,
        subscription_id: int,
        after: str | None = None,
        limit: int = 50,
    ) -> list[tuple[DBDelivery, dict]]:
        return self.deliveries.get_sent_page(subscription_id, after, limit)

    def add_digest_entry(self, subscription_id: int, event_id: int) -> int:
        return self.deliveries.add_digest_entry(subscription_id, event_id)

    def get_digest_entries(self, subscription_id: int) -> list[DBDigestEntry]:
        return self.deliveries.get_digest_entries(subscription_id)

    def delete_digest_entries(self, entry_ids: list[int]):
        return self.deliveries.delete_digest_entries(entry_ids)
