"""
Subscription repository - CRUD operations for subscriptions.
"""

import json
from datetime import datetime
from typing import Any

from .connection import DatabaseConnection
from .converters import format_timestamp, row_to_subscription, utc_now
from .models import DBSubscription, DeliveryMode, OutputFormat, SubscriptionFilters

# Columns a partial update may touch; the secret is deliberately absent.
UPDATABLE_COLUMNS = {
    "name",
    "webhook_url",
    "pull_enabled",
    "enabled",
    "filters",
    "output_format",
    "delivery_rate_limit_minutes",
    "delivery_mode",
    "digest_schedule_time",
}


def _to_column_value(column: str, value: Any) -> Any:
    if value is None:
        return None
    if column == "filters":
        if isinstance(value, SubscriptionFilters):
            value = value.to_dict()
        return json.dumps(value)
    if column in ("pull_enabled", "enabled"):
        return 1 if value else 0
    if column in ("output_format", "delivery_mode"):
        return getattr(value, "value", value)
    return value


class SubscriptionRepository:
    """Repository for subscription operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(
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
        """Add a new subscription. Returns subscription ID."""
        now = format_timestamp(utc_now())
        with self._db.conn() as conn:
            cursor = conn.execute(
                """INSERT INTO subscriptions
                   (feed_id, name, webhook_url, pull_enabled, filters, secret,
                    output_format, delivery_mode, delivery_rate_limit_minutes,
                    digest_schedule_time, enabled, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)""",
                (
                    feed_id, name, webhook_url, 1 if pull_enabled else 0,
                    _to_column_value("filters", filters), secret,
                    output_format.value, delivery_mode.value,
                    delivery_rate_limit_minutes, digest_schedule_time, now, now,
                )
            )
            return cursor.lastrowid

    def get(self, subscription_id: int) -> DBSubscription | None:
        """Get single subscription by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)
            ).fetchone()
            return row_to_subscription(row) if row else None

    def get_all(self) -> list[DBSubscription]:
        """Get all subscriptions in registration order."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM subscriptions ORDER BY created_at, id"
            ).fetchall()
            return [row_to_subscription(row) for row in rows]

    def get_for_feed(self, feed_id: int, enabled_only: bool = True) -> list[DBSubscription]:
        """Get a feed's subscriptions in registration order."""
        query = "SELECT * FROM subscriptions WHERE feed_id = ?"
        if enabled_only:
            query += " AND enabled = 1"
        query += " ORDER BY created_at, id"
        with self._db.conn() as conn:
            rows = conn.execute(query, (feed_id,)).fetchall()
            return [row_to_subscription(row) for row in rows]

    def get_digest_due(self, schedule_time: str) -> list[DBSubscription]:
        """Get enabled daily-digest subscriptions scheduled at an exact UTC HH:MM."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT * FROM subscriptions
                   WHERE enabled = 1 AND delivery_mode = ? AND digest_schedule_time = ?
                   ORDER BY created_at, id""",
                (DeliveryMode.DAILY_DIGEST.value, schedule_time)
            ).fetchall()
            return [row_to_subscription(row) for row in rows]

    def update(self, subscription_id: int, changes: dict[str, Any]):
        """
        Apply a partial update.

        Args:
            subscription_id: ID of the subscription to update
            changes: Column -> new value; None clears nullable columns

        Raises:
            ValueError: If a column is not updatable (e.g. the secret)
        """
        unknown = set(changes) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")
        if not changes:
            return

        assignments = ", ".join(f"{column} = ?" for column in changes)
        values = [_to_column_value(column, value) for column, value in changes.items()]
        with self._db.conn() as conn:
            conn.execute(
                f"UPDATE subscriptions SET {assignments}, updated_at = ? WHERE id = ?",
                (*values, format_timestamp(utc_now()), subscription_id)
            )

    def set_last_delivery(self, subscription_id: int, delivered_at: datetime):
        """Record the time of the latest successful delivery."""
        stamp = format_timestamp(delivered_at)
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE subscriptions SET last_delivery_at = ?, updated_at = ? WHERE id = ?",
                (stamp, format_timestamp(utc_now()), subscription_id)
            )
