"""
Feed repository - registration, lookup and poll bookkeeping for feeds.
"""

import json
from datetime import datetime, timedelta
from typing import Any

from .connection import DatabaseConnection
from .converters import format_timestamp, row_to_feed, utc_now
from .models import DBFeed, FeedType


class FeedRepository:
    """Repository for feed operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(
        self,
        feed_type: FeedType,
        config: dict[str, Any],
        poll_interval_minutes: int = 15,
        inbox_token: str | None = None,
        inbox_secret: str | None = None,
    ) -> int:
        """Add a new feed. Returns feed ID."""
        now = format_timestamp(utc_now())
        with self._db.conn() as conn:
            cursor = conn.execute(
                """INSERT INTO feeds
                   (type, config, inbox_token, inbox_secret, poll_interval_minutes,
                    enabled, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, 1, ?, ?)""",
                (feed_type.value, json.dumps(config), inbox_token, inbox_secret,
                 poll_interval_minutes, now, now)
            )
            return cursor.lastrowid

    def get(self, feed_id: int) -> DBFeed | None:
        """Get single feed by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM feeds WHERE id = ?", (feed_id,)
            ).fetchone()
            return row_to_feed(row) if row else None

    def get_all(self) -> list[DBFeed]:
        """Get all feeds in registration order."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM feeds ORDER BY created_at, id"
            ).fetchall()
            return [row_to_feed(row) for row in rows]

    def update(
        self,
        feed_id: int,
        enabled: bool | None = None,
        poll_interval_minutes: int | None = None,
    ):
        """Enable/disable a feed or change its poll interval."""
        now = format_timestamp(utc_now())
        with self._db.conn() as conn:
            if enabled is not None:
                conn.execute(
                    "UPDATE feeds SET enabled = ?, updated_at = ? WHERE id = ?",
                    (1 if enabled else 0, now, feed_id)
                )
            if poll_interval_minutes is not None:
                conn.execute(
                    "UPDATE feeds SET poll_interval_minutes = ?, updated_at = ? WHERE id = ?",
                    (poll_interval_minutes, now, feed_id)
                )

    def mark_polled(self, feed_id: int, polled_at: datetime | None = None):
        """Stamp the feed's last poll time."""
        stamp = format_timestamp(polled_at or utc_now())
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE feeds SET last_polled_at = ?, updated_at = ? WHERE id = ?",
                (stamp, stamp, feed_id)
            )

    def get_due_for_poll(self, now: datetime | None = None) -> list[DBFeed]:
        """
        Get enabled, pollable feeds whose interval has elapsed.

        A feed that has never been polled is always due.
        """
        now = now or utc_now()
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT * FROM feeds
                   WHERE enabled = 1 AND type != ?
                   ORDER BY created_at, id""",
                (FeedType.WEBHOOK_INBOX.value,)
            ).fetchall()

        due = []
        for feed in (row_to_feed(row) for row in rows):
            if feed.last_polled_at is None:
                due.append(feed)
                continue
            interval = timedelta(minutes=feed.poll_interval_minutes or 15)
            if now - feed.last_polled_at >= interval:
                due.append(feed)
        return due

    def find_inbox_feed(self, token: str) -> DBFeed | None:
        """Find the enabled webhook_inbox feed addressed by an ingest token."""
        with self._db.conn() as conn:
            row = conn.execute(
                """SELECT * FROM feeds
                   WHERE type = ? AND enabled = 1
                     AND (inbox_token = ? OR inbox_secret = ?)
                   ORDER BY id LIMIT 1""",
                (FeedType.WEBHOOK_INBOX.value, token, token)
            ).fetchone()
            return row_to_feed(row) if row else None

    def inbox_token_in_use(self, values: list[str]) -> bool:
        """Check whether any of the values is already a token or secret of an inbox feed."""
        if not values:
            return False
        placeholders = ",".join("?" * len(values))
        with self._db.conn() as conn:
            row = conn.execute(
                f"""SELECT 1 FROM feeds
                    WHERE type = ?
                      AND (inbox_token IN ({placeholders}) OR inbox_secret IN ({placeholders}))
                    LIMIT 1""",
                (FeedType.WEBHOOK_INBOX.value, *values, *values)
            ).fetchone()
            return row is not None
