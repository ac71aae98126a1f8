"""
Delivery repository - delivery records and the daily-digest queue.
"""

import json
from datetime import datetime

from .connection import DatabaseConnection
from .converters import format_timestamp, row_to_delivery, row_to_digest_entry, utc_now
from .models import DBDelivery, DBDigestEntry, DeliveryStatus


class DeliveryRepository:
    """Repository for delivery operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(
        self,
        subscription_id: int,
        event_id: int,
        status: DeliveryStatus,
        created_at: datetime | None = None,
    ) -> int:
        """Record a delivery in its initial status. Returns delivery ID."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                """INSERT INTO deliveries (subscription_id, event_id, status, retries, created_at)
                   VALUES (?, ?, ?, 0, ?)""",
                (subscription_id, event_id, status.value,
                 format_timestamp(created_at or utc_now()))
            )
            return cursor.lastrowid

    def get(self, delivery_id: int) -> DBDelivery | None:
        """Get single delivery by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM deliveries WHERE id = ?", (delivery_id,)
            ).fetchone()
            return row_to_delivery(row) if row else None

    def update_status(
        self,
        delivery_id: int,
        status: DeliveryStatus,
        response_code: int | None = None,
        attempted_at: datetime | None = None,
    ):
        """Record the outcome of a dispatch attempt."""
        with self._db.conn() as conn:
            conn.execute(
                """UPDATE deliveries
                   SET status = ?, response_code = ?, retries = retries + 1, last_attempt_at = ?
                   WHERE id = ?""",
                (status.value, response_code,
                 format_timestamp(attempted_at or utc_now()), delivery_id)
            )

    def get_queued(self) -> list[DBDelivery]:
        """Get all queued deliveries, oldest first."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM deliveries WHERE status = ? ORDER BY created_at, id",
                (DeliveryStatus.QUEUED.value,)
            ).fetchall()
            return [row_to_delivery(row) for row in rows]

    def get_for_subscription(
        self,
        subscription_id: int,
        status: DeliveryStatus | None = None,
    ) -> list[DBDelivery]:
        """Get a subscription's deliveries, oldest first."""
        query = "SELECT * FROM deliveries WHERE subscription_id = ?"
        params: list = [subscription_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY created_at, id"
        with self._db.conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [row_to_delivery(row) for row in rows]

    def get_sent_page(
        self,
        subscription_id: int,
        after: str | None = None,
        limit: int = 50,
    ) -> list[tuple[DBDelivery, dict]]:
        """
        Get sent deliveries joined with their event payloads, ascending by time.

        Args:
            subscription_id: Subscription to read
            after: Canonical timestamp; only deliveries created strictly later are returned
            limit: Page size

        Returns:
            List of (delivery, normalized event) pairs
        """
        query = """SELECT d.*, e.normalized AS event_normalized
                   FROM deliveries d
                   JOIN events e ON e.id = d.event_id
                   WHERE d.subscription_id = ? AND d.status = ?"""
        params: list = [subscription_id, DeliveryStatus.SENT.value]
        if after is not None:
            query += " AND d.created_at > ?"
            params.append(after)
        query += " ORDER BY d.created_at, d.id LIMIT ?"
        params.append(limit)

        with self._db.conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [
                (row_to_delivery(row), json.loads(row["event_normalized"]))
                for row in rows
            ]

    # --- Digest queue ---

    def add_digest_entry(
        self,
        subscription_id: int,
        event_id: int,
        created_at: datetime | None = None,
    ) -> int:
        """Queue an event for a subscription's next digest."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                "INSERT INTO digest_queue (subscription_id, event_id, created_at) VALUES (?, ?, ?)",
                (subscription_id, event_id, format_timestamp(created_at or utc_now()))
            )
            return cursor.lastrowid

    def get_digest_entries(self, subscription_id: int) -> list[DBDigestEntry]:
        """Get a subscription's queued digest entries in insertion order."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM digest_queue WHERE subscription_id = ? ORDER BY created_at, id",
                (subscription_id,)
            ).fetchall()
            return [row_to_digest_entry(row) for row in rows]

    def delete_digest_entries(self, entry_ids: list[int]):
        """Remove consumed digest entries."""
        if not entry_ids:
            return
        placeholders = ",".join("?" * len(entry_ids))
        with self._db.conn() as conn:
            conn.execute(
                f"DELETE FROM digest_queue WHERE id IN ({placeholders})", entry_ids
            )
