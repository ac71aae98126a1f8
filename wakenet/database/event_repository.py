"""
Event repository - deduplicating inserts and reads for events.
"""

import json
import sqlite3
from datetime import datetime
from typing import Any

from .connection import DatabaseConnection
from .converters import format_timestamp, row_to_event, utc_now
from .models import DBEvent


class EventRepository:
    """Repository for event operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def insert_if_new(
        self,
        feed_id: int,
        external_id: str,
        content_hash: str,
        normalized: dict[str, Any],
        score: int = 0,
        created_at: datetime | None = None,
    ) -> DBEvent | None:
        """
        Insert an event unless the feed has already seen it.

        An event is a duplicate when either its external ID or its content
        hash already exists for the feed. The (feed_id, content_hash) unique
        index settles races between concurrent pollers: the losing insert
        raises IntegrityError and is reported as a duplicate.

        Returns:
            The stored event, or None if it was a duplicate
        """
        stamp = format_timestamp(created_at or utc_now())
        with self._db.conn() as conn:
            existing = conn.execute(
                "SELECT 1 FROM events WHERE feed_id = ? AND external_id = ? LIMIT 1",
                (feed_id, external_id)
            ).fetchone()
            if existing:
                return None

            existing = conn.execute(
                "SELECT 1 FROM events WHERE feed_id = ? AND content_hash = ? LIMIT 1",
                (feed_id, content_hash)
            ).fetchone()
            if existing:
                return None

            try:
                cursor = conn.execute(
                    """INSERT INTO events
                       (feed_id, external_id, content_hash, normalized, score, created_at)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (feed_id, external_id, content_hash, json.dumps(normalized), score, stamp)
                )
            except sqlite3.IntegrityError:
                return None

            row = conn.execute(
                "SELECT * FROM events WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
            return row_to_event(row)

    def get(self, event_id: int) -> DBEvent | None:
        """Get single event by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM events WHERE id = ?", (event_id,)
            ).fetchone()
            return row_to_event(row) if row else None

    def get_by_ids(self, event_ids: list[int]) -> dict[int, DBEvent]:
        """Get events by ID, keyed by ID. Missing IDs are absent from the result."""
        if not event_ids:
            return {}
        placeholders = ",".join("?" * len(event_ids))
        with self._db.conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM events WHERE id IN ({placeholders})", event_ids
            ).fetchall()
            return {row["id"]: row_to_event(row) for row in rows}

    def get_many(self, feed_id: int | None = None, limit: int = 50) -> list[DBEvent]:
        """Get events newest first, optionally for one feed."""
        query = "SELECT * FROM events"
        params: list = []
        if feed_id is not None:
            query += " WHERE feed_id = ?"
            params.append(feed_id)
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)

        with self._db.conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [row_to_event(row) for row in rows]

    def count_for_feed(self, feed_id: int) -> int:
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM events WHERE feed_id = ?", (feed_id,)
            ).fetchone()
            return row["n"]
