"""
Database connection management and schema initialization.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class DatabaseConnection:
    """Manages database connection and schema."""

    def __init__(self, db_path: Path, busy_timeout: float = 30.0):
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def conn(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with row factory.

        Each block is one transaction: committed on normal exit, rolled
        back when the block raises.
        """
        connection = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self.conn() as connection:
            connection.executescript("""
                CREATE TABLE IF NOT EXISTS feeds (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT NOT NULL,
                    config TEXT NOT NULL,
                    inbox_token TEXT UNIQUE,
                    inbox_secret TEXT,
                    poll_interval_minutes INTEGER NOT NULL DEFAULT 15,
                    last_polled_at TEXT,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    feed_id INTEGER NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    webhook_url TEXT,
                    pull_enabled INTEGER NOT NULL DEFAULT 0,
                    filters TEXT,
                    secret TEXT NOT NULL,
                    output_format TEXT NOT NULL DEFAULT 'default',
                    delivery_mode TEXT NOT NULL DEFAULT 'immediate',
                    delivery_rate_limit_minutes INTEGER,
                    digest_schedule_time TEXT,
                    last_delivery_at TEXT,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    feed_id INTEGER NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
                    external_id TEXT NOT NULL,
                    content_hash TEXT NOT NULL,
                    normalized TEXT NOT NULL,
                    score INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    UNIQUE (feed_id, content_hash)
                );

                CREATE TABLE IF NOT EXISTS deliveries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subscription_id INTEGER NOT NULL REFERENCES subscriptions(id) ON DELETE CASCADE,
                    event_id INTEGER NOT NULL REFERENCES events(id) ON DELETE CASCADE,
                    status TEXT NOT NULL CHECK(status IN ('pending', 'queued', 'sent', 'failed')),
                    response_code INTEGER,
                    retries INTEGER NOT NULL DEFAULT 0,
                    last_attempt_at TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS digest_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subscription_id INTEGER NOT NULL REFERENCES subscriptions(id) ON DELETE CASCADE,
                    event_id INTEGER NOT NULL REFERENCES events(id) ON DELETE CASCADE,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_subscriptions_feed ON subscriptions(feed_id, enabled);
                CREATE INDEX IF NOT EXISTS idx_events_external ON events(feed_id, external_id);
                CREATE INDEX IF NOT EXISTS idx_events_created ON events(created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_deliveries_status ON deliveries(status, created_at);
                CREATE INDEX IF NOT EXISTS idx_deliveries_subscription ON deliveries(subscription_id, status, created_at);
                CREATE INDEX IF NOT EXISTS idx_digest_queue_subscription ON digest_queue(subscription_id, created_at);
            """)
