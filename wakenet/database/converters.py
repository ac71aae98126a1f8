"""
Database row converters - convert SQLite rows to dataclasses.

Timestamps are stored as UTC ISO-8601 strings with a fixed microsecond
precision, so lexical order in SQL matches chronological order.
"""

import json
import sqlite3
from datetime import datetime, timezone

from .models import (
    DBDelivery,
    DBDigestEntry,
    DBEvent,
    DBFeed,
    DBSubscription,
    DeliveryMode,
    DeliveryStatus,
    FeedType,
    OutputFormat,
    SubscriptionFilters,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a datetime in the canonical stored form."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _load_json(value: str | None) -> dict | None:
    if not value:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return None


def row_to_feed(row: sqlite3.Row) -> DBFeed:
    """Convert a database row to a DBFeed."""
    return DBFeed(
        id=row["id"],
        type=FeedType(row["type"]),
        config=_load_json(row["config"]) or {},
        poll_interval_minutes=row["poll_interval_minutes"],
        last_polled_at=parse_timestamp(row["last_polled_at"]),
        enabled=bool(row["enabled"]),
        created_at=parse_timestamp(row["created_at"]) or utc_now(),
        updated_at=parse_timestamp(row["updated_at"]) or utc_now(),
    )


def row_to_subscription(row: sqlite3.Row) -> DBSubscription:
    """Convert a database row to a DBSubscription."""
    return DBSubscription(
        id=row["id"],
        feed_id=row["feed_id"],
        name=row["name"],
        webhook_url=row["webhook_url"],
        pull_enabled=bool(row["pull_enabled"]),
        filters=SubscriptionFilters.from_dict(_load_json(row["filters"])),
        secret=row["secret"],
        output_format=OutputFormat(row["output_format"] or "default"),
        delivery_mode=DeliveryMode(row["delivery_mode"] or "immediate"),
        delivery_rate_limit_minutes=row["delivery_rate_limit_minutes"],
        digest_schedule_time=row["digest_schedule_time"],
        last_delivery_at=parse_timestamp(row["last_delivery_at"]),
        enabled=bool(row["enabled"]),
        created_at=parse_timestamp(row["created_at"]) or utc_now(),
        updated_at=parse_timestamp(row["updated_at"]) or utc_now(),
    )


def row_to_event(row: sqlite3.Row) -> DBEvent:
    """Convert a database row to a DBEvent."""
    return DBEvent(
        id=row["id"],
        feed_id=row["feed_id"],
        external_id=row["external_id"],
        content_hash=row["content_hash"],
        normalized=_load_json(row["normalized"]) or {},
        score=row["score"] or 0,
        created_at=parse_timestamp(row["created_at"]) or utc_now(),
    )


def row_to_delivery(row: sqlite3.Row) -> DBDelivery:
    """Convert a database row to a DBDelivery."""
    return DBDelivery(
        id=row["id"],
        subscription_id=row["subscription_id"],
        event_id=row["event_id"],
        status=DeliveryStatus(row["status"]),
        response_code=row["response_code"],
        retries=row["retries"] or 0,
        last_attempt_at=parse_timestamp(row["last_attempt_at"]),
        created_at=parse_timestamp(row["created_at"]) or utc_now(),
    )


def row_to_digest_entry(row: sqlite3.Row) -> DBDigestEntry:
    """Convert a database row to a DBDigestEntry."""
    return DBDigestEntry(
        id=row["id"],
        subscription_id=row["subscription_id"],
        event_id=row["event_id"],
        created_at=parse_timestamp(row["created_at"]) or utc_now(),
    )
