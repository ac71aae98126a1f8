"""Outbound webhook payload shapes."""

from datetime import datetime
from typing import Any

from ..database.converters import format_timestamp, utc_now
from ..database.models import DBEvent, OutputFormat

SUMMARY_LENGTH = 200


def _delivered_at(now: datetime | None) -> str:
    return format_timestamp(now or utc_now())


def summarize(event: dict[str, Any]) -> str:
    """Body truncated for promoter payloads, falling back to the title."""
    body = event.get("body")
    if not body:
        return event.get("title", "")
    if len(body) > SUMMARY_LENGTH:
        return body[:SUMMARY_LENGTH] + "…"
    return body


def event_payload(event: DBEvent, now: datetime | None = None) -> dict[str, Any]:
    return {
        "id": event.id,
        "feedId": event.feed_id,
        "event": event.normalized,
        "deliveredAt": _delivered_at(now),
    }


def promoter_payload(event: DBEvent, now: datetime | None = None) -> dict[str, Any]:
    normalized = event.normalized
    payload = {
        "type": "feed_event",
        "title": normalized.get("title", ""),
        "summary": summarize(normalized),
        "url": normalized.get("link"),
        "source": normalized.get("source"),
        "published_at": normalized.get("published"),
        "eventId": event.id,
        "deliveredAt": _delivered_at(now),
    }
    return {key: value for key, value in payload.items() if value is not None}


def build_payload(
    event: DBEvent,
    output_format: OutputFormat,
    now: datetime | None = None,
) -> dict[str, Any]:
    if output_format == OutputFormat.PROMOTER:
        return promoter_payload(event, now)
    return event_payload(event, now)


def digest_payload(
    events: list[DBEvent],
    output_format: OutputFormat,
    now: datetime | None = None,
) -> dict[str, Any]:
    if output_format == OutputFormat.PROMOTER:
        items = [promoter_payload(event, now) for event in events]
    else:
        items = [{"id": event.id, "event": event.normalized} for event in events]
    return {
        "type": "digest",
        "items": items,
        "count": len(items),
        "deliveredAt": _delivered_at(now),
    }
