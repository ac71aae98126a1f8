"""
Push-ingest validation for webhook_inbox feeds.

Producers POST a single event object or an array of them. Items missing
a required field (or exceeding its length limit) are dropped; optional
fields that are malformed are omitted from the stored event.
"""

import json
from typing import Any

from .adapters.base import CandidateEvent
from .exceptions import IngestRejected

MAX_BODY_BYTES = 512 * 1024
MAX_EVENTS_PER_REQUEST = 100

MAX_ID_LENGTH = 500
MAX_SOURCE_LENGTH = 500
MAX_TITLE_LENGTH = 2000
MAX_LINK_LENGTH = 2048
MAX_PUBLISHED_LENGTH = 100
MAX_EVENT_BODY_LENGTH = 100 * 1024
MAX_METADATA_LENGTH = 50_000


def check_content_length(header: str | None):
    """
    Reject a request whose declared size is over the limit, before reading it.

    Raises:
        IngestRejected: 413 when Content-Length exceeds MAX_BODY_BYTES
    """
    if not header:
        return
    try:
        declared = int(header)
    except ValueError:
        return
    if declared > MAX_BODY_BYTES:
        raise IngestRejected(f"Request body too large (max {MAX_BODY_BYTES // 1024} KB)", 413)


def _required(value: Any, max_length: int) -> str | None:
    if isinstance(value, str) and 0 < len(value) <= max_length:
        return value
    return None


def _optional(value: Any, max_length: int) -> str | None:
    if isinstance(value, str) and len(value) <= max_length:
        return value
    return None


def _metadata(value: Any) -> dict | None:
    if not isinstance(value, dict):
        return None
    try:
        serialized = json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError):
        return None
    return value if len(serialized) <= MAX_METADATA_LENGTH else None


def parse_item(raw: Any) -> CandidateEvent | None:
    """Validate one pushed item; None when a required field is invalid."""
    if not isinstance(raw, dict):
        return None

    item_id = _required(raw.get("id"), MAX_ID_LENGTH)
    source = _required(raw.get("source"), MAX_SOURCE_LENGTH)
    title = _required(raw.get("title"), MAX_TITLE_LENGTH)
    if item_id is None or source is None or title is None:
        return None

    return CandidateEvent(
        id=item_id,
        source=source,
        title=title,
        link=_optional(raw.get("link"), MAX_LINK_LENGTH),
        published=_optional(raw.get("published"), MAX_PUBLISHED_LENGTH),
        body=_optional(raw.get("body"), MAX_EVENT_BODY_LENGTH),
        metadata=_metadata(raw.get("metadata")),
    )


def parse_ingest_body(raw: bytes) -> list[CandidateEvent]:
    """
    Parse and validate a push-ingest request body.

    Raises:
        IngestRejected: 413 for an oversized body, 400 for invalid JSON, too
            many items, or no valid items
    """
    if len(raw) > MAX_BODY_BYTES:
        raise IngestRejected(f"Request body too large (max {MAX_BODY_BYTES // 1024} KB)", 413)

    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
        # Deeply nested arrays exceed the recursion limit
        raise IngestRejected("Invalid JSON body")

    items = body if isinstance(body, list) else [body]
    if len(items) > MAX_EVENTS_PER_REQUEST:
        raise IngestRejected(f"Too many events (max {MAX_EVENTS_PER_REQUEST} per request)")

    events = [event for event in (parse_item(item) for item in items) if event is not None]
    if not events:
        raise IngestRejected(
            "No valid events (need id, source, title per item; check field length limits)"
        )
    return events
