"""
Pull cursor reader.

Consumers without a public endpoint page through a subscription's sent
deliveries in creation order. The cursor is the createdAt of the last item
seen; a page starts strictly after it.
"""

from dataclasses import dataclass, field
from typing import Any

from .database import Database
from .database.converters import format_timestamp, parse_timestamp
from .exceptions import InvalidCursor, SubscriptionNotPullable

PAGE_SIZE = 50


@dataclass
class PullPage:
    items: list[dict[str, Any]] = field(default_factory=list)
    next_cursor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"items": self.items, "nextCursor": self.next_cursor}


def normalize_cursor(after: str | None) -> str | None:
    """
    Convert a client cursor to the stored timestamp form.

    Raises:
        InvalidCursor: If the cursor is not an ISO-8601 timestamp
    """
    if after is None or after == "":
        return None
    # A "+" offset arrives as a space when the query string was not encoded
    parsed = parse_timestamp(after.strip().replace(" ", "+"))
    if parsed is None:
        raise InvalidCursor(f"Invalid cursor: {after!r}")
    return format_timestamp(parsed)


def pull_deliveries(
    db: Database,
    subscription_id: int,
    after: str | None = None,
    limit: int = PAGE_SIZE,
) -> PullPage:
    """
    Read the next page of sent deliveries for a pull-enabled subscription.

    Raises:
        SubscriptionNotPullable: Unknown subscription or pull not enabled
        InvalidCursor: Unparseable cursor
    """
    subscription = db.get_subscription(subscription_id)
    if subscription is None or not subscription.pull_enabled:
        raise SubscriptionNotPullable("Subscription not found or pull not enabled")

    cursor = normalize_cursor(after)
    rows = db.get_sent_deliveries_page(subscription_id, cursor, limit)

    items = [
        {
            "deliveryId": delivery.id,
            "eventId": delivery.event_id,
            "event": normalized,
            "createdAt": format_timestamp(delivery.created_at),
        }
        for delivery, normalized in rows
    ]
    return PullPage(items=items, next_cursor=items[-1]["createdAt"] if items else None)
