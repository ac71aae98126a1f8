"""
Database models - dataclasses and enums for database entities.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class FeedType(str, Enum):
    RSS = "rss"
    GITHUB_RELEASES = "github_releases"
    HTTP_JSON = "http_json"
    GITHUB_COMMITS = "github_commits"
    GITHUB_PULL_REQUESTS = "github_pull_requests"
    WEBHOOK_INBOX = "webhook_inbox"
    SITEMAP = "sitemap"
    HTML_CHANGE = "html_change"

    @property
    def is_pollable(self) -> bool:
        """Inbox feeds receive pushed events and are never polled."""
        return self is not FeedType.WEBHOOK_INBOX


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


class DeliveryMode(str, Enum):
    IMMEDIATE = "immediate"
    DAILY_DIGEST = "daily_digest"


class OutputFormat(str, Enum):
    DEFAULT = "default"
    PROMOTER = "promoter"


@dataclass
class SubscriptionFilters:
    include_keywords: list[str] = field(default_factory=list)
    exclude_keywords: list[str] = field(default_factory=list)
    min_score: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SubscriptionFilters | None":
        if data is None:
            return None
        return cls(
            include_keywords=list(data.get("includeKeywords") or []),
            exclude_keywords=list(data.get("excludeKeywords") or []),
            min_score=int(data.get("minScore") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "includeKeywords": self.include_keywords,
            "excludeKeywords": self.exclude_keywords,
            "minScore": self.min_score,
        }


@dataclass
class DBFeed:
    id: int
    type: FeedType
    config: dict[str, Any]
    poll_interval_minutes: int
    last_polled_at: datetime | None
    enabled: bool
    created_at: datetime
    updated_at: datetime


@dataclass
class DBSubscription:
    id: int
    feed_id: int
    name: str
    webhook_url: str | None
    pull_enabled: bool
    filters: SubscriptionFilters | None
    secret: str
    output_format: OutputFormat
    delivery_mode: DeliveryMode
    delivery_rate_limit_minutes: int | None
    digest_schedule_time: str | None  # UTC "HH:MM"
    last_delivery_at: datetime | None
    enabled: bool
    created_at: datetime
    updated_at: datetime

    @property
    def is_pull_only(self) -> bool:
        return self.pull_enabled and not self.webhook_url


@dataclass
class DBEvent:
    id: int
    feed_id: int
    external_id: str
    content_hash: str
    normalized: dict[str, Any]
    score: int
    created_at: datetime


@dataclass
class DBDelivery:
    id: int
    subscription_id: int
    event_id: int
    status: DeliveryStatus
    response_code: int | None
    retries: int
    last_attempt_at: datetime | None
    created_at: datetime


@dataclass
class DBDigestEntry:
    id: int
    subscription_id: int
    event_id: int
    created_at: datetime


@dataclass
class InsertResult:
    """Outcome of an insert-if-new: the stored event, or None for a duplicate."""
    created: DBEvent | None

    @property
    def duplicate(self) -> bool:
        return self.created is None
