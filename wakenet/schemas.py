"""
Pydantic models for API request/response validation.

JSON bodies use camelCase keys; Python attributes stay snake_case.
"""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .database import DBEvent, DBFeed, DBSubscription
from .database.converters import format_timestamp
from .database.models import DeliveryMode, FeedType, OutputFormat, SubscriptionFilters
from .url_validator import validate_target_url

SCHEDULE_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def normalize_schedule_time(value: str | None) -> str | None:
    """Normalize "9:05" to "09:05"; rejects times outside a day."""
    if value is None:
        return None
    match = SCHEDULE_TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError("digestScheduleTime must be HH:MM (UTC)")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError("digestScheduleTime must be a valid UTC time")
    return f"{hours:02d}:{minutes:02d}"


def _timestamp(value) -> str | None:
    return format_timestamp(value) if value else None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─────────────────────────────────────────────────────────────
# Feed Schemas
# ─────────────────────────────────────────────────────────────

class FeedResponse(CamelModel):
    """Registered feed."""
    id: int
    type: FeedType
    config: dict[str, Any]
    poll_interval_minutes: int
    last_polled_at: str | None
    enabled: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_db(cls, feed: DBFeed) -> "FeedResponse":
        return cls(
            id=feed.id,
            type=feed.type,
            config=feed.config,
            poll_interval_minutes=feed.poll_interval_minutes,
            last_polled_at=_timestamp(feed.last_polled_at),
            enabled=feed.enabled,
            created_at=format_timestamp(feed.created_at),
            updated_at=format_timestamp(feed.updated_at),
        )


class CreateFeedRequest(CamelModel):
    """Register a feed; config is validated against the type's shape."""
    type: FeedType
    config: dict[str, Any] = Field(default_factory=dict)
    poll_interval_minutes: int = Field(default=15, ge=1, le=1440)


class UpdateFeedRequest(CamelModel):
    """Only the enable flag and poll interval are mutable."""
    model_config = ConfigDict(extra="forbid")

    enabled: bool | None = None
    poll_interval_minutes: int | None = Field(default=None, ge=1, le=1440)


# ─────────────────────────────────────────────────────────────
# Subscription Schemas
# ─────────────────────────────────────────────────────────────

class FiltersModel(CamelModel):
    include_keywords: list[str] = Field(default_factory=list)
    exclude_keywords: list[str] = Field(default_factory=list)
    min_score: int = 0

    def to_filters(self) -> SubscriptionFilters:
        return SubscriptionFilters(
            include_keywords=self.include_keywords,
            exclude_keywords=self.exclude_keywords,
            min_score=self.min_score,
        )


class SubscriptionResponse(CamelModel):
    """Subscription without its signing secret."""
    id: int
    feed_id: int
    name: str
    webhook_url: str | None
    pull_enabled: bool
    filters: FiltersModel | None
    output_format: OutputFormat
    delivery_mode: DeliveryMode
    delivery_rate_limit_minutes: int | None
    digest_schedule_time: str | None
    last_delivery_at: str | None
    enabled: bool
    created_at: str
    updated_at: str

    @classmethod
    def _fields_from_db(cls, sub: DBSubscription) -> dict[str, Any]:
        filters = None
        if sub.filters is not None:
            filters = FiltersModel(
                include_keywords=sub.filters.include_keywords,
                exclude_keywords=sub.filters.exclude_keywords,
                min_score=sub.filters.min_score,
            )
        return dict(
            id=sub.id,
            feed_id=sub.feed_id,
            name=sub.name,
            webhook_url=sub.webhook_url,
            pull_enabled=sub.pull_enabled,
            filters=filters,
            output_format=sub.output_format,
            delivery_mode=sub.delivery_mode,
            delivery_rate_limit_minutes=sub.delivery_rate_limit_minutes,
            digest_schedule_time=sub.digest_schedule_time,
            last_delivery_at=_timestamp(sub.last_delivery_at),
            enabled=sub.enabled,
            created_at=format_timestamp(sub.created_at),
            updated_at=format_timestamp(sub.updated_at),
        )

    @classmethod
    def from_db(cls, sub: DBSubscription) -> "SubscriptionResponse":
        return cls(**cls._fields_from_db(sub))


class SubscriptionCreatedResponse(SubscriptionResponse):
    """Returned once, by the create call: includes the signing secret."""
    secret: str

    @classmethod
    def from_db(cls, sub: DBSubscription) -> "SubscriptionCreatedResponse":
        return cls(**cls._fields_from_db(sub), secret=sub.secret)


class _SubscriptionFields(CamelModel):
    @field_validator("webhook_url", check_fields=False)
    @classmethod
    def _check_webhook_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validate_target_url(value)

    @field_validator("digest_schedule_time", check_fields=False)
    @classmethod
    def _normalize_time(cls, value: str | None) -> str | None:
        return normalize_schedule_time(value)


class CreateSubscriptionRequest(_SubscriptionFields):
    feed_id: int
    name: str = Field(min_length=1, max_length=200)
    webhook_url: str | None = None
    pull_enabled: bool = False
    filters: FiltersModel | None = None
    output_format: OutputFormat = OutputFormat.DEFAULT
    delivery_mode: DeliveryMode = DeliveryMode.IMMEDIATE
    delivery_rate_limit_minutes: int | None = Field(default=None, ge=0, le=1440)
    digest_schedule_time: str | None = None


class UpdateSubscriptionRequest(_SubscriptionFields):
    """Partial update; explicit nulls clear nullable fields. The secret cannot change."""
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=200)
    webhook_url: str | None = None
    pull_enabled: bool | None = None
    enabled: bool | None = None
    filters: FiltersModel | None = None
    output_format: OutputFormat | None = None
    delivery_mode: DeliveryMode | None = None
    delivery_rate_limit_minutes: int | None = Field(default=None, ge=0, le=1440)
    digest_schedule_time: str | None = None


# ─────────────────────────────────────────────────────────────
# Event Schemas
# ─────────────────────────────────────────────────────────────

class EventResponse(CamelModel):
    """Stored event with its normalized payload."""
    id: int
    feed_id: int
    external_id: str
    content_hash: str
    event: dict[str, Any]
    score: int
    created_at: str

    @classmethod
    def from_db(cls, event: DBEvent) -> "EventResponse":
        return cls(
            id=event.id,
            feed_id=event.feed_id,
            external_id=event.external_id,
            content_hash=event.content_hash,
            event=event.normalized,
            score=event.score,
            created_at=format_timestamp(event.created_at),
        )


# ─────────────────────────────────────────────────────────────
# Pipeline Schemas
# ─────────────────────────────────────────────────────────────

class PollResponse(CamelModel):
    events_found: int
    events_new: int
    deliveries_created: int


class IngestResponse(CamelModel):
    accepted: int
    events_new: int
    deliveries_created: int


class PullResponse(CamelModel):
    items: list[dict[str, Any]]
    next_cursor: str | None
