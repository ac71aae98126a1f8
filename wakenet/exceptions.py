"""
Error types shared across the pipeline, plus HTTP helpers for common 404 patterns.
"""

from typing import TypeVar

from fastapi import HTTPException

T = TypeVar("T")


class AdapterError(Exception):
    """A source adapter could not fetch or parse its upstream."""


class ConfigError(ValueError):
    """A feed configuration does not match the shape required by its type."""


class FeedNotPollable(LookupError):
    """The feed does not exist, is disabled, or is not a polled type."""


class SubscriptionNotPullable(LookupError):
    """The subscription does not exist or does not have pull enabled."""


class InvalidCursor(ValueError):
    """A pull cursor is not an ISO-8601 timestamp."""


class IngestRejected(Exception):
    """A push-ingest request was rejected as a whole."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def require_resource(resource: T | None, detail: str = "Resource not found") -> T:
    """
    Raise 404 if resource is None, otherwise return the resource.

    Usage:
        feed = require_resource(db.get_feed(id), "Feed not found")
    """
    if resource is None:
        raise HTTPException(status_code=404, detail=detail)
    return resource


def require_feed(feed: T | None) -> T:
    """Raise 404 if feed is None."""
    return require_resource(feed, "Feed not found")


def require_subscription(subscription: T | None) -> T:
    """Raise 404 if subscription is None."""
    return require_resource(subscription, "Subscription not found")
