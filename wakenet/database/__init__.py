"""
Database module - SQLite event store for feeds, subscriptions, events and deliveries.

Uses repository pattern for better separation of concerns.
"""

from .connection import DatabaseConnection
from .models import (
    DBDelivery,
    DBDigestEntry,
    DBEvent,
    DBFeed,
    DBSubscription,
    DeliveryMode,
    DeliveryStatus,
    FeedType,
    InsertResult,
    OutputFormat,
    SubscriptionFilters,
)
from .feed_repository import FeedRepository
from .subscription_repository import SubscriptionRepository
from .event_repository import EventRepository
from .delivery_repository import DeliveryRepository
from .database import Database

__all__ = [
    "Database",
    "DatabaseConnection",
    "DBDelivery",
    "DBDigestEntry",
    "DBEvent",
    "DBFeed",
    "DBSubscription",
    "DeliveryMode",
    "DeliveryStatus",
    "FeedType",
    "InsertResult",
    "OutputFormat",
    "SubscriptionFilters",
    "FeedRepository",
    "SubscriptionRepository",
    "EventRepository",
    "DeliveryRepository",
]
