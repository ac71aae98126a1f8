"""
Ingest pipeline: adapter -> identity -> store -> filter -> route -> deliver.

Used by the poll endpoint, the scheduled poll job and push ingest. Events
are committed before any delivery for them is recorded, so a delivery
failure never loses an event.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .adapters import CandidateEvent, poll_feed
from .database import Database, DBEvent, DBFeed, DBSubscription, DeliveryMode, DeliveryStatus
from .database.converters import utc_now
from .delivery import WebhookDispatcher, build_payload, dispatch_safely, is_rate_limited
from .exceptions import AdapterError, FeedNotPollable
from .filtering import passes, promo_score

logger = logging.getLogger(__name__)


@dataclass
class IngestOutcome:
    events_new: int = 0
    deliveries_created: int = 0


@dataclass
class PollResult:
    events_found: int
    events_new: int
    deliveries_created: int

    def to_dict(self) -> dict[str, int]:
        return {
            "eventsFound": self.events_found,
            "eventsNew": self.events_new,
            "deliveriesCreated": self.deliveries_created,
        }


class DeliveryRouter:
    """
    Routes newly stored events to a feed's subscriptions.

    Rate limits are checked against last-delivery times tracked for the
    whole batch, so a burst of events honours the window even before the
    store is updated.
    """

    def __init__(self, db: Database, dispatcher: WebhookDispatcher):
        self._db = db
        self._dispatcher = dispatcher
        self._last_delivery: dict[int, datetime | None] = {}

    async def route(self, feed_id: int, events: list[DBEvent]) -> int:
        """Route events in discovery order. Returns deliveries plus digest entries created."""
        if not events:
            return 0

        created = 0
        for subscription in self._db.list_subscriptions(feed_id, enabled_only=True):
            self._last_delivery.setdefault(subscription.id, subscription.last_delivery_at)
            for event in events:
                candidate = CandidateEvent.from_dict(event.normalized)
                if not passes(candidate, subscription.filters, subscription.output_format):
                    continue
                created += await self._route_one(subscription, event)
        return created

    async def _route_one(self, subscription: DBSubscription, event: DBEvent) -> int:
        if subscription.delivery_mode == DeliveryMode.DAILY_DIGEST:
            self._db.add_digest_entry(subscription.id, event.id)
            return 1

        if subscription.is_pull_only:
            self._db.record_delivery(subscription.id, event.id, DeliveryStatus.SENT)
            return 1

        if not subscription.webhook_url:
            return 0

        now = utc_now()
        if is_rate_limited(
            subscription.delivery_rate_limit_minutes,
            self._last_delivery[subscription.id],
            now,
        ):
            self._db.record_delivery(subscription.id, event.id, DeliveryStatus.QUEUED)
            return 1

        delivery_id = self._db.record_delivery(subscription.id, event.id, DeliveryStatus.PENDING)
        payload = build_payload(event, subscription.output_format, now)
        outcome = await dispatch_safely(
            self._dispatcher, subscription.webhook_url, payload, subscription.secret
        )

        if outcome.ok:
            self._db.update_delivery_status(delivery_id, DeliveryStatus.SENT, outcome.http_status)
            self._db.set_last_delivery(subscription.id, now)
            self._last_delivery[subscription.id] = now
        else:
            self._db.update_delivery_status(delivery_id, DeliveryStatus.FAILED, outcome.http_status)
            logger.warning(
                f"Delivery of event {event.id} to subscription {subscription.id} failed "
                f"(HTTP {outcome.http_status})"
            )
        return 1


async def process_candidate_events(
    db: Database,
    dispatcher: WebhookDispatcher,
    feed: DBFeed,
    candidates: list[CandidateEvent],
) -> IngestOutcome:
    """Store new candidates for a feed and route them to its subscriptions."""
    stored: list[DBEvent] = []
    for candidate in candidates:
        result = db.insert_event_if_new(feed.id, candidate, score=promo_score(candidate, None))
        if not result.duplicate:
            stored.append(result.created)

    router = DeliveryRouter(db, dispatcher)
    deliveries_created = await router.route(feed.id, stored)
    return IngestOutcome(events_new=len(stored), deliveries_created=deliveries_created)


async def run_feed_poll(
    db: Database,
    dispatcher: WebhookDispatcher,
    feed_id: int,
) -> PollResult:
    """
    Poll one feed and process what it returns.

    Raises:
        FeedNotPollable: Unknown or disabled feed, or a webhook inbox
        AdapterError: The upstream fetch failed; nothing was stored
        ConfigError: The stored config no longer validates
    """
    feed = db.get_feed(feed_id)
    if feed is None or not feed.enabled:
        raise FeedNotPollable("Feed not found or disabled")
    if not feed.type.is_pollable:
        raise FeedNotPollable(f"Feed type {feed.type.value} is not pollable")

    try:
        candidates = await poll_feed(feed.type, feed.config)
    except AdapterError:
        # Stamp anyway so the feed waits a full interval before the next attempt
        db.mark_feed_polled(feed.id)
        raise

    outcome = await process_candidate_events(db, dispatcher, feed, candidates)
    db.mark_feed_polled(feed.id)

    logger.info(
        f"Polled feed {feed.id} ({feed.type.value}): {len(candidates)} found, "
        f"{outcome.events_new} new, {outcome.deliveries_created} deliveries"
    )
    return PollResult(
        events_found=len(candidates),
        events_new=outcome.events_new,
        deliveries_created=outcome.deliveries_created,
    )
