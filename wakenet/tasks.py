"""
Periodic jobs: poll due feeds, drain the rate-limit queue, send digests.

Run by the in-process scheduler or triggered through the /jobs endpoints.
A failure in one feed is logged and never stops the rest of the run.
"""

import logging
from datetime import datetime
from typing import Any

from .database import Database
from .database.converters import utc_now
from .delivery import WebhookDispatcher, current_schedule_slot, drain_queued_deliveries, send_daily_digests
from .exceptions import AdapterError, ConfigError, FeedNotPollable
from .pipeline import run_feed_poll

logger = logging.getLogger(__name__)


async def poll_due_feeds(
    db: Database,
    dispatcher: WebhookDispatcher,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Poll every feed whose interval has elapsed."""
    due = db.list_feeds_due_for_poll(now or utc_now())
    polled = 0
    failed = 0
    events_new = 0
    deliveries_created = 0

    for feed in due:
        try:
            result = await run_feed_poll(db, dispatcher, feed.id)
        except (AdapterError, ConfigError, FeedNotPollable) as e:
            logger.warning(f"Poll of feed {feed.id} failed: {e}")
            failed += 1
            continue
        except Exception:
            logger.exception(f"Unexpected error polling feed {feed.id}")
            failed += 1
            continue
        polled += 1
        events_new += result.events_new
        deliveries_created += result.deliveries_created

    if due:
        logger.info(f"Poll run: {polled}/{len(due)} feeds polled, {events_new} new events")
    return {
        "due": len(due),
        "polled": polled,
        "failed": failed,
        "eventsNew": events_new,
        "deliveriesCreated": deliveries_created,
    }


async def drain_queue(
    db: Database,
    dispatcher: WebhookDispatcher,
    now: datetime | None = None,
) -> dict[str, int]:
    result = await drain_queued_deliveries(db, dispatcher, now)
    return result.to_dict()


async def send_digests(
    db: Database,
    dispatcher: WebhookDispatcher,
    now: datetime | None = None,
    hhmm: str | None = None,
) -> dict[str, Any]:
    """Send the digests scheduled for the current UTC minute (or an explicit slot)."""
    now = now or utc_now()
    slot = hhmm or current_schedule_slot(now)
    result = await send_daily_digests(db, dispatcher, slot, now)
    return {"slot": slot, **result.to_dict()}
