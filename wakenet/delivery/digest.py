"""Digest builder - one batched, signed POST per daily-digest subscription."""

import logging
from dataclasses import dataclass
from datetime import datetime

from ..database import Database
from ..database.converters import utc_now
from .payloads import digest_payload
from .queue import dispatch_safely
from .webhook import WebhookDispatcher

logger = logging.getLogger(__name__)


@dataclass
class DigestResult:
    sent: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"sent": self.sent, "failed": self.failed}


def current_schedule_slot(now: datetime | None = None) -> str:
    """The UTC "HH:MM" a digest run at this moment serves."""
    return (now or utc_now()).strftime("%H:%M")


async def send_daily_digests(
    db: Database,
    dispatcher: WebhookDispatcher,
    hhmm: str,
    now: datetime | None = None,
) -> DigestResult:
    """
    Send the queued digest of every subscription scheduled at `hhmm`.

    Entries are removed only after a 2xx response, and only the entries
    that were part of the payload; anything queued meanwhile stays for the
    next run. On failure the whole queue is kept.
    """
    now = now or utc_now()
    result = DigestResult()

    for subscription in db.get_digest_subscriptions(hhmm):
        if not subscription.webhook_url:
            continue

        entries = db.get_digest_entries(subscription.id)
        if not entries:
            continue

        events_by_id = db.get_events_by_ids([entry.event_id for entry in entries])
        events = [events_by_id[e.event_id] for e in entries if e.event_id in events_by_id]
        payload = digest_payload(events, subscription.output_format, now)

        outcome = await dispatch_safely(
            dispatcher, subscription.webhook_url, payload, subscription.secret
        )
        if outcome.ok:
            db.delete_digest_entries([entry.id for entry in entries])
            db.set_last_delivery(subscription.id, now)
            result.sent += 1
            logger.info(f"Digest with {len(events)} items sent to subscription {subscription.id}")
        else:
            result.failed += 1
            logger.warning(
                f"Digest for subscription {subscription.id} failed "
                f"(HTTP {outcome.http_status}); {len(entries)} entries kept"
            )

    return result
