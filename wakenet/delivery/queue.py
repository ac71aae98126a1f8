"""
Queue drainer - sends deliveries held back by a subscription's rate limit.

Each run advances at most one queued delivery per subscription, oldest
first, and only once the subscription's window has elapsed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..database import Database, DeliveryStatus
from ..database.converters import utc_now
from .payloads import build_payload
from .webhook import DeliveryResult, WebhookDispatcher

logger = logging.getLogger(__name__)


@dataclass
class DrainResult:
    sent: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"sent": self.sent, "failed": self.failed}


def is_rate_limited(
    rate_limit_minutes: int | None,
    last_delivery_at: datetime | None,
    now: datetime,
) -> bool:
    """True while the subscription's delivery window has not elapsed."""
    if not rate_limit_minutes or last_delivery_at is None:
        return False
    return now - last_delivery_at < timedelta(minutes=rate_limit_minutes)


async def dispatch_safely(
    dispatcher: WebhookDispatcher,
    url: str,
    payload: dict,
    secret: str,
) -> DeliveryResult:
    """Dispatch, turning an unexpected dispatcher error into a failed result."""
    try:
        return await dispatcher.deliver(url, payload, secret)
    except Exception:
        logger.exception(f"Dispatcher error for {url}")
        return DeliveryResult(ok=False, http_status=0)


async def drain_queued_deliveries(
    db: Database,
    dispatcher: WebhookDispatcher,
    now: datetime | None = None,
) -> DrainResult:
    now = now or utc_now()
    result = DrainResult()
    advanced: set[int] = set()

    for delivery in db.get_queued_deliveries():
        if delivery.subscription_id in advanced:
            continue

        subscription = db.get_subscription(delivery.subscription_id)
        if not subscription or not subscription.enabled or not subscription.webhook_url:
            continue
        if is_rate_limited(
            subscription.delivery_rate_limit_minutes, subscription.last_delivery_at, now
        ):
            continue

        advanced.add(subscription.id)

        event = db.get_event(delivery.event_id)
        if event is None:
            logger.warning(f"Delivery {delivery.id} references missing event {delivery.event_id}")
            db.update_delivery_status(delivery.id, DeliveryStatus.FAILED)
            result.failed += 1
            continue

        payload = build_payload(event, subscription.output_format, now)
        outcome = await dispatch_safely(
            dispatcher, subscription.webhook_url, payload, subscription.secret
        )

        if outcome.ok:
            db.update_delivery_status(delivery.id, DeliveryStatus.SENT, outcome.http_status)
            db.set_last_delivery(subscription.id, now)
            result.sent += 1
        else:
            db.update_delivery_status(delivery.id, DeliveryStatus.FAILED, outcome.http_status)
            result.failed += 1

    if result.sent or result.failed:
        logger.info(f"Queue drain: {result.sent} sent, {result.failed} failed")
    return result
