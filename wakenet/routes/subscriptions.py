"""
Subscription routes: registration, updates and the pull endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import generate_secret, verify_api_key
from ..config import get_db
from ..database import Database, DeliveryMode
from ..exceptions import InvalidCursor, SubscriptionNotPullable, require_feed, require_subscription
from ..pull import pull_deliveries
from ..schemas import (
    CreateSubscriptionRequest,
    PullResponse,
    SubscriptionCreatedResponse,
    SubscriptionResponse,
    UpdateSubscriptionRequest,
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def check_delivery_target(
    webhook_url: str | None,
    pull_enabled: bool,
    delivery_mode: DeliveryMode,
    digest_schedule_time: str | None,
):
    """Raise 400 unless the subscription can actually receive events."""
    if not webhook_url and not pull_enabled:
        raise HTTPException(status_code=400, detail="Set webhookUrl or pullEnabled")
    if delivery_mode == DeliveryMode.DAILY_DIGEST:
        if not webhook_url:
            raise HTTPException(status_code=400, detail="daily_digest requires webhookUrl")
        if not digest_schedule_time:
            raise HTTPException(status_code=400, detail="daily_digest requires digestScheduleTime")


# ─────────────────────────────────────────────────────────────
# Subscription Management
# ─────────────────────────────────────────────────────────────

@router.get("")
async def list_subscriptions(
    db: Annotated[Database, Depends(get_db)]
) -> list[SubscriptionResponse]:
    """List all subscriptions (secrets are never listed)."""
    return [SubscriptionResponse.from_db(s) for s in db.get_subscriptions()]


@router.post("", dependencies=[Depends(verify_api_key)])
async def add_subscription(
    request: CreateSubscriptionRequest,
    db: Annotated[Database, Depends(get_db)]
) -> SubscriptionCreatedResponse:
    """Create a subscription. The signing secret is returned only here."""
    require_feed(db.get_feed(request.feed_id))
    check_delivery_target(
        request.webhook_url,
        request.pull_enabled,
        request.delivery_mode,
        request.digest_schedule_time,
    )

    subscription_id = db.add_subscription(
        feed_id=request.feed_id,
        name=request.name,
        secret=generate_secret(),
        webhook_url=request.webhook_url,
        pull_enabled=request.pull_enabled,
        filters=request.filters.to_filters() if request.filters else None,
        output_format=request.output_format,
        delivery_mode=request.delivery_mode,
        delivery_rate_limit_minutes=request.delivery_rate_limit_minutes,
        digest_schedule_time=request.digest_schedule_time,
    )

    sub = db.get_subscription(subscription_id)
    if not sub:
        raise HTTPException(status_code=500, detail="Failed to retrieve subscription")
    return SubscriptionCreatedResponse.from_db(sub)


@router.get("/{subscription_id}")
async def get_subscription(
    subscription_id: int,
    db: Annotated[Database, Depends(get_db)]
) -> SubscriptionResponse:
    """Get a single subscription."""
    return SubscriptionResponse.from_db(require_subscription(db.get_subscription(subscription_id)))


@router.patch("/{subscription_id}", dependencies=[Depends(verify_api_key)])
async def update_subscription(
    subscription_id: int,
    request: UpdateSubscriptionRequest,
    db: Annotated[Database, Depends(get_db)]
) -> SubscriptionResponse:
    """Partially update a subscription."""
    current = require_subscription(db.get_subscription(subscription_id))
    changes = request.model_dump(exclude_unset=True)

    for column in ("name", "pull_enabled", "enabled", "output_format", "delivery_mode"):
        if column in changes and changes[column] is None:
            raise HTTPException(status_code=400, detail=f"{column} cannot be null")

    if changes.get("filters") is not None:
        changes["filters"] = request.filters.to_filters()

    check_delivery_target(
        changes.get("webhook_url", current.webhook_url),
        changes.get("pull_enabled", current.pull_enabled),
        changes.get("delivery_mode", current.delivery_mode),
        changes.get("digest_schedule_time", current.digest_schedule_time),
    )

    db.update_subscription(subscription_id, changes)

    updated = db.get_subscription(subscription_id)
    if not updated:
        raise HTTPException(status_code=500, detail="Failed to retrieve updated subscription")
    return SubscriptionResponse.from_db(updated)


# ─────────────────────────────────────────────────────────────
# Pull
# ─────────────────────────────────────────────────────────────

@router.get("/{subscription_id}/pull")
async def pull(
    subscription_id: int,
    db: Annotated[Database, Depends(get_db)],
    after: str | None = Query(default=None),
) -> PullResponse:
    """Page through sent deliveries created after the cursor."""
    try:
        page = pull_deliveries(db, subscription_id, after)
    except SubscriptionNotPullable as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidCursor as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PullResponse(items=page.items, next_cursor=page.next_cursor)
