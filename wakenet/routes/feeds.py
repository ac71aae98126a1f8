"""
Feed routes: registration, listing, enable/disable.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ..adapters import dump_config, validate_config
from ..auth import verify_api_key
from ..config import get_db
from ..database import Database, FeedType
from ..exceptions import ConfigError, require_feed
from ..schemas import CreateFeedRequest, FeedResponse, UpdateFeedRequest

router = APIRouter(prefix="/feeds", tags=["feeds"])


# ─────────────────────────────────────────────────────────────
# Feed Management
# ─────────────────────────────────────────────────────────────

@router.get("")
async def list_feeds(
    db: Annotated[Database, Depends(get_db)]
) -> list[FeedResponse]:
    """List all registered feeds."""
    return [FeedResponse.from_db(f) for f in db.get_feeds()]


@router.post("", dependencies=[Depends(verify_api_key)])
async def add_feed(
    request: CreateFeedRequest,
    db: Annotated[Database, Depends(get_db)]
) -> FeedResponse:
    """Register a new feed."""
    try:
        parsed = validate_config(request.type, request.config)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    inbox_token = inbox_secret = None
    if request.type == FeedType.WEBHOOK_INBOX:
        inbox_token, inbox_secret = parsed.token, parsed.secret
        if db.inbox_token_in_use(parsed.path_tokens):
            raise HTTPException(status_code=409, detail="Inbox token already in use")

    feed_id = db.add_feed(
        request.type,
        dump_config(parsed),
        request.poll_interval_minutes,
        inbox_token=inbox_token,
        inbox_secret=inbox_secret,
    )

    db_feed = db.get_feed(feed_id)
    if not db_feed:
        raise HTTPException(status_code=500, detail="Failed to retrieve feed")
    return FeedResponse.from_db(db_feed)


@router.get("/{feed_id}")
async def get_feed(
    feed_id: int,
    db: Annotated[Database, Depends(get_db)]
) -> FeedResponse:
    """Get a single feed."""
    return FeedResponse.from_db(require_feed(db.get_feed(feed_id)))


@router.patch("/{feed_id}", dependencies=[Depends(verify_api_key)])
async def update_feed(
    feed_id: int,
    request: UpdateFeedRequest,
    db: Annotated[Database, Depends(get_db)]
) -> FeedResponse:
    """Enable/disable a feed or change its poll interval."""
    require_feed(db.get_feed(feed_id))

    db.update_feed(
        feed_id,
        enabled=request.enabled,
        poll_interval_minutes=request.poll_interval_minutes,
    )

    updated_feed = db.get_feed(feed_id)
    if not updated_feed:
        raise HTTPException(status_code=500, detail="Failed to retrieve updated feed")
    return FeedResponse.from_db(updated_feed)
