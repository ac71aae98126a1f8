"""
Pipeline routes: manual feed polls and job triggers for external schedulers.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..auth import verify_api_key
from ..config import get_db, get_dispatcher
from ..database import Database
from ..delivery import WebhookDispatcher
from ..exceptions import AdapterError, ConfigError, FeedNotPollable
from ..pipeline import run_feed_poll
from ..schemas import PollResponse
from ..tasks import drain_queue, poll_due_feeds, send_digests

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pipeline"], dependencies=[Depends(verify_api_key)])


# ─────────────────────────────────────────────────────────────
# Manual Poll
# ─────────────────────────────────────────────────────────────

@router.post("/poll/{feed_id}", response_model=PollResponse)
async def poll_feed(
    feed_id: int,
    db: Annotated[Database, Depends(get_db)],
    dispatcher: Annotated[WebhookDispatcher, Depends(get_dispatcher)],
):
    """Poll one feed now and deliver whatever is new."""
    try:
        result = await run_feed_poll(db, dispatcher, feed_id)
    except (FeedNotPollable, ConfigError) as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except AdapterError as e:
        logger.warning(f"Manual poll of feed {feed_id} failed: {e}")
        return JSONResponse(status_code=502, content={"error": str(e)})
    return result.to_dict()


# ─────────────────────────────────────────────────────────────
# Jobs
# ─────────────────────────────────────────────────────────────

@router.post("/jobs/poll-due")
async def poll_due(
    db: Annotated[Database, Depends(get_db)],
    dispatcher: Annotated[WebhookDispatcher, Depends(get_dispatcher)],
) -> dict:
    """Poll every feed whose interval has elapsed."""
    return await poll_due_feeds(db, dispatcher)


@router.post("/jobs/drain-queue")
async def drain(
    db: Annotated[Database, Depends(get_db)],
    dispatcher: Annotated[WebhookDispatcher, Depends(get_dispatcher)],
) -> dict:
    """Send at most one queued delivery per rate-limited subscription."""
    return await drain_queue(db, dispatcher)


@router.post("/jobs/send-digests")
async def digests(
    db: Annotated[Database, Depends(get_db)],
    dispatcher: Annotated[WebhookDispatcher, Depends(get_dispatcher)],
    slot: str | None = None,
) -> dict:
    """Send digests scheduled for the current UTC minute, or for ?slot=HH:MM."""
    return await send_digests(db, dispatcher, hhmm=slot)
