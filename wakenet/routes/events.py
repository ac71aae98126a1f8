"""
Event routes: read-only view of stored events.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..config import get_db
from ..database import Database
from ..schemas import EventResponse

router = APIRouter(prefix="/events", tags=["events"])


@router.get("")
async def list_events(
    db: Annotated[Database, Depends(get_db)],
    feed_id: int | None = Query(default=None, alias="feedId"),
    limit: int = Query(default=50, ge=1),
) -> list[EventResponse]:
    """Newest events first, optionally for one feed."""
    events = db.get_events(feed_id, min(limit, 100))
    return [EventResponse.from_db(e) for e in events]
