"""
Push ingest for webhook_inbox feeds.

Authentication is the path token only: producers such as form services or
other apps POST here without the API key.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..config import get_db, get_dispatcher
from ..database import Database
from ..delivery import WebhookDispatcher
from ..exceptions import IngestRejected
from ..ingest import check_content_length, parse_ingest_body
from ..pipeline import process_candidate_events
from ..rate_limit import get_rate_limit, limiter
from ..schemas import IngestResponse

router = APIRouter(prefix="/ingest", tags=["ingest"])


@router.post("/webhook/{token}", response_model=IngestResponse)
@limiter.limit(get_rate_limit)
async def ingest_webhook(
    token: str,
    request: Request,
    db: Annotated[Database, Depends(get_db)],
    dispatcher: Annotated[WebhookDispatcher, Depends(get_dispatcher)],
):
    """Accept one event or an array of up to 100 events for an inbox feed."""
    try:
        check_content_length(request.headers.get("content-length"))

        feed = db.find_inbox_feed(token)
        if feed is None:
            return JSONResponse(status_code=404, content={"error": "Unknown or disabled ingest token"})

        candidates = parse_ingest_body(await request.body())
    except IngestRejected as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    outcome = await process_candidate_events(db, dispatcher, feed, candidates)
    return IngestResponse(
        accepted=len(candidates),
        events_new=outcome.events_new,
        deliveries_created=outcome.deliveries_created,
    )
