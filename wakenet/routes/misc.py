"""
Miscellaneous routes: health check.
"""

import logging
import sqlite3

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import state
from ..database.converters import format_timestamp, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["misc"])


@router.get("/health")
async def health_check():
    """Liveness plus a trivial database query."""
    db_status = "not_configured"
    if state.db is not None:
        try:
            state.db.ping()
            db_status = "ok"
        except sqlite3.Error as e:
            logger.warning(f"Health check database error: {e}")
            db_status = "error"

    ok = db_status == "ok"
    return JSONResponse(
        status_code=200 if ok else 503,
        content={
            "ok": ok,
            "db": db_status,
            "version": __version__,
            "scheduler": bool(state.scheduler and state.scheduler.running),
            "timestamp": format_timestamp(utc_now()),
        },
    )
