"""
WakeNet API Server

FastAPI application providing endpoints for:
- Feed and subscription management
- Manual polls and job triggers
- Push ingest for webhook inbox feeds
- Pull delivery for subscribers without a public endpoint
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .config import config, state
from .database import Database
from .delivery import WebhookDispatcher
from .rate_limit import setup_rate_limiting
from .routes import (
    events_router,
    feeds_router,
    ingest_router,
    misc_router,
    pipeline_router,
    subscriptions_router,
)
from .scheduler import PipelineScheduler

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    # Startup - skip if already initialized (e.g., by tests)
    if state.db is None:
        config.DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        state.db = Database(config.DB_PATH)
        logger.info(f"Event store at {config.DB_PATH}")
    if state.dispatcher is None:
        state.dispatcher = WebhookDispatcher()

    if config.ENABLE_SCHEDULER and state.scheduler is None:
        state.scheduler = PipelineScheduler(state.db, state.dispatcher)
        await state.scheduler.start()

    if not config.auth_enabled():
        logger.warning("AUTH_API_KEY not set; mutating endpoints are open")

    yield

    # Shutdown
    if state.scheduler:
        await state.scheduler.stop()
        state.scheduler = None


app = FastAPI(
    title="WakeNet API",
    version=__version__,
    lifespan=lifespan
)

setup_rate_limiting(app)

# Include routers
app.include_router(misc_router)
app.include_router(feeds_router)
app.include_router(subscriptions_router)
app.include_router(events_router)
app.include_router(pipeline_router)
app.include_router(ingest_router)


def main():
    import uvicorn

    uvicorn.run("wakenet.server:app", host="0.0.0.0", port=config.PORT)


if __name__ == "__main__":
    main()
