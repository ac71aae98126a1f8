"""
API route modules.
"""

from .feeds import router as feeds_router
from .subscriptions import router as subscriptions_router
from .events import router as events_router
from .pipeline import router as pipeline_router
from .ingest import router as ingest_router
from .misc import router as misc_router

__all__ = [
    "feeds_router",
    "subscriptions_router",
    "events_router",
    "pipeline_router",
    "ingest_router",
    "misc_router",
]
