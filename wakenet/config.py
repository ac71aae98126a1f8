"""
Configuration and application state management.
"""

import os
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from fastapi import HTTPException

if TYPE_CHECKING:
    from .database import Database
    from .delivery import WebhookDispatcher
    from .scheduler import PipelineScheduler

# Load environment variables
load_dotenv()


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


class Config:
    """Application configuration from environment."""
    DB_PATH: Path = Path(os.getenv("DB_PATH", "./data/wakenet.db"))
    PORT: int = int(os.getenv("PORT", "5005"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Mutation endpoints require this key when set (open mode otherwise)
    AUTH_API_KEY: str = os.getenv("AUTH_API_KEY", "")

    # Optional token for the GitHub adapters (raises the API rate limit)
    GITHUB_TOKEN: str = os.getenv("GITHUB_TOKEN", "")

    # Outbound request timeouts
    FETCH_TIMEOUT_SECONDS: int = int(os.getenv("FETCH_TIMEOUT_SECONDS", "30"))
    WEBHOOK_TIMEOUT_SECONDS: int = int(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "15"))

    # In-process scheduler; leave disabled when an external cron calls /jobs/*
    ENABLE_SCHEDULER: bool = _parse_bool(os.getenv("ENABLE_SCHEDULER"), default=False)
    POLL_INTERVAL_SECONDS: int = int(os.getenv("POLL_INTERVAL_SECONDS", "300"))
    DRAIN_INTERVAL_SECONDS: int = int(os.getenv("DRAIN_INTERVAL_SECONDS", "120"))

    # Requests per minute per IP on the public ingest endpoint (<= 0 disables)
    RATE_LIMIT_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))

    # Allow feed and webhook URLs that point at private/loopback hosts
    ALLOW_PRIVATE_URLS: bool = _parse_bool(os.getenv("ALLOW_PRIVATE_URLS"), default=False)

    def auth_enabled(self) -> bool:
        """Check if an API key is configured."""
        return bool(self.AUTH_API_KEY)


config = Config()


class AppState:
    """Shared application state."""
    db: "Database | None" = None
    dispatcher: "WebhookDispatcher | None" = None
    scheduler: "PipelineScheduler | None" = None


state = AppState()


def get_db() -> "Database":
    """Dependency to get database instance."""
    if not state.db:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return state.db


def get_dispatcher() -> "WebhookDispatcher":
    """Dependency to get the webhook dispatcher."""
    if not state.dispatcher:
        raise HTTPException(status_code=500, detail="Webhook dispatcher not initialized")
    return state.dispatcher
