"""
Pytest fixtures for wakenet tests.
"""

import os
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from wakenet.config import state
from wakenet.database import Database
from wakenet.delivery import DeliveryResult
from wakenet.rate_limit import limiter
from wakenet.server import app


class FakeDispatcher:
    """Records webhook deliveries instead of sending them."""

    def __init__(self, status: int = 200):
        self.status = status
        self.calls: list[dict] = []
        self.error: Exception | None = None

    async def deliver(self, url, payload, secret) -> DeliveryResult:
        self.calls.append({"url": url, "payload": payload, "secret": secret})
        if self.error is not None:
            raise self.error
        return DeliveryResult(ok=200 <= self.status < 300, http_status=self.status)


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield Path(f.name)
    # Cleanup
    if os.path.exists(f.name):
        os.unlink(f.name)


@pytest.fixture
def test_db(temp_db_path):
    """Create a test database instance."""
    db = Database(temp_db_path)
    yield db


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def client(test_db, dispatcher):
    """Create a test client with an isolated database and a recording dispatcher."""
    # Store original state
    original_db = state.db
    original_dispatcher = state.dispatcher
    original_scheduler = state.scheduler

    state.db = test_db
    state.dispatcher = dispatcher
    state.scheduler = None
    limiter.reset()

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    # Restore original state
    state.db = original_db
    state.dispatcher = original_dispatcher
    state.scheduler = original_scheduler


@pytest.fixture
def rss_feed(test_db):
    """An RSS feed with default settings."""
    from wakenet.database import FeedType

    return test_db.add_feed(FeedType.RSS, {"url": "https://example.com/feed.xml"})


@pytest.fixture
def inbox_feed(test_db):
    """A webhook inbox feed addressed by the token 'inbox-token'."""
    from wakenet.database import FeedType

    return test_db.add_feed(
        FeedType.WEBHOOK_INBOX, {"token": "inbox-token"}, inbox_token="inbox-token"
    )
