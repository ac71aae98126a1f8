"""
Tests for the queue drainer, digest builder and webhook dispatcher.
"""

import asyncio
from datetime import timedelta
from unittest.mock import patch

import aiohttp
import pytest

from wakenet.adapters import CandidateEvent
from wakenet.database import DeliveryMode, DeliveryStatus, OutputFormat
from wakenet.database.converters import utc_now
from wakenet.delivery import WebhookDispatcher, drain_queued_deliveries, send_daily_digests
from wakenet.signing import SIGNATURE_HEADER, verify_signed_body

SECRET = "e" * 64
HOOK = "https://hooks.example.com/in"


def add_event(db, feed_id, n: int, body: str | None = None):
    candidate = CandidateEvent(id=f"ev-{n}", source="Example", title=f"Event {n}", body=body)
    return db.insert_event_if_new(feed_id, candidate).created


# ─────────────────────────────────────────────────────────────
# Queue drainer
# ─────────────────────────────────────────────────────────────

class TestDrainQueue:
    def _queued_subscription(self, db, feed_id, rate_limit=10, events=2):
        sub_id = db.add_subscription(
            feed_id, "hook", SECRET, webhook_url=HOOK, delivery_rate_limit_minutes=rate_limit
        )
        for n in range(events):
            event = add_event(db, feed_id, n)
            db.record_delivery(sub_id, event.id, DeliveryStatus.QUEUED)
        return sub_id

    @pytest.mark.asyncio
    async def test_one_per_subscription_per_run(self, test_db, rss_feed, dispatcher):
        sub_id = self._queued_subscription(test_db, rss_feed)

        result = await drain_queued_deliveries(test_db, dispatcher)

        assert result.to_dict() == {"sent": 1, "failed": 0}
        statuses = [d.status for d in test_db.get_subscription_deliveries(sub_id)]
        assert statuses == [DeliveryStatus.SENT, DeliveryStatus.QUEUED]
        assert test_db.get_subscription(sub_id).last_delivery_at is not None

    @pytest.mark.asyncio
    async def test_window_not_elapsed_sends_nothing(self, test_db, rss_feed, dispatcher):
        sub_id = self._queued_subscription(test_db, rss_feed)
        test_db.set_last_delivery(sub_id, utc_now() - timedelta(minutes=1))

        result = await drain_queued_deliveries(test_db, dispatcher)

        assert result.sent == 0
        assert dispatcher.calls == []

    @pytest.mark.asyncio
    async def test_successive_runs_respect_window(self, test_db, rss_feed, dispatcher):
        sub_id = self._queued_subscription(test_db, rss_feed)
        now = utc_now()

        await drain_queued_deliveries(test_db, dispatcher, now)
        await drain_queued_deliveries(test_db, dispatcher, now + timedelta(minutes=5))
        assert len(dispatcher.calls) == 1

        await drain_queued_deliveries(test_db, dispatcher, now + timedelta(minutes=11))
        assert len(dispatcher.calls) == 2
        assert all(
            d.status == DeliveryStatus.SENT for d in test_db.get_subscription_deliveries(sub_id)
        )

    @pytest.mark.asyncio
    async def test_failed_attempt_still_advances_subscription(self, test_db, rss_feed, dispatcher):
        dispatcher.status = 503
        sub_id = self._queued_subscription(test_db, rss_feed)

        result = await drain_queued_deliveries(test_db, dispatcher)

        assert result.to_dict() == {"sent": 0, "failed": 1}
        assert len(dispatcher.calls) == 1
        statuses = [d.status for d in test_db.get_subscription_deliveries(sub_id)]
        assert statuses == [DeliveryStatus.FAILED, DeliveryStatus.QUEUED]

    @pytest.mark.asyncio
    async def test_disabled_subscription_skipped(self, test_db, rss_feed, dispatcher):
        sub_id = self._queued_subscription(test_db, rss_feed)
        test_db.update_subscription(sub_id, {"enabled": False})

        await drain_queued_deliveries(test_db, dispatcher)

        assert dispatcher.calls == []


# ─────────────────────────────────────────────────────────────
# Digest builder
# ─────────────────────────────────────────────────────────────

class TestDailyDigests:
    def _digest_subscription(self, db, feed_id, output_format=OutputFormat.DEFAULT):
        return db.add_subscription(
            feed_id, "digest", SECRET, webhook_url=HOOK, output_format=output_format,
            delivery_mode=DeliveryMode.DAILY_DIGEST, digest_schedule_time="09:00",
        )

    @pytest.mark.asyncio
    async def test_sends_batch_and_clears_queue(self, test_db, rss_feed, dispatcher):
        sub_id = self._digest_subscription(test_db, rss_feed)
        events = [add_event(test_db, rss_feed, n) for n in range(3)]
        for event in events:
            test_db.add_digest_entry(sub_id, event.id)

        result = await send_daily_digests(test_db, dispatcher, "09:00")

        assert result.sent == 1
        payload = dispatcher.calls[0]["payload"]
        assert payload["type"] == "digest"
        assert payload["count"] == 3
        assert [item["id"] for item in payload["items"]] == [e.id for e in events]
        assert payload["items"][0]["event"]["title"] == "Event 0"
        assert test_db.get_digest_entries(sub_id) == []

    @pytest.mark.asyncio
    async def test_failure_keeps_queue(self, test_db, rss_feed, dispatcher):
        dispatcher.status = 500
        sub_id = self._digest_subscription(test_db, rss_feed)
        for n in range(2):
            test_db.add_digest_entry(sub_id, add_event(test_db, rss_feed, n).id)

        result = await send_daily_digests(test_db, dispatcher, "09:00")

        assert result.failed == 1
        assert len(test_db.get_digest_entries(sub_id)) == 2

    @pytest.mark.asyncio
    async def test_other_slot_and_empty_queue_send_nothing(self, test_db, rss_feed, dispatcher):
        sub_id = self._digest_subscription(test_db, rss_feed)

        await send_daily_digests(test_db, dispatcher, "09:00")
        test_db.add_digest_entry(sub_id, add_event(test_db, rss_feed, 1).id)
        await send_daily_digests(test_db, dispatcher, "10:00")

        assert dispatcher.calls == []

    @pytest.mark.asyncio
    async def test_promoter_items(self, test_db, rss_feed, dispatcher):
        sub_id = self._digest_subscription(test_db, rss_feed, OutputFormat.PROMOTER)
        test_db.add_digest_entry(sub_id, add_event(test_db, rss_feed, 1, body="Short body").id)

        await send_daily_digests(test_db, dispatcher, "09:00")

        [item] = dispatcher.calls[0]["payload"]["items"]
        assert item["type"] == "feed_event"
        assert item["summary"] == "Short body"


# ─────────────────────────────────────────────────────────────
# Webhook dispatcher
# ─────────────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status):
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession and records the POST."""

    status = 200
    error: Exception | None = None
    requests: list[dict] = []

    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

    def post(self, url, data=None, headers=None):
        FakeSession.requests.append({"url": url, "data": data, "headers": headers})
        if FakeSession.error is not None:
            raise FakeSession.error
        return FakeResponse(FakeSession.status)


@pytest.fixture
def fake_session():
    FakeSession.status = 200
    FakeSession.error = None
    FakeSession.requests = []
    with patch("wakenet.delivery.webhook.aiohttp.ClientSession", FakeSession):
        yield FakeSession


class TestWebhookDispatcher:
    @pytest.mark.asyncio
    async def test_signed_canonical_body(self, fake_session):
        result = await WebhookDispatcher().deliver(HOOK, {"b": 1, "a": 2}, SECRET)

        assert result.ok
        assert result.http_status == 200
        [request] = fake_session.requests
        assert request["data"] == b'{"a":2,"b":1}'
        assert request["headers"]["Content-Type"] == "application/json"
        signature = request["headers"][SIGNATURE_HEADER]
        assert verify_signed_body(request["data"], signature, SECRET) == {"a": 2, "b": 1}

    @pytest.mark.asyncio
    async def test_non_2xx_is_failure(self, fake_session):
        fake_session.status = 404
        result = await WebhookDispatcher().deliver(HOOK, {}, SECRET)
        assert not result.ok
        assert result.http_status == 404

    @pytest.mark.asyncio
    async def test_timeout_is_status_zero(self, fake_session):
        fake_session.error = asyncio.TimeoutError()
        result = await WebhookDispatcher().deliver(HOOK, {}, SECRET)
        assert (result.ok, result.http_status) == (False, 0)

    @pytest.mark.asyncio
    async def test_connection_error_is_status_zero(self, fake_session):
        fake_session.error = aiohttp.ClientConnectionError("refused")
        result = await WebhookDispatcher().deliver(HOOK, {}, SECRET)
        assert (result.ok, result.http_status) == (False, 0)
