"""
Tests for subscription routes and the pull endpoint.
"""

import pytest

from wakenet.adapters import CandidateEvent
from wakenet.database import DeliveryStatus

HOOK = "https://hooks.example.com/in"


@pytest.fixture
def hook_subscription(client, rss_feed):
    response = client.post("/subscriptions", json={
        "feedId": rss_feed, "name": "hook", "webhookUrl": HOOK,
    })
    assert response.status_code == 200
    return response.json()


class TestCreateSubscription:
    """Tests for POST /subscriptions endpoint."""

    def test_secret_returned_once(self, client, hook_subscription):
        assert len(hook_subscription["secret"]) == 64
        assert hook_subscription["deliveryMode"] == "immediate"
        assert hook_subscription["outputFormat"] == "default"

        fetched = client.get(f"/subscriptions/{hook_subscription['id']}").json()
        assert "secret" not in fetched
        assert all("secret" not in s for s in client.get("/subscriptions").json())

    def test_secrets_differ(self, client, rss_feed, hook_subscription):
        other = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "pull", "pullEnabled": True,
        }).json()
        assert other["secret"] != hook_subscription["secret"]

    def test_needs_webhook_or_pull(self, client, rss_feed):
        response = client.post("/subscriptions", json={"feedId": rss_feed, "name": "nothing"})
        assert response.status_code == 400
        assert "webhookUrl" in response.json()["detail"]

    def test_unknown_feed(self, client):
        response = client.post("/subscriptions", json={
            "feedId": 999, "name": "x", "pullEnabled": True,
        })
        assert response.status_code == 404

    def test_private_webhook_rejected(self, client, rss_feed):
        response = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "x", "webhookUrl": "http://127.0.0.1/hook",
        })
        assert response.status_code == 422

    def test_filters_round_trip(self, client, rss_feed):
        created = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "f", "pullEnabled": True,
            "filters": {"includeKeywords": ["release"], "minScore": 10},
        }).json()
        assert created["filters"] == {
            "includeKeywords": ["release"], "excludeKeywords": [], "minScore": 10,
        }


class TestDigestValidation:
    def test_digest_requires_webhook(self, client, rss_feed):
        response = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "d", "pullEnabled": True,
            "deliveryMode": "daily_digest", "digestScheduleTime": "09:00",
        })
        assert response.status_code == 400

    def test_digest_requires_schedule_time(self, client, rss_feed):
        response = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "d", "webhookUrl": HOOK, "deliveryMode": "daily_digest",
        })
        assert response.status_code == 400

    def test_schedule_time_normalized(self, client, rss_feed):
        response = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "d", "webhookUrl": HOOK,
            "deliveryMode": "daily_digest", "digestScheduleTime": "9:05",
        })
        assert response.status_code == 200
        assert response.json()["digestScheduleTime"] == "09:05"

    @pytest.mark.parametrize("value", ["9:5", "24:00", "12:60", "noon"])
    def test_bad_schedule_time(self, client, rss_feed, value):
        response = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "d", "webhookUrl": HOOK,
            "deliveryMode": "daily_digest", "digestScheduleTime": value,
        })
        assert response.status_code == 422


class TestUpdateSubscription:
    """Tests for PATCH /subscriptions/{id} endpoint."""

    def test_partial_update_keeps_other_fields(self, client, hook_subscription):
        sub_id = hook_subscription["id"]
        response = client.patch(f"/subscriptions/{sub_id}", json={
            "name": "renamed", "deliveryRateLimitMinutes": 30,
        })
        assert response.status_code == 200
        updated = response.json()
        assert updated["name"] == "renamed"
        assert updated["deliveryRateLimitMinutes"] == 30
        assert updated["webhookUrl"] == HOOK

    def test_clearing_only_target_rejected(self, client, hook_subscription):
        response = client.patch(f"/subscriptions/{hook_subscription['id']}", json={"webhookUrl": None})
        assert response.status_code == 400

    def test_switch_to_pull(self, client, hook_subscription):
        response = client.patch(f"/subscriptions/{hook_subscription['id']}", json={
            "webhookUrl": None, "pullEnabled": True,
        })
        assert response.status_code == 200
        assert response.json()["webhookUrl"] is None
        assert response.json()["pullEnabled"] is True

    def test_secret_not_patchable(self, client, hook_subscription):
        response = client.patch(f"/subscriptions/{hook_subscription['id']}", json={"secret": "x"})
        assert response.status_code == 422

    def test_null_name_rejected(self, client, hook_subscription):
        response = client.patch(f"/subscriptions/{hook_subscription['id']}", json={"name": None})
        assert response.status_code == 400

    def test_switch_to_digest_needs_time(self, client, hook_subscription):
        sub_id = hook_subscription["id"]
        response = client.patch(f"/subscriptions/{sub_id}", json={"deliveryMode": "daily_digest"})
        assert response.status_code == 400

        response = client.patch(f"/subscriptions/{sub_id}", json={
            "deliveryMode": "daily_digest", "digestScheduleTime": "18:30",
        })
        assert response.status_code == 200
        assert response.json()["digestScheduleTime"] == "18:30"

    def test_missing_subscription(self, client):
        assert client.patch("/subscriptions/999", json={"name": "x"}).status_code == 404


class TestPullEndpoint:
    def test_pull_pages(self, client, test_db, rss_feed):
        created = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "pull", "pullEnabled": True,
        }).json()
        event = test_db.insert_event_if_new(
            rss_feed, CandidateEvent(id="1", source="s", title="Hello")
        ).created
        test_db.record_delivery(created["id"], event.id, DeliveryStatus.SENT)

        page = client.get(f"/subscriptions/{created['id']}/pull").json()

        assert [item["event"]["title"] for item in page["items"]] == ["Hello"]
        assert page["nextCursor"] == page["items"][0]["createdAt"]

        rest = client.get(
            f"/subscriptions/{created['id']}/pull", params={"after": page["nextCursor"]}
        ).json()
        assert rest == {"items": [], "nextCursor": None}

    def test_not_pullable_is_404(self, client, hook_subscription):
        assert client.get(f"/subscriptions/{hook_subscription['id']}/pull").status_code == 404

    def test_bad_cursor_is_400(self, client, rss_feed):
        created = client.post("/subscriptions", json={
            "feedId": rss_feed, "name": "pull", "pullEnabled": True,
        }).json()
        response = client.get(f"/subscriptions/{created['id']}/pull?after=garbage")
        assert response.status_code == 400
