from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import NOW
from models.engine.lifecycle import LifecycleTransition
from models.entities.couchbase.notifications import Notification, NotificationData
from routes.base import router

SUMMARY = {"draft": 0, "upcoming": 1, "active": 2, "ended": 0, "sold": 3}


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


def test_lifecycle_run_without_configured_key(client, monkeypatch):
    monkeypatch.delenv("INTERNAL_API_KEY", raising=False)
    transition = LifecycleTransition(
        auction_id="auction-1", from_status="active", to_status="ended",
        timestamp=NOW + timedelta(hours=1), settle=True, winner_id="bidder-1",
        final_price_per_m3=61.0,
    )
    with patch("routes.internal.auction_process_lifecycles", new=AsyncMock(return_value=[transition])), \
         patch("routes.internal.auction_status_summary", new=AsyncMock(return_value=SUMMARY)):
        response = client.post("/api/internal/lifecycle/run")

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == SUMMARY
    assert body["transitions"][0]["to_status"] == "ended"
    assert body["transitions"][0]["winner_id"] == "bidder-1"


def test_internal_key_enforced(client, monkeypatch):
    monkeypatch.setenv("INTERNAL_API_KEY", "s3cret")
    with patch("routes.internal.auction_status_summary", new=AsyncMock(return_value=SUMMARY)):
        assert client.get("/api/internal/lifecycle/summary").status_code == 401
        ok = client.get("/api/internal/lifecycle/summary", headers={"X-Internal-API-Key": "s3cret"})

    assert ok.status_code == 200
    assert ok.json() == SUMMARY


def test_mark_notification_read_errors(client):
    with patch("routes.notifications.notification_mark_read",
               new=AsyncMock(return_value=(None, "Notification not found"))):
        assert client.post("/api/notifications/n-1/read", headers={"X-User-Id": "u"}).status_code == 404
    with patch("routes.notifications.notification_mark_read",
               new=AsyncMock(return_value=(None, "Not your notification"))):
        assert client.post("/api/notifications/n-1/read", headers={"X-User-Id": "u"}).status_code == 403


def test_my_notifications(client):
    notification = Notification(id="n-1", data=NotificationData(
        user_id="u", type="won", title="Congratulations! You won the auction!",
        message="...", auction_id="auction-1", timestamp=NOW,
    ))
    get = AsyncMock(return_value=[notification])
    with patch("routes.notifications.notification_get_for_user", new=get):
        response = client.get("/api/notifications/me?unread_only=true", headers={"X-User-Id": "u"})

    assert response.status_code == 200
    assert response.json()[0]["type"] == "won"
    assert get.await_args.kwargs["unread_only"] is True
