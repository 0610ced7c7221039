"""Tests for the webhook route, the read-only chat endpoints and the health check."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from app.config import settings
from app.database import get_db
from app.main import app
from factories import add_session


@pytest.fixture
def client(store):
    bot = MagicMock()
    bot.store = store
    bot.submissions.media_groups.pending_groups = 0
    bot.submissions.guard.in_flight = 0
    app.state.bot = bot
    # No context manager: startup (migrations, poller) stays off
    yield TestClient(app)
    del app.state.bot


class TestWebhook:
    def test_update_is_scheduled(self, client):
        update = {"update_id": 1, "message": {"chat": {"id": 1}, "from": {"id": 2}, "text": "/help"}}
        with patch("app.routers.telegram.schedule_update", return_value=True) as scheduled:
            response = client.post("/api/v1/telegram/webhook", json=update)

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "update_id": 1}
        scheduled.assert_called_once_with(update, app.state.bot)

    def test_invalid_json_is_acknowledged(self, client):
        response = client.post("/api/v1/telegram/webhook", content=b"not json",
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    def test_wrong_secret_is_rejected(self, client, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "s3cret")
        response = client.post("/api/v1/telegram/webhook", json={"update_id": 1},
                               headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"})
        assert response.status_code == 401

    def test_scheduling_error_still_returns_200(self, client):
        with patch("app.routers.telegram.schedule_update", side_effect=RuntimeError("boom")):
            response = client.post("/api/v1/telegram/webhook", json={"update_id": 3})
        assert response.status_code == 200
        assert response.json()["status"] == "error"


class TestChatEndpoints:
    def test_current_month(self, client, store):
        add_session(store)
        response = client.get("/api/v1/chats/1001/current")

        assert response.status_code == 200
        body = response.json()
        assert (body["month"], body["year"]) == (8, 2025)
        assert body["total_minutes"] == 145
        assert body["day_minutes"] == 85
        assert [s["car_plate"] for s in body["sessions"]] == ["ABC123"]

    def test_history(self, client, store):
        add_session(store)
        response = client.get("/api/v1/chats/1001/history")

        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["total_duration_minutes"] == 145

    def test_empty_chat(self, client):
        body = client.get("/api/v1/chats/999/current").json()
        assert body["total_minutes"] == 0
        assert body["sessions"] == []


class TestHealth:
    @pytest.fixture(autouse=True)
    def override_db(self, session_factory):
        def override():
            db = session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override
        yield
        app.dependency_overrides.pop(get_db, None)

    def test_reports_schema_and_telegram_identity(self, client, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "123:ABC")
        monkeypatch.setattr(settings, "TELEGRAM_MODE", "webhook")
        get_me = MagicMock(status_code=200)
        get_me.json.return_value = {"ok": True, "result": {"username": "parking_bot"}}

        with patch("app.routers.health.requests.get", return_value=get_me):
            body = client.get("/api/v1/health").json()

        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert body["schema_version"] == 1
        assert body["telegram"] == {"state": "ok", "bot": "parking_bot"}
        assert body["poller"] == "disabled (webhook mode)"
        assert body["users_in_flight"] == 0

    def test_missing_token_and_poller_is_degraded(self, client, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "")
        monkeypatch.setattr(settings, "TELEGRAM_MODE", "polling")

        body = client.get("/api/v1/health").json()

        assert body["status"] == "degraded"
        assert body["telegram"] == {"state": "not configured"}
        assert body["poller"] == "not started"
