from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import NOW, OWNER
from steadyday.api import deps
from steadyday.core.config import RateLimitPolicy
from steadyday.core.rate_limiter import RateLimiterRegistry
from steadyday.db import session as session_module
from steadyday.main import create_application

BASE = "/api/v1/reminders"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestAuth:
    def test_missing_user_is_unauthorized(self, client):
        response = client.get(BASE)
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required", "code": "UNAUTHORIZED"}

    def test_blank_user_is_unauthorized(self, client):
        response = client.get(BASE, headers={"X-User-Id": "  "})
        assert response.status_code == 401


class TestListing:
    def test_list_delivers_and_counts_unread(self, client, auth_headers, make_reminder):
        make_reminder(title="Stretch", priority="gentle")
        make_reminder(title="Submit report", priority="important")
        make_reminder(title="Later", scheduled_for=NOW + timedelta(hours=1))

        response = client.get(BASE, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert [r["title"] for r in body["reminders"]] == ["Submit report", "Stretch"]
        assert body["unread_count"] == 2
        assert all(r["delivered_at"] is not None for r in body["reminders"])

    def test_empty_list(self, client, auth_headers):
        response = client.get(BASE, headers=auth_headers)
        assert response.json() == {"reminders": [], "unread_count": 0}

    def test_storage_failure_is_internal_error(self, app, auth_headers):
        class BrokenScheduler:
            def list_visible(self, owner):
                raise OperationalError("SELECT 1", {}, Exception("database is gone"))

        app.dependency_overrides[deps.get_reminder_scheduler] = lambda: BrokenScheduler()
        response = TestClient(app).get(BASE, headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Something went wrong.", "code": "INTERNAL_ERROR"}


class TestActions:
    def test_mark_read(self, client, auth_headers, make_reminder):
        reminder = make_reminder()

        response = client.post(f"{BASE}/{reminder.id}/read", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.get(BASE, headers=auth_headers).json()["unread_count"] == 0

    def test_unknown_reminder_is_not_found(self, client, auth_headers):
        response = client.post(f"{BASE}/{uuid4()}/read", headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Reminder not found.", "code": "NOT_FOUND"}

    def test_other_users_reminder_is_not_found(self, client, make_reminder):
        reminder = make_reminder(owner="someone-else")

        response = client.post(f"{BASE}/{reminder.id}/dismiss", headers={"X-User-Id": OWNER})

        assert response.status_code == 404

    def test_malformed_id_is_validation_error(self, client, auth_headers):
        response = client.post(f"{BASE}/not-a-uuid/read", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_read_after_dismiss_conflicts(self, client, auth_headers, make_reminder):
        reminder = make_reminder()
        assert client.post(f"{BASE}/{reminder.id}/dismiss", headers=auth_headers).status_code == 200

        response = client.post(f"{BASE}/{reminder.id}/read", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_dismiss_twice(self, client, auth_headers, make_reminder):
        reminder = make_reminder()
        for _ in range(2):
            response = client.post(f"{BASE}/{reminder.id}/dismiss", headers=auth_headers)
            assert response.status_code == 200
        assert client.get(BASE, headers=auth_headers).json()["reminders"] == []

    def test_snooze(self, client, auth_headers, make_reminder):
        reminder = make_reminder()

        response = client.post(f"{BASE}/{reminder.id}/snooze", json={"duration": "10min"}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["snoozed_until"].startswith("2026-03-10T12:10:00")
        assert client.get(BASE, headers=auth_headers).json()["reminders"] == []

    def test_snooze_invalid_duration(self, client, auth_headers, make_reminder):
        reminder = make_reminder()

        response = client.post(f"{BASE}/{reminder.id}/snooze", json={"duration": "2hours"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid snooze duration.", "code": "VALIDATION_ERROR"}

    def test_snooze_missing_body(self, client, auth_headers, make_reminder):
        reminder = make_reminder()
        response = client.post(f"{BASE}/{reminder.id}/snooze", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_clear_all(self, client, auth_headers, make_reminder):
        make_reminder()
        make_reminder(scheduled_for=NOW + timedelta(days=1))

        response = client.delete(BASE, headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "All reminders cleared.", "dismissed": 2}
        assert client.get(BASE, headers=auth_headers).json()["reminders"] == []


class TestRateLimiting:
    @pytest.fixture
    def limited_client(self, app, limiter_clock):
        app.state.rate_limiters = RateLimiterRegistry(
            {"reminders": RateLimitPolicy(window_seconds=60, max_requests=3)},
            clock=limiter_clock,
        )
        return TestClient(app)

    def test_requests_over_quota_are_rejected(self, limited_client, auth_headers):
        for _ in range(3):
            assert limited_client.get(BASE, headers=auth_headers).status_code == 200

        response = limited_client.get(BASE, headers=auth_headers)

        assert response.status_code == 429
        assert response.json() == {"error": "Too many requests.", "code": "RATE_LIMITED"}

    def test_quota_is_per_user(self, limited_client, auth_headers):
        for _ in range(4):
            limited_client.get(BASE, headers=auth_headers)
        assert limited_client.get(BASE, headers={"X-User-Id": "user-2"}).status_code == 200

    def test_quota_is_shared_across_reminder_endpoints(self, limited_client, auth_headers):
        limited_client.get(BASE, headers=auth_headers)
        limited_client.get(f"{BASE}/preferences", headers=auth_headers)
        limited_client.delete(BASE, headers=auth_headers)
        assert limited_client.post(f"{BASE}/{uuid4()}/read", headers=auth_headers).status_code == 429

    def test_quota_resets_after_window(self, limited_client, auth_headers, limiter_clock):
        for _ in range(4):
            limited_client.get(BASE, headers=auth_headers)
        limiter_clock.advance(61)
        assert limited_client.get(BASE, headers=auth_headers).status_code == 200

    def test_rate_limit_checked_before_auth(self, limited_client):
        for _ in range(3):
            assert limited_client.get(BASE).status_code == 401
        assert limited_client.get(BASE).status_code == 429


class TestPreferences:
    def test_defaults_created_on_first_read(self, client, auth_headers):
        response = client.get(f"{BASE}/preferences", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == OWNER
        assert body["reminders_enabled"] is True
        assert body["quiet_hours_start"] == "22:00"
        assert body["quiet_hours_end"] == "08:00"
        assert body["max_reminders_per_day"] == 5
        assert body["reminder_lead_time_minutes"] == 30
        assert body["preferred_reminder_times"] == ["09:00", "13:00", "17:00"]
        assert body["weekend_reminders"] is False
        assert body["high_priority_override"] is True

    def test_partial_update(self, client, auth_headers):
        response = client.put(
            f"{BASE}/preferences",
            json={"max_reminders_per_day": 8, "preferred_reminder_times": ["07:30"], "weekend_reminders": True},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = client.get(f"{BASE}/preferences", headers=auth_headers).json()
        assert body["max_reminders_per_day"] == 8
        assert body["preferred_reminder_times"] == ["07:30"]
        assert body["weekend_reminders"] is True
        assert body["reminder_lead_time_minutes"] == 30

    @pytest.mark.parametrize("payload, message", [
        ({"reminder_lead_time_minutes": 45}, "Invalid lead time."),
        ({"preferred_reminder_times": ["08:00", "12:00", "16:00", "20:00"]}, "Maximum 3 preferred reminder times."),
        ({"quiet_hours_start": "25:00"}, "Times must use HH:MM format."),
    ])
    def test_invalid_update(self, client, auth_headers, payload, message):
        response = client.put(f"{BASE}/preferences", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": message, "code": "VALIDATION_ERROR"}

    def test_quiet_hours_can_be_cleared(self, client, auth_headers):
        response = client.put(
            f"{BASE}/preferences",
            json={"quiet_hours_start": None, "quiet_hours_end": None},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = client.get(f"{BASE}/preferences", headers=auth_headers).json()
        assert body["quiet_hours_start"] is None
        assert body["quiet_hours_end"] is None

    def test_null_for_required_field_keeps_stored_value(self, client, auth_headers):
        response = client.put(
            f"{BASE}/preferences",
            json={"max_reminders_per_day": None, "quiet_hours_end": "07:00"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["max_reminders_per_day"] == 5
        assert body["quiet_hours_start"] == "22:00"
        assert body["quiet_hours_end"] == "07:00"

    @pytest.mark.parametrize("value", [0, 16])
    def test_max_per_day_bounds(self, client, auth_headers, value):
        response = client.put(f"{BASE}/preferences", json={"max_reminders_per_day": value}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


def test_lifespan_starts_and_stops_sweeper():
    registry = RateLimiterRegistry({"reminders": RateLimitPolicy()}, sweep_interval_seconds=3600)
    app = create_application(rate_limiters=registry)

    with TestClient(app):
        assert registry.sweeping

    assert not registry.sweeping


def test_request_session_rolls_back_on_error(monkeypatch):
    events = []

    class RecordingSession:
        def rollback(self):
            events.append("rollback")

        def close(self):
            events.append("close")

    monkeypatch.setattr(session_module, "SessionLocal", RecordingSession)
    assert deps.get_db is session_module.get_db

    dependency = deps.get_db()
    next(dependency)
    with pytest.raises(RuntimeError):
        dependency.throw(RuntimeError("handler failed"))

    assert events == ["rollback", "close"]
