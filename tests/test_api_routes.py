"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Exercises the event, mosque and admin routers through the TestClient
against the in-memory engine:

- Auth guards (401 without a token, 403 for non-admins on admin routes)
- Service errors mapped to 404 / 422
- Create → RSVP → rotate → RSVP still attached
"""

from __future__ import annotations

import pytest
from conftest import insert_event, make_token

from merzah.services import mosque_service


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _event_body(mosque_id: int, **overrides) -> dict:
    body = {
        "mosque_id": mosque_id,
        "title": "Weekly Halaqah",
        "description": "Tafsir circle after Maghrib",
        "category": "halaqah",
        "date": "2026-01-01T18:00:00Z",
        "recurrence_pattern": "weekly",
    }
    body.update(overrides)
    return body


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Auth guards
# ===========================================================================
class TestAuthGuards:
    @pytest.mark.parametrize(
        ("method", "endpoint"),
        [
            ("get", "/api/events/feed"),
            ("get", "/api/events/1"),
            ("post", "/api/events/1/rsvp"),
            ("get", "/api/mosques/favorites"),
            ("post", "/api/admin/rotation/run"),
            ("get", "/api/admin/audit"),
        ],
    )
    def test_missing_token_is_401(self, client, method, endpoint):
        resp = getattr(client, method)(endpoint)
        assert resp.status_code == 401

    def test_garbage_token_is_401(self, client):
        resp = client.get("/api/events/feed", headers=_auth("not-a-jwt"))
        assert resp.status_code == 401

    def test_non_numeric_subject_is_401(self, client):
        resp = client.get("/api/events/feed", headers=_auth(make_token(sub="alice")))
        assert resp.status_code == 401

    @pytest.mark.parametrize(
        ("method", "endpoint"),
        [
            ("post", "/api/admin/rotation/run"),
            ("get", "/api/admin/audit"),
            ("post", "/api/mosques"),
        ],
    )
    def test_non_admin_is_403(self, client, user_token, method, endpoint):
        kwargs = {"json": {"name": "Masjid"}} if endpoint == "/api/mosques" else {}
        resp = getattr(client, method)(endpoint, headers=_auth(user_token), **kwargs)
        assert resp.status_code == 403


# ===========================================================================
# Events
# ===========================================================================
class TestEventRoutes:
    def test_create_recurring_event(self, client, user_token, mosque_id):
        resp = client.post(
            "/api/events", json=_event_body(mosque_id), headers=_auth(user_token),
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["is_recurring"] is True
        assert data["recurrence_pattern"] == "weekly"
        assert data["date"] == "2026-01-01T18:00:00+00:00"
        assert data["recurrence_end_date"] == "2026-04-01T18:00:00+00:00"

    def test_create_with_bad_pattern_is_422(self, client, user_token, mosque_id):
        resp = client.post(
            "/api/events",
            json=_event_body(mosque_id, recurrence_pattern="hourly"),
            headers=_auth(user_token),
        )
        assert resp.status_code == 422
        assert "Unknown recurrence pattern" in resp.json()["detail"]

    def test_create_for_missing_mosque_is_404(self, client, user_token):
        resp = client.post("/api/events", json=_event_body(404), headers=_auth(user_token))
        assert resp.status_code == 404

    def test_get_missing_event_is_404(self, client, user_token):
        resp = client.get("/api/events/404", headers=_auth(user_token))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Event not found: 404"

    def test_patch_applies_to_series(self, client, user_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id)

        resp = client.patch(
            f"/api/events/{event_id}",
            json={"title": "Seerah Study", "recurrence_duration": "forever"},
            headers=_auth(user_token),
        )

        assert resp.status_code == 200
        assert resp.json()["title"] == "Seerah Study"
        assert resp.json()["recurrence_end_date"] is None

    def test_patch_null_pattern_stops_recurrence(self, client, user_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id)

        resp = client.patch(
            f"/api/events/{event_id}",
            json={"recurrence_pattern": None},
            headers=_auth(user_token),
        )

        assert resp.status_code == 200
        assert resp.json()["is_recurring"] is False

    @pytest.mark.parametrize("field", ["date", "timezone", "title", "category"])
    def test_patch_null_required_field_is_422(self, client, user_token, db_engine, mosque_id, field):
        event_id = insert_event(db_engine, mosque_id)

        resp = client.patch(
            f"/api/events/{event_id}", json={field: None}, headers=_auth(user_token),
        )

        assert resp.status_code == 422
        assert f"cannot be null: {field}" in resp.json()["detail"]
        event = client.get(f"/api/events/{event_id}", headers=_auth(user_token)).json()
        assert event["date"] == "2026-01-01T18:00:00+00:00"
        assert event["timezone"] == "UTC"

    def test_empty_patch_is_400(self, client, user_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id)
        resp = client.patch(f"/api/events/{event_id}", json={}, headers=_auth(user_token))
        assert resp.status_code == 400

    def test_stop_recurring(self, client, user_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id)

        resp = client.post(
            f"/api/events/{event_id}/stop-recurring", headers=_auth(user_token),
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["is_recurring"] is False
        assert data["date"] == "2026-01-01T18:00:00+00:00"

    def test_delete_series_reports_removed_rsvps(self, client, user_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id)
        client.post(f"/api/events/{event_id}/rsvp", headers=_auth(user_token))

        resp = client.delete(f"/api/events/{event_id}", headers=_auth(user_token))

        assert resp.status_code == 200
        assert resp.json() == {"deleted": event_id, "rsvps_removed": 1}
        assert client.get(
            f"/api/events/{event_id}", headers=_auth(user_token),
        ).status_code == 404


class TestRsvpRoutes:
    def test_rsvp_cycle(self, client, user_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id)
        headers = _auth(user_token)

        first = client.post(f"/api/events/{event_id}/rsvp", headers=headers)
        again = client.post(f"/api/events/{event_id}/rsvp", headers=headers)
        attendees = client.get(f"/api/events/{event_id}/attendees", headers=headers)

        assert first.json()["created"] is True
        assert again.json()["created"] is False
        assert attendees.json() == {"event_id": event_id, "count": 1, "user_ids": ["1001"]}

        cancel = client.delete(f"/api/events/{event_id}/rsvp", headers=headers)
        assert cancel.json() == {"event_id": event_id, "attending": False, "removed": True}

    def test_rsvp_survives_manual_rotation(self, client, user_token, admin_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id)
        client.post(f"/api/events/{event_id}/rsvp", headers=_auth(user_token))

        resp = client.post(
            "/api/admin/rotation/run",
            json={"now": "2026-01-08T00:00:00Z"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["rotated"] == [event_id]

        event = client.get(f"/api/events/{event_id}", headers=_auth(user_token)).json()
        assert event["date"] == "2026-01-08T18:00:00+00:00"
        attendees = client.get(
            f"/api/events/{event_id}/attendees", headers=_auth(user_token),
        ).json()
        assert attendees["user_ids"] == ["1001"]


# ===========================================================================
# Mosques and feed
# ===========================================================================
class TestMosqueRoutes:
    def test_admin_creates_mosque(self, client, admin_token):
        resp = client.post(
            "/api/mosques",
            json={"name": "Masjid Al-Huda", "city": "Toledo"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 201
        assert resp.json()["name"] == "Masjid Al-Huda"

    def test_blank_name_is_422(self, client, admin_token):
        resp = client.post("/api/mosques", json={"name": " "}, headers=_auth(admin_token))
        assert resp.status_code == 422

    def test_missing_mosque_is_404(self, client, user_token):
        resp = client.get("/api/mosques/404", headers=_auth(user_token))
        assert resp.status_code == 404

    def test_favorite_drives_feed(self, client, user_token, db_engine, mosque_id):
        other = mosque_service.create_mosque(db_engine, name="Masjid Bilal")
        mine = insert_event(db_engine, mosque_id)
        insert_event(db_engine, other.id, title="Elsewhere")
        headers = _auth(user_token)

        fav = client.post(f"/api/mosques/{mosque_id}/favorite", headers=headers)
        assert fav.json()["created"] is True

        favorites = client.get("/api/mosques/favorites", headers=headers).json()
        assert [m["id"] for m in favorites["mosques"]] == [mosque_id]

        feed = client.get("/api/events/feed", headers=headers).json()
        assert [item["event"]["id"] for item in feed["events"]] == [mine]

        removed = client.delete(f"/api/mosques/{mosque_id}/favorite", headers=headers)
        assert removed.json()["removed"] is True
        assert client.get("/api/events/feed", headers=headers).json() == {"events": []}

    def test_mosque_events_listing(self, client, user_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id)
        client.post(f"/api/events/{event_id}/rsvp", headers=_auth(user_token))

        resp = client.get(f"/api/mosques/{mosque_id}/events", headers=_auth(user_token))

        assert resp.status_code == 200
        [item] = resp.json()["events"]
        assert item["rsvp_count"] == 1
        assert item["rsvp"] is True


# ===========================================================================
# Admin
# ===========================================================================
class TestAdminRoutes:
    def test_rotation_without_body_uses_current_time(self, client, admin_token, db_engine, mosque_id):
        event_id = insert_event(db_engine, mosque_id, recurrence_end_date=None)

        resp = client.post("/api/admin/rotation/run", headers=_auth(admin_token))

        assert resp.status_code == 200
        assert event_id in resp.json()["rotated"]

    def test_rotation_trigger_is_audited(self, client, admin_token, db_engine, mosque_id):
        insert_event(db_engine, mosque_id)
        client.post(
            "/api/admin/rotation/run",
            json={"now": "2026-01-08T00:00:00Z"},
            headers=_auth(admin_token),
        )

        resp = client.get("/api/admin/audit", headers=_auth(admin_token))

        assert resp.status_code == 200
        [entry] = resp.json()["entries"]
        assert entry["action_type"] == "ROTATE_TRIGGER"
        assert entry["actor_id"] == "99999"
        assert entry["after"]["rotated"] == [1]

    def test_audit_limit_is_bounded(self, client, admin_token):
        resp = client.get("/api/admin/audit?limit=1000", headers=_auth(admin_token))
        assert resp.status_code == 422
