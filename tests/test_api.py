"""
API smoke tests

Routers are thin; these check wiring, status codes and error bodies.
The database dependency is pointed at the per-test SQLite file.
"""

import inspect

import pytest
from datetime import date
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from app.database import get_db
from app.main import app
from app.services.calendar_sync_service import CalendarSyncService, get_calendar_sync_service
from app.services.inventory_service import InventoryService
from app.utils.date_range import DateRange


FEED = (
    "BEGIN:VCALENDAR\r\nVERSION:2.0\r\n"
    "BEGIN:VEVENT\r\nUID:e1@airbnb.com\r\n"
    "DTSTART;VALUE=DATE:20250710\r\nDTEND;VALUE=DATE:20250712\r\n"
    "END:VEVENT\r\nEND:VCALENDAR\r\n"
)


class StaticFetcher:
    def fetch(self, url):
        return FEED


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_calendar_sync_service] = lambda: CalendarSyncService(
        session_factory=session_factory, fetcher=StaticFetcher()
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:

    def test_live(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_ready(self, client):
        assert client.get("/health/ready").status_code == 200

    def test_detailed_reports_feed_freshness(self, client, room, make_feed):
        make_feed(room, "airbnb")
        checks = client.get("/health/detailed").json()["checks"]

        assert checks["database"]["status"] == "up"
        assert checks["calendar_feeds"]["active_feeds"] == 1
        assert checks["calendar_feeds"]["never_synced"] == 1

    def test_request_id_is_echoed(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestAvailabilityApi:

    def test_calendar_window_is_inclusive(self, client, room, make_booking):
        make_booking(room, date(2025, 6, 2), date(2025, 6, 3))
        response = client.get(
            f"/api/rooms/{room.id}/availability",
            params={"start_date": "2025-06-01", "end_date": "2025-06-03"}
        )

        assert response.status_code == 200
        data = response.json()
        assert [d["date"] for d in data["days"]] == ["2025-06-01", "2025-06-02", "2025-06-03"]
        assert data["days"][1]["source"] == "direct-booking"
        assert data["summary"] == {"total_days": 3, "available_days": 2, "blocked_days": 1}

    def test_unknown_room_is_404(self, client):
        response = client.get(
            "/api/rooms/missing/availability",
            params={"start_date": "2025-06-01", "end_date": "2025-06-03"}
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_inverted_window_is_422(self, client, room):
        response = client.get(
            f"/api/rooms/{room.id}/availability/check",
            params={"check_in": "2025-06-05", "check_out": "2025-06-01"}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_range"

    def test_bulk(self, client, make_room, make_booking):
        free = make_room(slug="a-free")
        busy = make_room(slug="b-busy")
        make_booking(busy, date(2025, 6, 1), date(2025, 6, 5))

        response = client.get("/api/availability/bulk", params={"check_in": "2025-06-02", "check_out": "2025-06-03"})

        assert response.status_code == 200
        assert response.json()["available_room_ids"] == [free.id]


class TestPricingApi:

    def test_christmas_quote(self, client, room):
        created = client.post(f"/api/rooms/{room.id}/pricing-rules", json={
            "name": "Christmas",
            "rule_type": "surcharge_rate",
            "value": "0.20",
            "start_date": "2025-12-24",
            "end_date": "2025-12-26",
        })
        assert created.status_code == 201

        response = client.post("/api/pricing/calculate", json={
            "room_id": room.id,
            "check_in": "2025-12-23",
            "check_out": "2025-12-27",
        })

        assert response.status_code == 200
        assert response.json()["total"] == "440.00"

    def test_overlapping_rule_is_409(self, client, room):
        rule = {
            "name": "Summer", "rule_type": "fixed_amount", "value": "20",
            "start_date": "2025-06-01", "end_date": "2025-09-01",
        }
        first = client.post(f"/api/rooms/{room.id}/pricing-rules", json=rule).json()

        response = client.post(f"/api/rooms/{room.id}/pricing-rules", json={**rule, "name": "August"})

        assert response.status_code == 409
        assert response.json()["conflict"]["id"] == first["id"]


class TestBlockedPeriodApi:

    def test_create_conflict_and_list(self, client, room):
        body = {"start_date": "2025-06-01", "end_date": "2025-06-05", "reason": "Maintenance"}
        assert client.post(f"/api/rooms/{room.id}/blocked-periods", json=body).status_code == 201

        response = client.post(f"/api/rooms/{room.id}/blocked-periods", json={
            "start_date": "2025-06-04", "end_date": "2025-06-10", "reason": "Owner stay"
        })
        assert response.status_code == 409
        assert response.json()["conflict"]["start_date"] == "2025-06-01"

        listing = client.get(f"/api/rooms/{room.id}/blocked-periods").json()
        assert listing["total"] == 1
        assert listing["items"][0]["reason"] == "Maintenance"


class TestCalendarApi:

    def test_ics_export(self, client, db, room):
        InventoryService(db).mark_dates_booked(room.id, "booking-1", DateRange(date(2025, 7, 1), date(2025, 7, 3)))
        db.commit()

        response = client.get(f"/api/rooms/slug/{room.slug}/calendar.ics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/calendar")
        assert "room-garden-suite.ics" in response.headers["content-disposition"]
        assert response.text.startswith("BEGIN:VCALENDAR\r\n")
        assert "DTSTART;VALUE=DATE:20250701\r\n" in response.text

    def test_configure_and_sync_feed(self, client, room):
        response = client.put(
            f"/api/rooms/{room.id}/feeds/airbnb",
            json={"ical_url": "https://www.airbnb.com/calendar/ical/1.ics"}
        )
        assert response.status_code == 200

        result = client.post(f"/api/rooms/{room.id}/sync/airbnb").json()
        assert result["success"] is True
        assert result["events_processed"] == 1

        logs = client.get("/api/calendar/sync-logs", params={"room_id": room.id}).json()
        assert [log["status"] for log in logs] == ["success"]

    def test_sync_without_feed_reports_failure(self, client, room):
        result = client.post(f"/api/rooms/{room.id}/sync/expedia").json()
        assert result["success"] is False

    def test_sync_unknown_room_is_404(self, client):
        assert client.post("/api/rooms/missing/sync/airbnb").status_code == 404

    def test_validate_feed(self, client):
        response = client.post("/api/calendar/validate-feed", json={"url": "https://example.com/a.ics"})
        assert response.json() == {"url": "https://example.com/a.ics", "valid": True, "event_count": 1, "error": None}


class TestRouteHandlers:

    LOCKING_WRITES = [
        ("POST", "/api/rooms/{room_id}/blocked-periods"),
        ("PUT", "/api/blocked-periods/{period_id}"),
        ("DELETE", "/api/blocked-periods/{period_id}"),
        ("POST", "/api/rooms/{room_id}/pricing-rules"),
        ("PUT", "/api/pricing-rules/{rule_id}"),
        ("DELETE", "/api/pricing-rules/{rule_id}"),
        ("PUT", "/api/rooms/{room_id}/feeds/{platform}"),
        ("DELETE", "/api/rooms/{room_id}/feeds/{platform}"),
    ]

    def test_writes_under_room_lock_run_in_threadpool(self):
        handlers = {
            (method, route.path): route.endpoint
            for route in app.routes if isinstance(route, APIRoute)
            for method in route.methods
        }
        for key in self.LOCKING_WRITES:
            assert not inspect.iscoroutinefunction(handlers[key]), key
