"""
Integration tests for the HTTP layer.

The FastAPI lifespan (init_db) is patched out for every test.  Each test
gets its own in-memory SQLite database via the db_session / client
fixtures, and a user with a known bearer token via auth_headers.
"""

import time
from unittest.mock import patch

import anyio
import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.deps import hash_token
from db.models import Base, Contact, User
from db.session import get_session

TOKEN = "test-token-for-the-admin-user"
UNKNOWN_ID = "65f1c0a2b3d4e5f6a7b8c9d0"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database, schema pre-created, per test.

    StaticPool is required so that create_all and the session both use
    the same single connection; otherwise each pool checkout gets a new
    in-memory DB that has no tables.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestSession = sessionmaker(bind=engine)
    session = TestSession()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(db_session):
    """TestClient with init_db patched out and get_session pointed at db_session."""
    from api.main import app

    def override_get_session():
        yield db_session

    with patch("api.main.init_db"):
        app.dependency_overrides[get_session] = override_get_session
        with TestClient(app, raise_server_exceptions=True) as c:
            yield c
        app.dependency_overrides.clear()


@pytest.fixture
def admin(db_session):
    user = User(username="admin", full_name="System Administrator", role="admin", api_token_hash=hash_token(TOKEN))
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def auth_headers(admin):
    return {"Authorization": f"Bearer {TOKEN}"}


def _route_payload(number="R001"):
    return {
        "route_number": number,
        "name": "City Center - Airport",
        "start_location": "City Center Bus Terminal",
        "end_location": "International Airport",
        "distance": 25.5,
        "estimated_duration": 45,
        "operating_hours": {"start": "05:30", "end": "23:30"},
        "frequency": 15,
        "fare": 3.5,
        "stops": [
            {"name": "City Center Bus Terminal", "coordinates": {"latitude": 22.57, "longitude": 88.36}, "order": 1},
            {"name": "International Airport", "coordinates": {"latitude": 22.65, "longitude": 88.44},
             "estimated_time": 45, "order": 2},
        ],
    }


def _inquiry_payload(email="user@example.com"):
    return {
        "name": "Priya Sharma",
        "email": email,
        "subject": "Late bus",
        "message": "The 7:30 bus on R001 was twenty minutes late.",
        "category": "complaint",
    }


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------

class TestHealth:
    def test_returns_200_without_token(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200

    def test_empty_db_returns_zero_counts(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["records"] == {"buses": 0, "routes": 0, "schedules": 0, "contacts": 0}

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestAuth:
    def test_missing_token_rejected(self, client):
        resp = client.get("/api/fleet")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Access token required"

    def test_unknown_token_rejected(self, client, admin):
        resp = client.get("/api/fleet", headers={"Authorization": "Bearer not-a-real-token"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid or expired token"

    def test_inactive_user_rejected(self, client, db_session, admin, auth_headers):
        admin.is_active = False
        db_session.commit()
        assert client.get("/api/fleet", headers=auth_headers).status_code == 401

    def test_valid_token_accepted(self, client, auth_headers):
        assert client.get("/api/fleet", headers=auth_headers).status_code == 200

    def test_unauthenticated_write_does_not_reach_store(self, client, db_session):
        resp = client.post("/api/contacts", json=_inquiry_payload())
        assert resp.status_code == 401
        assert db_session.query(Contact).count() == 0


# ---------------------------------------------------------------------------
# /api/fleet
# ---------------------------------------------------------------------------

class TestFleet:
    def test_create_returns_201(self, client, auth_headers):
        resp = client.post("/api/fleet", json={"bus_number": "bus-001", "capacity": 50}, headers=auth_headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Bus created successfully"
        assert body["bus"]["bus_number"] == "BUS-001"
        assert body["bus"]["next_maintenance"] is not None

    def test_duplicate_number_returns_400(self, client, auth_headers):
        client.post("/api/fleet", json={"bus_number": "BUS-001", "capacity": 50}, headers=auth_headers)
        resp = client.post("/api/fleet", json={"bus_number": "bus-001", "capacity": 40}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Bus number already exists"

    def test_unknown_driver_id_returns_400(self, client, auth_headers):
        resp = client.post(
            "/api/fleet",
            json={"bus_number": "BUS-001", "capacity": 50, "driver": UNKNOWN_ID},
            headers=auth_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid driver ID"

    def test_detail_includes_driver_summary(self, client, auth_headers, admin):
        created = client.post(
            "/api/fleet",
            json={"bus_number": "BUS-001", "capacity": 50, "driver": admin.id},
            headers=auth_headers,
        ).json()["bus"]
        detail = client.get(f"/api/fleet/{created['id']}", headers=auth_headers).json()
        assert detail["driver_details"]["username"] == "admin"

    def test_update_clears_driver_with_empty_string(self, client, auth_headers):
        bus = client.post(
            "/api/fleet",
            json={"bus_number": "BUS-001", "capacity": 50, "driver": "John Smith"},
            headers=auth_headers,
        ).json()["bus"]
        kept = client.put(f"/api/fleet/{bus['id']}", json={"capacity": 45}, headers=auth_headers).json()
        assert kept["driver"] == "John Smith"
        cleared = client.put(f"/api/fleet/{bus['id']}", json={"driver": ""}, headers=auth_headers).json()
        assert cleared["driver"] is None

    def test_capacity_out_of_range_returns_400(self, client, auth_headers):
        resp = client.post("/api/fleet", json={"bus_number": "BUS-001", "capacity": 0}, headers=auth_headers)
        assert resp.status_code == 400
        body = resp.json()
        assert body["detail"] == "Validation error"
        assert body["errors"][0]["field"] == "capacity"

    def test_missing_bus_returns_404(self, client, auth_headers):
        assert client.get(f"/api/fleet/{UNKNOWN_ID}", headers=auth_headers).status_code == 404
        assert client.delete(f"/api/fleet/{UNKNOWN_ID}", headers=auth_headers).status_code == 404

    def test_delete_reports_bus_number(self, client, auth_headers):
        bus = client.post("/api/fleet", json={"bus_number": "BUS-001", "capacity": 50}, headers=auth_headers).json()["bus"]
        resp = client.delete(f"/api/fleet/{bus['id']}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["deleted"] == {"id": bus["id"], "label": "BUS-001"}

    def test_list_pagination(self, client, auth_headers):
        for n in range(3):
            client.post("/api/fleet", json={"bus_number": f"BUS-00{n}", "capacity": 50}, headers=auth_headers)
        body = client.get("/api/fleet?page=1&limit=2", headers=auth_headers).json()
        assert body["total"] == 3
        assert body["pages"] == 2
        assert len(body["buses"]) == 2

    def test_summary(self, client, auth_headers):
        client.post("/api/fleet", json={"bus_number": "BUS-001", "capacity": 50}, headers=auth_headers)
        body = client.get("/api/fleet/stats/summary", headers=auth_headers).json()
        assert body["total_buses"] == 1
        assert body["utilization_rate"] == 100


# ---------------------------------------------------------------------------
# /api/routes and /api/schedules
# ---------------------------------------------------------------------------

class TestRoutesAndSchedules:
    def test_create_route(self, client, auth_headers):
        resp = client.post("/api/routes", json=_route_payload(), headers=auth_headers)
        assert resp.status_code == 201
        assert resp.json()["operating_hours"] == {"start": "05:30", "end": "23:30"}

    def test_bad_operating_hours_returns_400(self, client, auth_headers):
        payload = _route_payload()
        payload["operating_hours"]["start"] = "25:00"
        assert client.post("/api/routes", json=payload, headers=auth_headers).status_code == 400

    def test_schedule_arrival_before_departure_returns_400(self, client, auth_headers):
        route = client.post("/api/routes", json=_route_payload(), headers=auth_headers).json()
        bus = client.post("/api/fleet", json={"bus_number": "BUS-001", "capacity": 50}, headers=auth_headers).json()["bus"]
        resp = client.post(
            "/api/schedules",
            json={
                "route": route["id"],
                "bus": bus["id"],
                "departure_time": "2026-03-02T07:00:00",
                "arrival_time": "2026-03-02T06:30:00",
            },
            headers=auth_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Arrival time must be after departure time"

    def test_schedule_delay_appended(self, client, auth_headers):
        route = client.post("/api/routes", json=_route_payload(), headers=auth_headers).json()
        schedule = client.post(
            "/api/schedules",
            json={
                "route": route["id"],
                "bus": "Relief Bus",
                "departure_time": "2026-03-02T06:30:00",
                "arrival_time": "2026-03-02T07:15:00",
            },
            headers=auth_headers,
        ).json()
        resp = client.post(
            f"/api/schedules/{schedule['id']}/delays",
            json={"reason": "Traffic", "duration": 10},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "delayed"
        assert [d["reason"] for d in resp.json()["delays"]] == ["Traffic"]


# ---------------------------------------------------------------------------
# /api/contacts
# ---------------------------------------------------------------------------

class TestContacts:
    def test_create_staff_contact_record(self, client, auth_headers):
        resp = client.post(
            "/api/contacts",
            json={"name": "Ravi Kumar", "email": "ravi@example.com", "role": "Dispatcher"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["subject"] == "Dispatcher Contact"

    def test_duplicate_active_email_returns_400(self, client, auth_headers):
        client.post("/api/contacts", json={"name": "Ravi Kumar", "email": "ravi@example.com"}, headers=auth_headers)
        resp = client.post("/api/contacts", json={"name": "Ravi K", "email": "RAVI@example.com"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Active contact with this email already exists"

    def test_get_does_not_mark_read(self, client, auth_headers):
        contact = client.post(
            "/api/contacts", json={"name": "Ravi Kumar", "email": "ravi@example.com"}, headers=auth_headers,
        ).json()
        body = client.get(f"/api/contacts/{contact['id']}", headers=auth_headers).json()
        assert body["is_read"] is False

    def test_stats_zero_filled(self, client, auth_headers):
        body = client.get("/api/contacts/stats/summary", headers=auth_headers).json()
        assert body["total_contacts"] == 0
        assert body["status_breakdown"] == {"new": 0, "in_progress": 0, "resolved": 0, "closed": 0}

    def test_update_returns_wrapped_contact(self, client, auth_headers):
        contact = client.post(
            "/api/contacts", json={"name": "Ravi Kumar", "email": "ravi@example.com"}, headers=auth_headers,
        ).json()
        resp = client.put(f"/api/contacts/{contact['id']}", json={"status": "closed"}, headers=auth_headers)
        assert resp.json()["message"] == "Contact updated successfully"
        assert resp.json()["contact"]["status"] == "closed"

    def test_missing_contact_returns_404(self, client, auth_headers):
        assert client.delete(f"/api/contacts/{UNKNOWN_ID}", headers=auth_headers).status_code == 404


# ---------------------------------------------------------------------------
# /api/support
# ---------------------------------------------------------------------------

class TestSupport:
    def test_public_inquiry_needs_no_token(self, client):
        resp = client.post("/api/support/inquiry", json=_inquiry_payload())
        assert resp.status_code == 201
        assert "inquiry_id" in resp.json()

    def test_inquiry_requires_subject(self, client):
        payload = _inquiry_payload()
        del payload["subject"]
        assert client.post("/api/support/inquiry", json=payload).status_code == 400

    def test_inquiry_rejects_bad_email(self, client):
        assert client.post("/api/support/inquiry", json=_inquiry_payload("not-an-email")).status_code == 400

    def test_listing_requires_token(self, client):
        assert client.get("/api/support/inquiries").status_code == 401

    def test_read_marks_once(self, client, db_session, auth_headers, admin):
        inquiry_id = client.post("/api/support/inquiry", json=_inquiry_payload()).json()["inquiry_id"]
        first = client.get(f"/api/support/inquiries/{inquiry_id}", headers=auth_headers).json()
        assert first["is_read"] is True
        assert first["read_by"] == admin.id

        other = User(username="manager", role="manager", api_token_hash=hash_token("manager-token"))
        db_session.add(other)
        db_session.commit()
        second = client.get(
            f"/api/support/inquiries/{inquiry_id}",
            headers={"Authorization": "Bearer manager-token"},
        ).json()
        assert second["read_by"] == admin.id
        assert second["read_at"] == first["read_at"]

    def test_respond_resolves(self, client, auth_headers, admin):
        inquiry_id = client.post("/api/support/inquiry", json=_inquiry_payload()).json()["inquiry_id"]
        resp = client.post(
            f"/api/support/inquiries/{inquiry_id}/respond",
            json={"message": "We have raised this with the depot."},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        inquiry = resp.json()["inquiry"]
        assert inquiry["status"] == "resolved"
        assert inquiry["response"]["responded_by"] == admin.id

    def test_respond_to_missing_inquiry_returns_404(self, client, auth_headers):
        resp = client.post(
            f"/api/support/inquiries/{UNKNOWN_ID}/respond",
            json={"message": "Nobody will ever read this."},
            headers=auth_headers,
        )
        assert resp.status_code == 404

    def test_list_pages(self, client, auth_headers):
        for n in range(3):
            client.post("/api/support/inquiry", json=_inquiry_payload(f"user{n}@example.com"))
        body = client.get("/api/support/inquiries?limit=2&page=2", headers=auth_headers).json()
        assert body["total"] == 3
        assert body["pages"] == 2
        assert body["page"] == 2
        assert len(body["inquiries"]) == 1

    def test_stats(self, client, auth_headers):
        client.post("/api/support/inquiry", json=_inquiry_payload())
        body = client.get("/api/support/stats/inquiries", headers=auth_headers).json()
        assert body["total_inquiries"] == 1
        assert body["new_inquiries"] == 1
        assert body["inquiries_by_category"] == {"complaint": 1}


# ---------------------------------------------------------------------------
# /api/staff
# ---------------------------------------------------------------------------

class TestStaff:
    PAYLOAD = {
        "name": "Anita Das",
        "email": "anita@example.com",
        "phone": "+91-9876500002",
        "department": "Customer Service",
    }

    def test_create_and_list(self, client, auth_headers):
        assert client.post("/api/staff", json=self.PAYLOAD, headers=auth_headers).status_code == 201
        body = client.get("/api/staff", headers=auth_headers).json()
        assert body["total"] == 1
        assert body["staff"][0]["shift"] == "Day (8:00 AM - 4:00 PM)"

    def test_duplicate_email_returns_400(self, client, auth_headers):
        client.post("/api/staff", json=self.PAYLOAD, headers=auth_headers)
        resp = client.post("/api/staff", json=self.PAYLOAD, headers=auth_headers)
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# /api/dashboard
# ---------------------------------------------------------------------------

class TestDashboard:
    def test_stats_on_empty_store(self, client, auth_headers):
        body = client.get("/api/dashboard/stats", headers=auth_headers).json()
        assert body["overview"]["total_fleet"] == 0
        assert body["overview"]["revenue"]["currency"] == "INR"
        assert body["weekly_trends"]["labels"] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

    def test_store_failure_still_200(self, client, auth_headers):
        client.post("/api/fleet", json={"bus_number": "BUS-001", "capacity": 50}, headers=auth_headers)
        with patch("db.store.EntityStore.count", side_effect=RuntimeError("boom")):
            resp = client.get("/api/dashboard/overview", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["total_fleet"] == 0

    def test_complete_includes_caller(self, client, auth_headers, admin):
        body = client.get("/api/dashboard/complete", headers=auth_headers).json()
        assert body["user"] == {"id": admin.id, "role": "admin"}
        assert "timestamp" in body

    def test_alert_status_update(self, client, auth_headers):
        resp = client.patch("/api/dashboard/alerts/3", json={"status": "acknowledged"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "acknowledged"

    def test_alert_status_must_be_known(self, client, auth_headers):
        resp = client.patch("/api/dashboard/alerts/3", json={"status": "ignored"}, headers=auth_headers)
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Coroutines called directly
# ---------------------------------------------------------------------------

class TestLifespan:
    @pytest.mark.anyio
    async def test_initialises_schema_on_startup(self):
        from api.main import app, lifespan

        with patch("api.main.init_db") as mock_init:
            async with lifespan(app):
                mock_init.assert_called_once()


class TestAlertAcknowledgement:
    @pytest.mark.anyio
    async def test_echoes_alert_and_status(self):
        from api.dashboard import update_alert
        from api.deps import CurrentUser
        from api.schemas import AlertStatusUpdate

        resp = await update_alert(7, AlertStatusUpdate(status="resolved"), CurrentUser(id=UNKNOWN_ID, role="admin", username="admin"))
        assert resp.alert_id == 7
        assert resp.status == "resolved"
        assert resp.message == "Alert 7 marked as resolved"


class TestConcurrentRequests:
    @pytest.mark.anyio
    async def test_slow_store_call_does_not_serialise_requests(self, db_session):
        from api.deps import CurrentUser, get_current_user
        from api.main import app
        from dashboard.aggregator import empty_stats

        def slow_stats(store):
            time.sleep(0.3)
            return empty_stats()

        def override_get_session():
            yield db_session

        app.dependency_overrides[get_session] = override_get_session
        app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=UNKNOWN_ID, role="admin", username="admin")
        statuses = []

        async def fetch(http):
            resp = await http.get("/api/dashboard/overview")
            statuses.append(resp.status_code)

        try:
            with patch("api.dashboard.dashboard_stats", side_effect=slow_stats):
                transport = httpx.ASGITransport(app=app)
                async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
                    started = time.perf_counter()
                    async with anyio.create_task_group() as tg:
                        for _ in range(4):
                            tg.start_soon(fetch, http)
                    elapsed = time.perf_counter() - started
        finally:
            app.dependency_overrides.clear()

        assert statuses == [200] * 4
        assert elapsed < 0.9
