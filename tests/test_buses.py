"""
Unit tests for fleet.buses against an in-memory SQLite store.

Covers bus-number normalisation and uniqueness, identifier-or-label
driver / route handling (create and three-way update), the maintenance
default, and the fleet summary arithmetic.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.models import Base, Bus, Route, Schedule, User, utcnow
from db.store import EntityStore, UniqueViolation
from errors import DuplicateBusNumber, InvalidReference, NotFound, ValidationError
from fleet.buses import (
    create_bus,
    delete_bus,
    fleet_summary,
    get_bus,
    list_buses,
    update_bus,
    utilization_rate,
)

UNKNOWN_ID = "65f1c0a2b3d4e5f6a7b8c9d0"


@pytest.fixture
def store():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    yield EntityStore(session)
    session.close()
    engine.dispose()


@pytest.fixture
def driver(store):
    return store.create(User, username="jsmith", full_name="John Smith", role="driver")


@pytest.fixture
def route(store):
    return store.create(
        Route,
        route_number="R001",
        name="City Center - Airport",
        start_location="Terminal",
        end_location="Airport",
        distance=25.5,
        estimated_duration=45,
        operating_start="05:30",
        operating_end="23:30",
        frequency=15,
        fare=3.5,
    )


def _bus(store, number="BUS-001", **extra):
    return create_bus(store, {"bus_number": number, "capacity": 50, **extra})


# ---------------------------------------------------------------------------
# create_bus
# ---------------------------------------------------------------------------

class TestCreateBus:
    def test_bus_number_upper_cased(self, store):
        assert _bus(store, " bus-007 ").bus_number == "BUS-007"

    def test_duplicate_number_case_insensitive(self, store):
        _bus(store, "BUS-001")
        with pytest.raises(DuplicateBusNumber):
            _bus(store, "bus-001")
        assert store.count(Bus) == 1

    def test_unique_violation_at_commit_is_duplicate(self, store):
        # A concurrent insert that slips past the pre-check is still reported as a duplicate.
        with patch.object(store, "create", side_effect=UniqueViolation("bus_number")):
            with pytest.raises(DuplicateBusNumber):
                _bus(store)

    def test_driver_label_accepted(self, store):
        assert _bus(store, driver="John Smith").driver == "John Smith"

    def test_driver_id_accepted(self, store, driver):
        assert _bus(store, driver=driver.id).driver == driver.id

    def test_unknown_driver_id_rejected(self, store):
        with pytest.raises(InvalidReference, match="Invalid driver ID"):
            _bus(store, driver=UNKNOWN_ID)
        assert store.count(Bus) == 0

    def test_route_omitted_is_null(self, store):
        assert _bus(store).route is None

    def test_route_empty_is_null(self, store):
        assert _bus(store, route="").route is None

    def test_route_label_accepted_without_lookup(self, store):
        assert _bus(store, route="Airport Express").route == "Airport Express"

    def test_unknown_route_id_rejected(self, store):
        with pytest.raises(InvalidReference, match="Invalid route ID"):
            _bus(store, route=UNKNOWN_ID)

    def test_next_maintenance_defaults_to_90_days(self, store):
        before = utcnow()
        bus = _bus(store)
        after = utcnow()
        assert before + timedelta(days=90) <= bus.next_maintenance <= after + timedelta(days=90)

    def test_explicit_next_maintenance_kept(self, store):
        when = utcnow() + timedelta(days=7)
        assert _bus(store, next_maintenance=when).next_maintenance == when

    def test_defaults(self, store):
        bus = _bus(store)
        assert bus.status == "active"
        assert bus.mileage == 0
        assert bus.features == []

    def test_location_flattened(self, store):
        bus = _bus(store, location={"latitude": 22.57, "longitude": 88.36})
        assert bus.location_latitude == 22.57
        assert bus.location_longitude == 88.36


# ---------------------------------------------------------------------------
# update_bus
# ---------------------------------------------------------------------------

class TestUpdateBus:
    def test_missing_bus_not_found(self, store):
        with pytest.raises(NotFound):
            update_bus(store, UNKNOWN_ID, {"capacity": 40})

    def test_driver_omitted_left_alone(self, store):
        bus = _bus(store, driver="John Smith")
        assert update_bus(store, bus.id, {"capacity": 40}).driver == "John Smith"

    def test_driver_empty_clears(self, store):
        bus = _bus(store, driver="John Smith")
        assert update_bus(store, bus.id, {"driver": ""}).driver is None

    def test_driver_null_clears(self, store):
        bus = _bus(store, driver="John Smith")
        assert update_bus(store, bus.id, {"driver": None}).driver is None

    def test_driver_unknown_id_rejected(self, store):
        bus = _bus(store, driver="John Smith")
        with pytest.raises(InvalidReference):
            update_bus(store, bus.id, {"driver": UNKNOWN_ID})
        assert get_bus(store, bus.id).driver == "John Smith"

    def test_route_set_to_existing_id(self, store, route):
        bus = _bus(store)
        assert update_bus(store, bus.id, {"route": route.id}).route == route.id

    def test_route_omitted_left_alone(self, store, route):
        bus = _bus(store, route=route.id)
        assert update_bus(store, bus.id, {"capacity": 40}).route == route.id

    def test_route_empty_clears(self, store, route):
        bus = _bus(store, route=route.id)
        assert update_bus(store, bus.id, {"route": ""}).route is None

    def test_route_label_replaces_id(self, store, route):
        bus = _bus(store, route=route.id)
        assert update_bus(store, bus.id, {"route": "Airport Express"}).route == "Airport Express"

    def test_route_unknown_id_rejected(self, store, route):
        bus = _bus(store, route=route.id)
        with pytest.raises(InvalidReference):
            update_bus(store, bus.id, {"route": UNKNOWN_ID})
        assert get_bus(store, bus.id).route == route.id

    def test_same_number_on_same_bus_allowed(self, store):
        bus = _bus(store, "BUS-001")
        assert update_bus(store, bus.id, {"bus_number": "bus-001"}).bus_number == "BUS-001"

    def test_number_taken_by_other_bus(self, store):
        _bus(store, "BUS-001")
        other = _bus(store, "BUS-002")
        with pytest.raises(DuplicateBusNumber):
            update_bus(store, other.id, {"bus_number": "Bus-001"})

    def test_required_field_cannot_be_nulled(self, store):
        bus = _bus(store)
        with pytest.raises(ValidationError) as exc_info:
            update_bus(store, bus.id, {"capacity": None})
        assert exc_info.value.errors[0]["field"] == "capacity"


# ---------------------------------------------------------------------------
# delete / list
# ---------------------------------------------------------------------------

class TestDeleteBus:
    def test_missing_bus_not_found(self, store):
        with pytest.raises(NotFound):
            delete_bus(store, UNKNOWN_ID)

    def test_returns_deleted_record(self, store):
        bus = _bus(store, "BUS-009")
        assert delete_bus(store, bus.id).bus_number == "BUS-009"
        assert store.count(Bus) == 0

    def test_schedules_not_cascaded(self, store, route):
        bus = _bus(store)
        now = utcnow()
        store.create(Schedule, route=route.id, bus=bus.id, departure_time=now, arrival_time=now + timedelta(hours=1))
        delete_bus(store, bus.id)
        assert store.count(Schedule) == 1


class TestListBuses:
    def test_filters_by_status(self, store):
        _bus(store, "BUS-001")
        _bus(store, "BUS-002", status="maintenance")
        result = list_buses(store, status="maintenance")
        assert [b.bus_number for b in result.items] == ["BUS-002"]
        assert result.total == 1

    def test_pagination(self, store):
        for n in range(5):
            _bus(store, f"BUS-00{n}")
        result = list_buses(store, page=2, limit=2)
        assert len(result.items) == 2
        assert result.total == 5
        assert result.pages == 3


# ---------------------------------------------------------------------------
# fleet_summary
# ---------------------------------------------------------------------------

class TestUtilizationRate:
    def test_empty_fleet_is_zero(self):
        assert utilization_rate(0, 0) == 0

    def test_two_thirds_rounds_up(self):
        assert utilization_rate(2, 3) == 67

    def test_exact_half_rounds_up(self):
        assert utilization_rate(1, 8) == 13


class TestFleetSummary:
    def test_empty_fleet(self, store):
        summary = fleet_summary(store)
        assert summary["total_buses"] == 0
        assert summary["utilization_rate"] == 0
        assert summary["average_mileage"] == 0
        assert summary["bus_by_type"] == {}

    def test_counts_and_totals(self, store):
        _bus(store, "BUS-001", mileage=1000, type="standard")
        _bus(store, "BUS-002", mileage=2001, type="standard", status="maintenance")
        _bus(store, "BUS-003", mileage=3000, type="luxury", status="out-of-service")
        summary = fleet_summary(store)
        assert summary["total_buses"] == 3
        assert summary["active_buses"] == 1
        assert summary["maintenance_buses"] == 1
        assert summary["out_of_service_buses"] == 1
        assert summary["total_capacity"] == 150
        assert summary["total_mileage"] == 6001
        assert summary["average_mileage"] == 2000
        assert summary["utilization_rate"] == 33
        assert summary["bus_by_type"] == {"standard": 2, "luxury": 1}
