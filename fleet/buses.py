"""
Fleet inventory: bus creation, updates and deletion.

Rules enforced here:
  - bus_number is stored trimmed and upper-cased, so uniqueness is
    case-insensitive ("bus-001" collides with "BUS-001").
  - driver / route are identifier-or-label fields (fleet.references).
    On update they are three-way: omitted → untouched, empty → cleared,
    value → re-validated.
  - next_maintenance defaults to MAINTENANCE_INTERVAL_DAYS after creation.
  - Deletion never touches routes or schedules that mention the bus.
"""

import logging
import math
from datetime import timedelta
from typing import Any

from config import MAINTENANCE_INTERVAL_DAYS
from db.models import Bus, Route, User, utcnow
from db.store import EntityStore, Page, UniqueViolation
from errors import DuplicateBusNumber, NotFound, reject_nulls
from fleet.references import apply_reference_update, field_update, resolve_value

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("bus_number", "capacity", "type", "status", "fuel_type", "mileage", "features")


def normalize_bus_number(value: str) -> str:
    return value.strip().upper()


def utilization_rate(active: int, total: int) -> int:
    """active / total as a whole percentage, halves rounded up; 0 for an empty fleet."""
    if total <= 0:
        return 0
    return math.floor(active / total * 100 + 0.5)


def _flatten_location(values: dict[str, Any]) -> None:
    location = values.pop("location", None)
    if location:
        values["location_latitude"] = location.get("latitude")
        values["location_longitude"] = location.get("longitude")
        values["location_updated_at"] = utcnow()


def _ensure_unique_number(store: EntityStore, bus_number: str, exclude_id: str | None = None) -> None:
    criteria = [Bus.bus_number == bus_number]
    if exclude_id:
        criteria.append(Bus.id != exclude_id)
    if store.find_one(Bus, *criteria) is not None:
        logger.warning("Rejected duplicate bus number %s.", bus_number)
        raise DuplicateBusNumber()


def create_bus(store: EntityStore, data: dict[str, Any]) -> Bus:
    values = dict(data)
    values["bus_number"] = normalize_bus_number(values["bus_number"])
    _ensure_unique_number(store, values["bus_number"])

    values["driver"] = resolve_value(store, User, values.get("driver"), "driver")
    values["route"] = resolve_value(store, Route, values.get("route"), "route")

    if values.get("license_plate"):
        values["license_plate"] = values["license_plate"].strip().upper()
    values["mileage"] = values.get("mileage") or 0
    values["features"] = values.get("features") or []
    if not values.get("next_maintenance"):
        values["next_maintenance"] = utcnow() + timedelta(days=MAINTENANCE_INTERVAL_DAYS)
    _flatten_location(values)

    try:
        bus = store.create(Bus, **values)
    except UniqueViolation:
        raise DuplicateBusNumber() from None
    logger.info("Bus %s created.", bus.bus_number)
    return bus


def update_bus(store: EntityStore, bus_id: str, changes: dict[str, Any]) -> Bus:
    """
    Apply a partial update.  `changes` must contain only the fields the
    caller sent, because a missing key and an empty value mean different
    things for driver / route.
    """
    if store.find_by_id(Bus, bus_id) is None:
        raise NotFound("Bus not found")
    reject_nulls(changes, _REQUIRED_FIELDS)

    values = {k: v for k, v in changes.items() if k not in ("bus_number", "driver", "route")}

    if changes.get("bus_number"):
        bus_number = normalize_bus_number(changes["bus_number"])
        _ensure_unique_number(store, bus_number, exclude_id=bus_id)
        values["bus_number"] = bus_number

    apply_reference_update(store, User, field_update(changes, "driver"), "driver", values)
    apply_reference_update(store, Route, field_update(changes, "route"), "route", values)

    if values.get("license_plate"):
        values["license_plate"] = values["license_plate"].strip().upper()
    _flatten_location(values)

    try:
        bus = store.update_by_id(Bus, bus_id, values)
    except UniqueViolation:
        raise DuplicateBusNumber() from None
    if bus is None:
        raise NotFound("Bus not found")
    logger.info("Bus %s updated (%s).", bus.bus_number, ", ".join(sorted(values)) or "no changes")
    return bus


def delete_bus(store: EntityStore, bus_id: str) -> Bus:
    bus = store.delete_by_id(Bus, bus_id)
    if bus is None:
        raise NotFound("Bus not found")
    logger.info("Bus %s deleted.", bus.bus_number)
    return bus


def get_bus(store: EntityStore, bus_id: str) -> Bus:
    bus = store.find_by_id(Bus, bus_id)
    if bus is None:
        raise NotFound("Bus not found")
    return bus


def list_buses(
    store: EntityStore,
    status: str | None = None,
    route: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> Page:
    criteria = []
    if status:
        criteria.append(Bus.status == status)
    if route:
        criteria.append(Bus.route == route)
    return store.find_page(Bus, *criteria, order_by=Bus.created_at.desc(), page=page, limit=limit)


def fleet_summary(store: EntityStore) -> dict[str, Any]:
    total = store.count(Bus)
    active = store.count(Bus, Bus.status == "active")
    total_capacity, _ = store.sum_and_avg(Bus, "capacity")
    total_mileage, average_mileage = store.sum_and_avg(Bus, "mileage")

    return {
        "total_buses": total,
        "active_buses": active,
        "maintenance_buses": store.count(Bus, Bus.status == "maintenance"),
        "out_of_service_buses": store.count(Bus, Bus.status == "out-of-service"),
        "total_capacity": int(total_capacity),
        "average_mileage": math.floor(average_mileage + 0.5),
        "total_mileage": total_mileage,
        "utilization_rate": utilization_rate(active, total),
        "bus_by_type": store.aggregate_group_count(Bus, "type"),
    }
