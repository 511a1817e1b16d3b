"""
Schedules: a bus running a route between a departure and an arrival time.

route and bus are identifier-or-label fields resolved against Route and Bus;
driver, when given, must be an existing user id.  arrival_time must be
strictly after departure_time, checked before anything is written, on
create and on update (against the merged old/new values).
"""

import logging
from datetime import datetime
from typing import Any

from db.models import Bus, Route, Schedule, User, utcnow
from db.store import EntityStore, Page
from errors import InvalidReference, NotFound, ValidationError, reject_nulls
from fleet.references import Reference, apply_reference_update, field_update, resolve, resolve_value

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    "route", "bus", "departure_time", "arrival_time", "status",
    "passengers_current", "passengers_boarded", "passengers_alighted",
)


def _check_times(departure: datetime, arrival: datetime) -> None:
    if arrival <= departure:
        raise ValidationError(
            "Arrival time must be after departure time",
            errors=[{"field": "arrival_time", "message": "must be after departure_time"}],
        )


def _driver_id(store: EntityStore, driver: str | None) -> str | None:
    """Stored form of a schedule driver: a lower-cased existing user id, or None."""
    if not driver:
        return None
    target = resolve(store, User, driver, "driver")
    if not isinstance(target, Reference):
        logger.warning("Rejected schedule driver %r: not a user id.", driver)
        raise InvalidReference("Invalid driver ID")
    return target.id


def _flatten_nested(values: dict[str, Any]) -> None:
    passengers = values.pop("passengers", None)
    if passengers:
        for key in ("current", "boarded", "alighted"):
            if key in passengers:
                values[f"passengers_{key}"] = passengers[key]
    weather = values.pop("weather", None)
    if weather:
        for key in ("condition", "temperature", "visibility"):
            if key in weather:
                values[f"weather_{key}"] = weather[key]


def create_schedule(store: EntityStore, data: dict[str, Any]) -> Schedule:
    values = dict(data)
    _check_times(values["departure_time"], values["arrival_time"])

    route = resolve_value(store, Route, values.get("route"), "route")
    bus = resolve_value(store, Bus, values.get("bus"), "bus")
    if route is None or bus is None:
        raise ValidationError("Route and bus are required")
    values["route"], values["bus"] = route, bus
    values["driver"] = _driver_id(store, values.get("driver"))
    values["delays"] = [_delay_record(d["reason"], d["duration"], d.get("timestamp")) for d in values.get("delays") or []]
    _flatten_nested(values)

    schedule = store.create(Schedule, **values)
    logger.info("Schedule %s created for bus %s on route %s.", schedule.id, schedule.bus, schedule.route)
    return schedule


def update_schedule(store: EntityStore, schedule_id: str, changes: dict[str, Any]) -> Schedule:
    schedule = store.find_by_id(Schedule, schedule_id)
    if schedule is None:
        raise NotFound("Schedule not found")
    values = {k: v for k, v in changes.items() if k not in ("route", "bus", "driver", "delays")}
    _flatten_nested(values)
    reject_nulls(values, _REQUIRED_FIELDS)

    _check_times(
        values.get("departure_time", schedule.departure_time),
        values.get("arrival_time", schedule.arrival_time),
    )

    # Unlike buses, a schedule's route and bus cannot be cleared.
    for field, model in (("route", Route), ("bus", Bus)):
        if field in changes and not changes[field]:
            raise ValidationError(f"{field.capitalize()} is required")
        apply_reference_update(store, model, field_update(changes, field), field, values)
    if "driver" in changes:
        values["driver"] = _driver_id(store, changes["driver"])

    schedule = store.update_by_id(Schedule, schedule_id, values)
    logger.info("Schedule %s updated.", schedule_id)
    return schedule


def _delay_record(reason: str, duration: float, timestamp: datetime | None = None) -> dict[str, Any]:
    return {
        "reason": reason.strip(),
        "duration": duration,
        "timestamp": (timestamp or utcnow()).isoformat(),
    }


def add_delay(store: EntityStore, schedule_id: str, reason: str, duration: float) -> Schedule:
    """Append a delay record (existing order preserved) and mark the schedule delayed."""
    schedule = store.find_by_id(Schedule, schedule_id)
    if schedule is None:
        raise NotFound("Schedule not found")
    schedule.delays = [*schedule.delays, _delay_record(reason, duration)]
    schedule.status = "delayed"
    store.save(schedule)
    logger.info("Schedule %s delayed %s min: %s", schedule_id, duration, reason)
    return schedule


def delete_schedule(store: EntityStore, schedule_id: str) -> Schedule:
    schedule = store.delete_by_id(Schedule, schedule_id)
    if schedule is None:
        raise NotFound("Schedule not found")
    logger.info("Schedule %s deleted.", schedule_id)
    return schedule


def get_schedule(store: EntityStore, schedule_id: str) -> Schedule:
    schedule = store.find_by_id(Schedule, schedule_id)
    if schedule is None:
        raise NotFound("Schedule not found")
    return schedule


def list_schedules(
    store: EntityStore,
    status: str | None = None,
    route: str | None = None,
    bus: str | None = None,
    departs_after: datetime | None = None,
    departs_before: datetime | None = None,
    page: int = 1,
    limit: int = 10,
) -> Page:
    criteria = []
    if status:
        criteria.append(Schedule.status == status)
    if route:
        criteria.append(Schedule.route == route)
    if bus:
        criteria.append(Schedule.bus == bus)
    if departs_after:
        criteria.append(Schedule.departure_time >= departs_after)
    if departs_before:
        criteria.append(Schedule.departure_time < departs_before)
    return store.find_page(
        Schedule, *criteria, order_by=Schedule.departure_time, page=page, limit=limit,
    )
