"""Route definitions: route_number is unique and stored upper-cased; stops keep caller order."""

import logging
from typing import Any

from db.models import Route
from db.store import EntityStore, Page, UniqueViolation
from errors import DuplicateRouteNumber, NotFound, reject_nulls

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    "route_number", "name", "start_location", "end_location", "stops", "distance",
    "estimated_duration", "operating_start", "operating_end", "frequency", "fare", "status",
)


def _ensure_unique_number(store: EntityStore, route_number: str, exclude_id: str | None = None) -> None:
    criteria = [Route.route_number == route_number]
    if exclude_id:
        criteria.append(Route.id != exclude_id)
    if store.find_one(Route, *criteria) is not None:
        logger.warning("Rejected duplicate route number %s.", route_number)
        raise DuplicateRouteNumber()


def _flatten_operating_hours(values: dict[str, Any]) -> None:
    hours = values.pop("operating_hours", None)
    if hours:
        values["operating_start"] = hours["start"]
        values["operating_end"] = hours["end"]


def create_route(store: EntityStore, data: dict[str, Any]) -> Route:
    values = dict(data)
    values["route_number"] = values["route_number"].strip().upper()
    _ensure_unique_number(store, values["route_number"])
    _flatten_operating_hours(values)
    values["stops"] = list(values.get("stops") or [])

    try:
        route = store.create(Route, **values)
    except UniqueViolation:
        raise DuplicateRouteNumber() from None
    logger.info("Route %s created with %d stops.", route.route_number, len(route.stops))
    return route


def update_route(store: EntityStore, route_id: str, changes: dict[str, Any]) -> Route:
    if store.find_by_id(Route, route_id) is None:
        raise NotFound("Route not found")
    values = dict(changes)
    _flatten_operating_hours(values)
    reject_nulls(values, _REQUIRED_FIELDS)

    if values.get("route_number"):
        values["route_number"] = values["route_number"].strip().upper()
        _ensure_unique_number(store, values["route_number"], exclude_id=route_id)
    if "stops" in values:
        values["stops"] = list(values["stops"])

    try:
        route = store.update_by_id(Route, route_id, values)
    except UniqueViolation:
        raise DuplicateRouteNumber() from None
    if route is None:
        raise NotFound("Route not found")
    logger.info("Route %s updated.", route.route_number)
    return route


def delete_route(store: EntityStore, route_id: str) -> Route:
    # Buses and schedules that reference this route keep their (now dangling) value.
    route = store.delete_by_id(Route, route_id)
    if route is None:
        raise NotFound("Route not found")
    logger.info("Route %s deleted.", route.route_number)
    return route


def get_route(store: EntityStore, route_id: str) -> Route:
    route = store.find_by_id(Route, route_id)
    if route is None:
        raise NotFound("Route not found")
    return route


def list_routes(store: EntityStore, status: str | None = None, page: int = 1, limit: int = 10) -> Page:
    criteria = [Route.status == status] if status else []
    return store.find_page(Route, *criteria, order_by=Route.route_number, page=page, limit=limit)
