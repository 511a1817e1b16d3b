"""
Dashboard statistics.

Read-only: counts come straight from the store on every call.  Metrics the
system has no data for yet (revenue, passengers, on-time performance, trends)
are always reported as zeros so the dashboard layout never changes shape.

The dashboard is informational, so a store failure does not surface as an
error: it is logged and the all-zero structure from empty_stats() is
returned instead.
"""

import logging
from typing import Any

from config import DASHBOARD_CURRENCY
from db.models import Bus, Contact, Route, Schedule
from db.store import EntityStore
from fleet.buses import utilization_rate

logger = logging.getLogger(__name__)

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _zeros() -> list[int]:
    return [0] * len(WEEKDAY_LABELS)


def _build_stats(
    total_fleet: int = 0,
    active: int = 0,
    maintenance: int = 0,
    out_of_service: int = 0,
    total_routes: int = 0,
    total_schedules: int = 0,
    total_contacts: int = 0,
) -> dict[str, Any]:
    return {
        "overview": {
            "total_fleet": total_fleet,
            "active_vehicles": active,
            "total_routes": total_routes,
            "total_schedules": total_schedules,
            "total_contacts": total_contacts,
            "daily_passengers": 0,
            "revenue": {"today": 0, "this_month": 0, "currency": DASHBOARD_CURRENCY},
            "efficiency": utilization_rate(active, total_fleet),
        },
        "fleet_status": {
            "active": active,
            "maintenance": maintenance,
            "out_of_service": out_of_service,
            "idle": max(0, total_fleet - active - maintenance - out_of_service),
        },
        "recent_alerts": [],
        "performance_metrics": {
            "on_time_performance": 0,
            "customer_satisfaction": 0,
            "fuel_efficiency": 0,
            "average_speed": 0,
            "maintenance_costs": {"this_month": 0, "last_month": 0, "trend": "stable"},
        },
        "route_performance": [],
        "weekly_trends": {
            "passengers": _zeros(),
            "revenue": _zeros(),
            "efficiency": _zeros(),
            "labels": list(WEEKDAY_LABELS),
        },
    }


def empty_stats() -> dict[str, Any]:
    """The zero-filled dashboard returned when there is nothing (or nothing readable) to count."""
    return _build_stats()


def dashboard_stats(store: EntityStore) -> dict[str, Any]:
    try:
        return _build_stats(
            total_fleet=store.count(Bus),
            active=store.count(Bus, Bus.status == "active"),
            maintenance=store.count(Bus, Bus.status == "maintenance"),
            out_of_service=store.count(Bus, Bus.status == "out-of-service"),
            total_routes=store.count(Route),
            total_schedules=store.count(Schedule),
            total_contacts=store.count(Contact),
        )
    except Exception as exc:
        logger.error("Dashboard statistics unavailable, serving zeros: %s", exc, exc_info=True)
        return empty_stats()


def filter_alerts(alerts: list[dict[str, Any]], severity: str | None = None, limit: int = 10) -> list[dict[str, Any]]:
    if severity:
        alerts = [a for a in alerts if a.get("severity") == severity]
    return alerts[:limit]
