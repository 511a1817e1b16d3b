"""
Dashboard endpoints under /api/dashboard.

All of them are views over dashboard_stats(), which never raises: when
the store cannot be read the zero-filled structure is served instead.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from api.deps import CurrentUser, get_current_user, get_store
from api.schemas import (
    AlertListResponse,
    AlertStatusResponse,
    AlertStatusUpdate,
    DashboardComplete,
    DashboardStats,
    FleetStatus,
    Overview,
    PerformanceMetrics,
    RoutePerformanceResponse,
    WeeklyTrends,
)
from dashboard.aggregator import dashboard_stats, filter_alerts
from db.store import EntityStore

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
def stats(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> DashboardStats:
    return DashboardStats(**dashboard_stats(store))


@router.get("/overview", response_model=Overview)
def overview(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> Overview:
    return Overview(**dashboard_stats(store)["overview"])


@router.get("/fleet-status", response_model=FleetStatus)
def fleet_status(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> FleetStatus:
    return FleetStatus(**dashboard_stats(store)["fleet_status"])


@router.get("/alerts", response_model=AlertListResponse)
def alerts(
    limit: int = Query(10, ge=1, le=100),
    severity: str | None = Query(None),
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> AlertListResponse:
    selected = filter_alerts(dashboard_stats(store)["recent_alerts"], severity=severity, limit=limit)
    return AlertListResponse(alerts=selected, total=len(selected))


@router.patch("/alerts/{alert_id}", response_model=AlertStatusResponse)
async def update_alert(
    alert_id: int,
    payload: AlertStatusUpdate,
    _: CurrentUser = Depends(get_current_user),
) -> AlertStatusResponse:
    """Echo the requested status; alerts are derived per request and not stored."""
    return AlertStatusResponse(
        message=f"Alert {alert_id} marked as {payload.status}",
        alert_id=alert_id,
        status=payload.status,
        updated_at=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/performance", response_model=PerformanceMetrics)
def performance(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> PerformanceMetrics:
    return PerformanceMetrics(**dashboard_stats(store)["performance_metrics"])


@router.get("/routes/performance", response_model=RoutePerformanceResponse)
def route_performance(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> RoutePerformanceResponse:
    routes = dashboard_stats(store)["route_performance"]
    return RoutePerformanceResponse(routes=routes, total=len(routes))


@router.get("/trends/weekly", response_model=WeeklyTrends)
def weekly_trends(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> WeeklyTrends:
    return WeeklyTrends(**dashboard_stats(store)["weekly_trends"])


@router.get("/complete", response_model=DashboardComplete)
def complete(
    store: EntityStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
) -> DashboardComplete:
    return DashboardComplete(
        **dashboard_stats(store),
        timestamp=datetime.now(timezone.utc).isoformat(),
        user={"id": user.id, "role": user.role},
    )
