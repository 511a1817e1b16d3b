"""
Fleet endpoints.

  GET    /api/fleet                 list buses (status, route, page, limit)
  GET    /api/fleet/stats/summary   fleet totals and utilisation
  GET    /api/fleet/{id}            bus detail, with driver / route summaries
  POST   /api/fleet                 create a bus
  PUT    /api/fleet/{id}            partial update
  DELETE /api/fleet/{id}            delete (no cascade)
"""

from fastapi import APIRouter, Depends, Query

from api.deps import CurrentUser, Pagination, get_current_user, get_store, pagination
from api.schemas import (
    BusCreate,
    BusCreatedResponse,
    BusListResponse,
    BusOut,
    BusUpdate,
    DeleteResponse,
    FleetSummary,
)
from db.models import Route, User
from db.store import EntityStore
from fleet.buses import create_bus, delete_bus, fleet_summary, get_bus, list_buses, update_bus
from fleet.references import describe

router = APIRouter(prefix="/api/fleet", tags=["fleet"])

_DRIVER_FIELDS = ("username", "full_name", "email")
_ROUTE_FIELDS = ("route_number", "name", "start_location", "end_location")


def _bus_detail(store: EntityStore, bus) -> BusOut:
    return BusOut.from_record(
        bus,
        driver_details=describe(store, User, bus.driver, _DRIVER_FIELDS),
        route_details=describe(store, Route, bus.route, _ROUTE_FIELDS),
    )


@router.get("", response_model=BusListResponse)
def list_fleet(
    status: str | None = Query(None),
    route: str | None = Query(None, description="Route id or route label"),
    paging: Pagination = Depends(pagination),
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> BusListResponse:
    result = list_buses(store, status=status, route=route, page=paging.page, limit=paging.limit)
    return BusListResponse(
        buses=[BusOut.from_record(b) for b in result.items],
        total=result.total,
        page=result.page,
        pages=result.pages,
    )


@router.get("/stats/summary", response_model=FleetSummary)
def fleet_stats(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> FleetSummary:
    return FleetSummary(**fleet_summary(store))


@router.get("/{bus_id}", response_model=BusOut)
def read_bus(
    bus_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> BusOut:
    return _bus_detail(store, get_bus(store, bus_id))


@router.post("", response_model=BusCreatedResponse, status_code=201)
def add_bus(
    payload: BusCreate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> BusCreatedResponse:
    bus = create_bus(store, payload.model_dump())
    return BusCreatedResponse(message="Bus created successfully", bus=_bus_detail(store, bus))


@router.put("/{bus_id}", response_model=BusOut)
def edit_bus(
    bus_id: str,
    payload: BusUpdate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> BusOut:
    # exclude_unset keeps "field omitted" distinct from "field sent empty".
    bus = update_bus(store, bus_id, payload.model_dump(exclude_unset=True))
    return _bus_detail(store, bus)


@router.delete("/{bus_id}", response_model=DeleteResponse)
def remove_bus(
    bus_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> DeleteResponse:
    bus = delete_bus(store, bus_id)
    return DeleteResponse(
        message="Bus deleted successfully",
        deleted={"id": bus.id, "label": bus.bus_number},
    )
