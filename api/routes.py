"""Route-definition endpoints under /api/routes."""

from fastapi import APIRouter, Depends, Query

from api.deps import CurrentUser, Pagination, get_current_user, get_store, pagination
from api.schemas import DeleteResponse, RouteCreate, RouteListResponse, RouteOut, RouteUpdate
from db.store import EntityStore
from fleet.routes import create_route, delete_route, get_route, list_routes, update_route

router = APIRouter(prefix="/api/routes", tags=["routes"])


@router.get("", response_model=RouteListResponse)
def list_all_routes(
    status: str | None = Query(None),
    paging: Pagination = Depends(pagination),
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> RouteListResponse:
    result = list_routes(store, status=status, page=paging.page, limit=paging.limit)
    return RouteListResponse(
        routes=[RouteOut.from_record(r) for r in result.items],
        total=result.total,
        page=result.page,
        pages=result.pages,
    )


@router.get("/{route_id}", response_model=RouteOut)
def read_route(
    route_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> RouteOut:
    return RouteOut.from_record(get_route(store, route_id))


@router.post("", response_model=RouteOut, status_code=201)
def add_route(
    payload: RouteCreate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> RouteOut:
    return RouteOut.from_record(create_route(store, payload.model_dump()))


@router.put("/{route_id}", response_model=RouteOut)
def edit_route(
    route_id: str,
    payload: RouteUpdate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> RouteOut:
    return RouteOut.from_record(update_route(store, route_id, payload.model_dump(exclude_unset=True)))


@router.delete("/{route_id}", response_model=DeleteResponse)
def remove_route(
    route_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> DeleteResponse:
    route = delete_route(store, route_id)
    return DeleteResponse(
        message="Route deleted successfully",
        deleted={"id": route.id, "label": route.route_number},
    )
