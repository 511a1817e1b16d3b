"""Schedule endpoints under /api/schedules."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from api.deps import CurrentUser, Pagination, get_current_user, get_store, pagination
from api.schemas import (
    DelayIn,
    DeleteResponse,
    ScheduleCreate,
    ScheduleListResponse,
    ScheduleOut,
    ScheduleUpdate,
    naive_utc,
)
from db.store import EntityStore
from fleet.schedules import (
    add_delay,
    create_schedule,
    delete_schedule,
    get_schedule,
    list_schedules,
    update_schedule,
)

router = APIRouter(prefix="/api/schedules", tags=["schedules"])


@router.get("", response_model=ScheduleListResponse)
def list_all_schedules(
    status: str | None = Query(None),
    route: str | None = Query(None),
    bus: str | None = Query(None),
    departs_after: datetime | None = Query(None),
    departs_before: datetime | None = Query(None),
    paging: Pagination = Depends(pagination),
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ScheduleListResponse:
    result = list_schedules(
        store,
        status=status,
        route=route,
        bus=bus,
        departs_after=naive_utc(departs_after),
        departs_before=naive_utc(departs_before),
        page=paging.page,
        limit=paging.limit,
    )
    return ScheduleListResponse(
        schedules=[ScheduleOut.from_record(s) for s in result.items],
        total=result.total,
        page=result.page,
        pages=result.pages,
    )


@router.get("/{schedule_id}", response_model=ScheduleOut)
def read_schedule(
    schedule_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ScheduleOut:
    return ScheduleOut.from_record(get_schedule(store, schedule_id))


@router.post("", response_model=ScheduleOut, status_code=201)
def add_schedule(
    payload: ScheduleCreate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ScheduleOut:
    return ScheduleOut.from_record(create_schedule(store, payload.model_dump()))


@router.put("/{schedule_id}", response_model=ScheduleOut)
def edit_schedule(
    schedule_id: str,
    payload: ScheduleUpdate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ScheduleOut:
    schedule = update_schedule(store, schedule_id, payload.model_dump(exclude_unset=True))
    return ScheduleOut.from_record(schedule)


@router.post("/{schedule_id}/delays", response_model=ScheduleOut)
def record_delay(
    schedule_id: str,
    payload: DelayIn,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ScheduleOut:
    return ScheduleOut.from_record(add_delay(store, schedule_id, payload.reason, payload.duration))


@router.delete("/{schedule_id}", response_model=DeleteResponse)
def remove_schedule(
    schedule_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> DeleteResponse:
    schedule = delete_schedule(store, schedule_id)
    return DeleteResponse(message="Schedule deleted successfully", deleted={"id": schedule.id})
