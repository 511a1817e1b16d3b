"""Staff directory endpoints under /api/staff."""

from fastapi import APIRouter, Depends, Query

from api.deps import CurrentUser, get_current_user, get_store
from api.schemas import (
    DeleteResponse,
    StaffContactCreate,
    StaffContactListResponse,
    StaffContactOut,
    StaffContactUpdate,
)
from contacts.staff import (
    create_staff_contact,
    delete_staff_contact,
    get_staff_contact,
    list_staff_contacts,
    update_staff_contact,
)
from db.store import EntityStore

router = APIRouter(prefix="/api/staff", tags=["staff"])


@router.get("", response_model=StaffContactListResponse)
def list_staff(
    department: str | None = Query(None),
    status: str | None = Query(None),
    search: str | None = Query(None),
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> StaffContactListResponse:
    staff = list_staff_contacts(store, department=department, status=status, search=search)
    return StaffContactListResponse(
        staff=[StaffContactOut.model_validate(s) for s in staff],
        total=len(staff),
    )


@router.get("/{staff_id}", response_model=StaffContactOut)
def read_staff(
    staff_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> StaffContactOut:
    return StaffContactOut.model_validate(get_staff_contact(store, staff_id))


@router.post("", response_model=StaffContactOut, status_code=201)
def add_staff(
    payload: StaffContactCreate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> StaffContactOut:
    return StaffContactOut.model_validate(create_staff_contact(store, payload.model_dump()))


@router.put("/{staff_id}", response_model=StaffContactOut)
def edit_staff(
    staff_id: str,
    payload: StaffContactUpdate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> StaffContactOut:
    staff = update_staff_contact(store, staff_id, payload.model_dump(exclude_unset=True))
    return StaffContactOut.model_validate(staff)


@router.delete("/{staff_id}", response_model=DeleteResponse)
def remove_staff(
    staff_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> DeleteResponse:
    staff = delete_staff_contact(store, staff_id)
    return DeleteResponse(
        message="Staff contact deleted successfully",
        deleted={"id": staff.id, "label": staff.name},
    )
