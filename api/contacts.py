"""
Staff-facing contact endpoints under /api/contacts.

GET /api/contacts/{id} is a plain read; the inquiry desk's
GET /api/support/inquiries/{id} is the one that marks contacts read.
"""

from fastapi import APIRouter, Depends, Query

from api.deps import CurrentUser, get_current_user, get_store
from api.schemas import (
    Category,
    CategoryContactsResponse,
    ContactCreate,
    ContactListResponse,
    ContactOut,
    ContactStatsResponse,
    ContactUpdate,
    ContactUpdatedResponse,
    MessageResponse,
    UrgentContactsResponse,
)
from contacts.lifecycle import (
    contact_statistics,
    contacts_by_category,
    create_contact,
    delete_contact,
    get_contact,
    list_contacts,
    update_contact,
    urgent_contacts,
)
from db.store import EntityStore

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


@router.get("", response_model=ContactListResponse)
def list_all_contacts(
    department: str | None = Query(None),
    status: str | None = Query(None),
    search: str | None = Query(None),
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ContactListResponse:
    contacts = list_contacts(store, department=department, status=status, search=search)
    return ContactListResponse(contacts=[ContactOut.from_record(c) for c in contacts], total=len(contacts))


@router.get("/category/{category}", response_model=CategoryContactsResponse)
def list_category(
    category: Category,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> CategoryContactsResponse:
    contacts = contacts_by_category(store, category)
    return CategoryContactsResponse(
        category=category,
        contacts=[ContactOut.from_record(c) for c in contacts],
        total=len(contacts),
    )


@router.get("/urgent/all", response_model=UrgentContactsResponse)
def list_urgent(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> UrgentContactsResponse:
    contacts = urgent_contacts(store)
    return UrgentContactsResponse(
        urgent_contacts=[ContactOut.from_record(c) for c in contacts],
        total=len(contacts),
    )


@router.get("/stats/summary", response_model=ContactStatsResponse)
def contact_stats(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ContactStatsResponse:
    stats = contact_statistics(store)
    by_status = stats["by_status"]
    return ContactStatsResponse(
        total_contacts=stats["total"],
        status_breakdown={
            "new": by_status["new"],
            "in_progress": by_status["in-progress"],
            "resolved": by_status["resolved"],
            "closed": by_status["closed"],
        },
        category_breakdown=[{"category": k, "count": v} for k, v in stats["by_category"].items()],
        priority_breakdown=[{"priority": k, "count": v} for k, v in stats["by_priority"].items()],
    )


@router.get("/{contact_id}", response_model=ContactOut)
def read_contact_record(
    contact_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ContactOut:
    return ContactOut.from_record(get_contact(store, contact_id))


@router.post("", response_model=ContactOut, status_code=201)
def add_contact(
    payload: ContactCreate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ContactOut:
    return ContactOut.from_record(create_contact(store, payload.model_dump(), origin="staff"))


@router.put("/{contact_id}", response_model=ContactUpdatedResponse)
def edit_contact(
    contact_id: str,
    payload: ContactUpdate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> ContactUpdatedResponse:
    contact = update_contact(store, contact_id, payload.model_dump(exclude_unset=True))
    return ContactUpdatedResponse(message="Contact updated successfully", contact=ContactOut.from_record(contact))


@router.delete("/{contact_id}", response_model=MessageResponse)
def remove_contact(
    contact_id: str,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> MessageResponse:
    delete_contact(store, contact_id)
    return MessageResponse(message="Contact deleted successfully")
