"""
Customer inquiry desk under /api/support.

POST /inquiry is public.  Everything else needs a token; reading an
inquiry by id marks it read for the caller the first time.
"""

from fastapi import APIRouter, Depends, Query

from api.deps import CurrentUser, get_current_user, get_store
from api.schemas import (
    ContactOut,
    InquiryCreate,
    InquiryListResponse,
    InquiryStatsResponse,
    InquirySubmittedResponse,
    InquiryUpdate,
    InquiryUpdatedResponse,
    RespondRequest,
)
from config import MAX_PAGE_SIZE
from contacts.lifecycle import (
    contact_statistics,
    create_contact,
    list_inquiries,
    read_contact,
    respond,
    triage_inquiry,
)
from db.store import EntityStore

router = APIRouter(prefix="/api/support", tags=["support"])


@router.post("/inquiry", response_model=InquirySubmittedResponse, status_code=201)
def submit_inquiry(
    payload: InquiryCreate,
    store: EntityStore = Depends(get_store),
) -> InquirySubmittedResponse:
    inquiry = create_contact(store, payload.model_dump(), origin="customer")
    return InquirySubmittedResponse(
        message="Your inquiry has been submitted successfully. We will get back to you soon.",
        inquiry_id=inquiry.id,
    )


@router.get("/inquiries", response_model=InquiryListResponse)
def list_all_inquiries(
    status: str | None = Query(None),
    category: str | None = Query(None),
    priority: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> InquiryListResponse:
    result = list_inquiries(store, status=status, category=category, priority=priority, page=page, limit=limit)
    return InquiryListResponse(
        inquiries=[ContactOut.from_record(c) for c in result.items],
        total=result.total,
        page=result.page,
        pages=result.pages,
    )


@router.get("/inquiries/{inquiry_id}", response_model=ContactOut)
def read_inquiry(
    inquiry_id: str,
    store: EntityStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
) -> ContactOut:
    return ContactOut.from_record(read_contact(store, inquiry_id, reader_id=user.id))


@router.put("/inquiries/{inquiry_id}", response_model=InquiryUpdatedResponse)
def update_inquiry(
    inquiry_id: str,
    payload: InquiryUpdate,
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> InquiryUpdatedResponse:
    inquiry = triage_inquiry(
        store,
        inquiry_id,
        status=payload.status,
        priority=payload.priority,
        assigned_to=payload.assigned_to,
        tags=payload.tags,
    )
    return InquiryUpdatedResponse(message="Inquiry updated successfully", inquiry=ContactOut.from_record(inquiry))


@router.post("/inquiries/{inquiry_id}/respond", response_model=InquiryUpdatedResponse)
def respond_to_inquiry(
    inquiry_id: str,
    payload: RespondRequest,
    store: EntityStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
) -> InquiryUpdatedResponse:
    inquiry = respond(store, inquiry_id, payload.message, responder_id=user.id)
    return InquiryUpdatedResponse(message="Response sent successfully", inquiry=ContactOut.from_record(inquiry))


@router.get("/stats/inquiries", response_model=InquiryStatsResponse)
def inquiry_stats(
    store: EntityStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
) -> InquiryStatsResponse:
    stats = contact_statistics(store)
    by_status = stats["by_status"]
    return InquiryStatsResponse(
        total_inquiries=stats["total"],
        new_inquiries=by_status["new"],
        in_progress_inquiries=by_status["in-progress"],
        resolved_inquiries=by_status["resolved"],
        inquiries_by_category=stats["by_category"],
        inquiries_by_priority=stats["by_priority"],
    )
