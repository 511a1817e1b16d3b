"""
Contact / inquiry lifecycle.

One Contact table serves both customer inquiries (submitted through the
public inquiry form) and contacts entered by staff.  The rules:

  - At most one *active* contact (status != "closed") per email address.
    Checked on create and whenever an update supplies an email; the partial
    unique index uq_contacts_active_email catches anything that races past
    the check.
  - Staff-entered contacts get a default subject / message; customer
    inquiries must supply both.
  - The first read through read_contact() stamps is_read / read_at / read_by.
    Later reads leave them alone.
  - respond() keeps a single response (last write wins) and forces the
    status to "resolved", except that a closed contact whose email has
    since gained a newer active contact keeps the response and stays closed.
  - Closing is soft: a closed contact stays in the table and no longer
    blocks its email address.
"""

import logging
from typing import Any, Literal

from sqlalchemy import or_

from db.models import CONTACT_STATUSES, Contact, utcnow
from db.store import EntityStore, Page, UniqueViolation
from errors import DuplicateActiveContact, NotFound, ValidationError, reject_nulls

logger = logging.getLogger(__name__)

Origin = Literal["staff", "customer"]

_REQUIRED_FIELDS = (
    "name", "email", "subject", "message", "category", "priority", "status", "is_read", "tags",
)
URGENT_PRIORITIES = ("high", "urgent")


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _normalize_tags(tags: list[str] | None) -> list[str]:
    return [t.strip().lower() for t in tags or [] if t and t.strip()]


def _ensure_no_active_contact(store: EntityStore, email: str, exclude_id: str | None = None) -> None:
    criteria = [Contact.email == email, Contact.status != "closed"]
    if exclude_id:
        criteria.append(Contact.id != exclude_id)
    if store.find_one(Contact, *criteria) is not None:
        logger.warning("Rejected contact for %s: an active contact already exists.", email)
        raise DuplicateActiveContact()


def default_subject(values: dict[str, Any]) -> str:
    label = values.get("role") or values.get("position") or values.get("department") or "Staff"
    return f"{label} Contact"


def create_contact(store: EntityStore, data: dict[str, Any], origin: Origin = "staff") -> Contact:
    values = dict(data)
    values["email"] = _normalize_email(values["email"])

    if origin == "staff":
        values["subject"] = values.get("subject") or default_subject(values)
        values["message"] = values.get("message") or f"Contact information for {values['name']}"
    else:
        missing = [f for f in ("subject", "message") if not values.get(f)]
        if missing:
            raise ValidationError(
                "Subject and message are required",
                errors=[{"field": f, "message": f"{f} is required"} for f in missing],
            )

    _ensure_no_active_contact(store, values["email"])

    values["category"] = values.get("category") or "inquiry"
    values["priority"] = values.get("priority") or "medium"
    values["tags"] = _normalize_tags(values.get("tags"))
    values["status"] = "new"
    values["is_read"] = False

    try:
        contact = store.create(Contact, **values)
    except UniqueViolation:
        raise DuplicateActiveContact() from None
    logger.info("Contact %s created (%s, %s).", contact.id, origin, contact.category)
    return contact


def update_contact(store: EntityStore, contact_id: str, changes: dict[str, Any]) -> Contact:
    """Merge every supplied field into the contact.  There is no field allow-list."""
    if store.find_by_id(Contact, contact_id) is None:
        raise NotFound("Contact not found")
    values = dict(changes)
    reject_nulls(values, _REQUIRED_FIELDS)

    if values.get("email"):
        values["email"] = _normalize_email(values["email"])
        _ensure_no_active_contact(store, values["email"], exclude_id=contact_id)
    if "tags" in values:
        values["tags"] = _normalize_tags(values["tags"])

    try:
        contact = store.update_by_id(Contact, contact_id, values)
    except UniqueViolation:
        raise DuplicateActiveContact() from None
    if contact is None:
        raise NotFound("Contact not found")
    logger.info("Contact %s updated (%s).", contact_id, ", ".join(sorted(values)))
    return contact


def triage_inquiry(
    store: EntityStore,
    contact_id: str,
    status: str | None = None,
    priority: str | None = None,
    assigned_to: str | None = None,
    tags: list[str] | None = None,
) -> Contact:
    """Inquiry-desk update: only the non-empty arguments are applied."""
    values: dict[str, Any] = {}
    if status:
        values["status"] = status
    if priority:
        values["priority"] = priority
    if assigned_to:
        values["assigned_to"] = assigned_to
    if tags:
        values["tags"] = _normalize_tags(tags)

    try:
        contact = store.update_by_id(Contact, contact_id, values)
    except UniqueViolation:
        raise DuplicateActiveContact() from None
    if contact is None:
        raise NotFound("Inquiry not found")
    return contact


def get_contact(store: EntityStore, contact_id: str) -> Contact:
    contact = store.find_by_id(Contact, contact_id)
    if contact is None:
        raise NotFound("Contact not found")
    return contact


def read_contact(store: EntityStore, contact_id: str, reader_id: str) -> Contact:
    """Fetch a contact, marking it read on the first call only."""
    contact = get_contact(store, contact_id)
    if not contact.is_read:
        contact.is_read = True
        contact.read_at = utcnow()
        contact.read_by = reader_id
        store.save(contact)
        logger.info("Contact %s marked read by %s.", contact_id, reader_id)
    return contact


def _email_taken_elsewhere(store: EntityStore, contact: Contact) -> bool:
    return store.find_one(
        Contact, Contact.email == contact.email, Contact.status != "closed", Contact.id != contact.id,
    ) is not None


def respond(store: EntityStore, contact_id: str, message: str, responder_id: str) -> Contact:
    contact = get_contact(store, contact_id)
    if contact.response_message:
        logger.info("Overwriting earlier response on contact %s.", contact_id)
    contact.response_message = message.strip()
    contact.responded_by = responder_id
    contact.responded_at = utcnow()
    if contact.status == "closed" and _email_taken_elsewhere(store, contact):
        # Reopening would give the email two active contacts.
        logger.info("Contact %s stays closed: %s has a newer active contact.", contact_id, contact.email)
    else:
        contact.status = "resolved"
    try:
        store.save(contact)
    except UniqueViolation:
        raise DuplicateActiveContact() from None
    logger.info("Response recorded on contact %s by %s.", contact_id, responder_id)
    return contact


def delete_contact(store: EntityStore, contact_id: str) -> Contact:
    contact = store.delete_by_id(Contact, contact_id)
    if contact is None:
        raise NotFound("Contact not found")
    logger.info("Contact %s deleted.", contact_id)
    return contact


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def list_contacts(
    store: EntityStore,
    department: str | None = None,
    status: str | None = None,
    search: str | None = None,
) -> list[Contact]:
    criteria = []
    if department:
        criteria.append(Contact.department.ilike(f"%{department}%"))
    if status:
        criteria.append(Contact.status == status)
    if search:
        pattern = f"%{search}%"
        criteria.append(or_(
            Contact.name.ilike(pattern),
            Contact.email.ilike(pattern),
            Contact.position.ilike(pattern),
        ))
    return store.find(Contact, *criteria, order_by=Contact.created_at.desc())


def list_inquiries(
    store: EntityStore,
    status: str | None = None,
    category: str | None = None,
    priority: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    criteria = []
    if status:
        criteria.append(Contact.status == status)
    if category:
        criteria.append(Contact.category == category)
    if priority:
        criteria.append(Contact.priority == priority)
    return store.find_page(Contact, *criteria, order_by=Contact.created_at.desc(), page=page, limit=limit)


def contacts_by_category(store: EntityStore, category: str) -> list[Contact]:
    return store.find(Contact, Contact.category == category, order_by=Contact.created_at.desc())


def urgent_contacts(store: EntityStore) -> list[Contact]:
    return store.find(
        Contact,
        Contact.priority.in_(URGENT_PRIORITIES),
        Contact.status != "closed",
        order_by=Contact.created_at.desc(),
    )


def contact_statistics(store: EntityStore) -> dict[str, Any]:
    """Counts by status (every status present, zero-filled) and by category / priority."""
    return {
        "total": store.count(Contact),
        "by_status": {s: store.count(Contact, Contact.status == s) for s in CONTACT_STATUSES},
        "by_category": store.aggregate_group_count(Contact, "category"),
        "by_priority": store.aggregate_group_count(Contact, "priority"),
    }
