"""Staff directory.  Unlike Contact, StaffContact.email is unique across all rows."""

import logging
from typing import Any

from sqlalchemy import or_

from db.models import StaffContact
from db.store import EntityStore, UniqueViolation
from errors import DuplicateStaffEmail, NotFound, reject_nulls

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("name", "email", "phone", "department", "shift", "status")


def _ensure_unique_email(store: EntityStore, email: str, exclude_id: str | None = None) -> None:
    criteria = [StaffContact.email == email]
    if exclude_id:
        criteria.append(StaffContact.id != exclude_id)
    if store.find_one(StaffContact, *criteria) is not None:
        logger.warning("Rejected duplicate staff email %s.", email)
        raise DuplicateStaffEmail()


def create_staff_contact(store: EntityStore, data: dict[str, Any]) -> StaffContact:
    values = dict(data)
    values["email"] = values["email"].strip().lower()
    _ensure_unique_email(store, values["email"])
    if not values.get("hire_date"):
        values.pop("hire_date", None)
    try:
        staff = store.create(StaffContact, **values)
    except UniqueViolation:
        raise DuplicateStaffEmail() from None
    logger.info("Staff contact %s created in %s.", staff.id, staff.department)
    return staff


def update_staff_contact(store: EntityStore, staff_id: str, changes: dict[str, Any]) -> StaffContact:
    if store.find_by_id(StaffContact, staff_id) is None:
        raise NotFound("Staff contact not found")
    values = dict(changes)
    reject_nulls(values, _REQUIRED_FIELDS)
    if values.get("email"):
        values["email"] = values["email"].strip().lower()
        _ensure_unique_email(store, values["email"], exclude_id=staff_id)
    try:
        staff = store.update_by_id(StaffContact, staff_id, values)
    except UniqueViolation:
        raise DuplicateStaffEmail() from None
    if staff is None:
        raise NotFound("Staff contact not found")
    return staff


def get_staff_contact(store: EntityStore, staff_id: str) -> StaffContact:
    staff = store.find_by_id(StaffContact, staff_id)
    if staff is None:
        raise NotFound("Staff contact not found")
    return staff


def delete_staff_contact(store: EntityStore, staff_id: str) -> StaffContact:
    staff = store.delete_by_id(StaffContact, staff_id)
    if staff is None:
        raise NotFound("Staff contact not found")
    logger.info("Staff contact %s deleted.", staff_id)
    return staff


def list_staff_contacts(
    store: EntityStore,
    department: str | None = None,
    status: str | None = None,
    search: str | None = None,
) -> list[StaffContact]:
    criteria = []
    if department:
        criteria.append(StaffContact.department.ilike(f"%{department}%"))
    if status:
        criteria.append(StaffContact.status == status)
    if search:
        pattern = f"%{search}%"
        criteria.append(or_(
            StaffContact.name.ilike(pattern),
            StaffContact.email.ilike(pattern),
            StaffContact.position.ilike(pattern),
        ))
    return store.find(StaffContact, *criteria, order_by=StaffContact.name)
