"""
Identifier-or-label reference fields.

Bus.driver, Bus.route, Schedule.route and Schedule.bus accept either a
store id (24 hex characters) or a free-text display name.  classify() is the
only place that decides which one a string is:

  "65f1c0a2b3d4e5f6a7b8c9d0"  → Reference: must exist in the store
  "John Smith"                → Label: accepted as-is, never looked up

Labels are deliberately unchecked: a bus may name a route that does not
exist as long as the text does not look like an id.

Updates to these fields are three-way.  field_update() reads the fields a
caller actually sent and tells apart:

  field omitted             → Unset: leave the column alone
  field sent as "" or null  → Clear: set the column to NULL
  field sent with a value   → Set: resolve, then store
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from db.store import EntityStore
from errors import InvalidReference

logger = logging.getLogger(__name__)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


@dataclass(frozen=True)
class Reference:
    id: str


@dataclass(frozen=True)
class Label:
    text: str


Target = Reference | Label


@dataclass(frozen=True)
class Unset:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Set:
    value: Any


FieldUpdate = Unset | Clear | Set


def is_identifier(value: str) -> bool:
    return bool(OBJECT_ID_PATTERN.match(value))


def classify(value: str) -> Target:
    if is_identifier(value):
        return Reference(value.lower())
    return Label(value)


def resolve(store: EntityStore, model, value: str, field: str) -> Target:
    """Classify `value`; identifier candidates must name an existing `model` row."""
    target = classify(value)
    if isinstance(target, Reference) and store.find_by_id(model, target.id) is None:
        logger.warning("Rejected %s reference %s: no matching %s.", field, target.id, model.__name__)
        raise InvalidReference(f"Invalid {field} ID")
    return target


def stored_value(target: Target) -> str:
    return target.id if isinstance(target, Reference) else target.text


def resolve_value(store: EntityStore, model, value: str | None, field: str) -> str | None:
    """Create-path helper: empty values store NULL, anything else is resolved."""
    if not value:
        return None
    return stored_value(resolve(store, model, value, field))


def field_update(changes: Mapping[str, Any], name: str) -> FieldUpdate:
    """`changes` holds only the fields the caller sent (model_dump(exclude_unset=True))."""
    if name not in changes:
        return Unset()
    value = changes[name]
    if value is None or value == "":
        return Clear()
    return Set(value)


def apply_reference_update(
    store: EntityStore,
    model,
    update: FieldUpdate,
    column: str,
    values: dict[str, Any],
    field: str | None = None,
) -> None:
    """Write the outcome of a three-way update into `values` (Unset writes nothing)."""
    if isinstance(update, Set):
        values[column] = stored_value(resolve(store, model, update.value, field or column))
    elif isinstance(update, Clear):
        values[column] = None


def describe(store: EntityStore, model, value: str | None, fields: tuple[str, ...]) -> dict | None:
    """Summary of the referenced record for detail reads; None for labels and dangling ids."""
    if not value or not isinstance(classify(value), Reference):
        return None
    record = store.find_by_id(model, value.lower())
    if record is None:
        return None
    return {"id": record.id, **{f: getattr(record, f) for f in fields}}
