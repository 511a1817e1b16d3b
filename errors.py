"""
Error taxonomy shared by the core modules.

Core operations raise these; only api.main translates them into HTTP
responses.  Each class carries the status code it maps to:

  ValidationError         400  missing / malformed field (optional field errors)
  Duplicate*              400  uniqueness violation
  InvalidReference        400  identifier-shaped value with no matching record
  Unauthorized            401  missing / invalid credential
  NotFound                404  operation targets a nonexistent id
  InternalError           500  store or unexpected failure
"""

from typing import Any


class TransportError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TransportError):
    status_code = 400
    default_message = "Validation error"

    def __init__(self, message: str | None = None, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class DuplicateActiveContact(TransportError):
    status_code = 400
    default_message = "Active contact with this email already exists"


class DuplicateBusNumber(TransportError):
    status_code = 400
    default_message = "Bus number already exists"


class DuplicateRouteNumber(TransportError):
    status_code = 400
    default_message = "Route number already exists"


class DuplicateStaffEmail(TransportError):
    status_code = 400
    default_message = "Staff contact with this email already exists"


class InvalidReference(TransportError):
    status_code = 400
    default_message = "Invalid reference"


class NotFound(TransportError):
    status_code = 404
    default_message = "Not found"


class Unauthorized(TransportError):
    status_code = 401
    default_message = "Unauthorized"


class InternalError(TransportError):
    status_code = 500


def reject_nulls(changes: dict[str, Any], fields: tuple[str, ...]) -> None:
    """Raise ValidationError if an update tries to null out a required field."""
    errors = [
        {"field": name, "message": f"{name} cannot be empty"}
        for name in fields
        if name in changes and changes[name] is None
    ]
    if errors:
        raise ValidationError("Validation error", errors=errors)
