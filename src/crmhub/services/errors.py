"""Service error taxonomy.

Each error carries a message category so the API layer (or any other
presentation layer) can pick the right feedback without inspecting
messages.
"""

from typing import Any


class CRMServiceError(Exception):
    """Base exception for service errors."""

    category = "error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ForbiddenError(CRMServiceError):
    """Access policy denied the action."""

    category = "permission"


class NotFoundError(CRMServiceError):
    """Referenced entity does not exist."""

    category = "lookup"

    def __init__(self, resource: str, resource_id: str | None = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} '{resource_id}' not found"
        super().__init__(message, {"resource": resource, "id": resource_id})


class AlreadyExistsError(CRMServiceError):
    """Uniqueness violation on a join or association."""

    category = "duplicate"


class InvalidInputError(CRMServiceError):
    """Malformed rating, empty required text or missing identifier."""

    category = "validation"


class ConflictError(CRMServiceError):
    """State-machine violation, e.g. responding to a settled invitation."""

    category = "conflict"


class UnavailableError(CRMServiceError):
    """Store or upstream network failure."""

    category = "transient"


__all__ = [
    "CRMServiceError",
    "ForbiddenError",
    "NotFoundError",
    "AlreadyExistsError",
    "InvalidInputError",
    "ConflictError",
    "UnavailableError",
]
