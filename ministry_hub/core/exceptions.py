"""
Platform-wide exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes everywhere.

Usage:
    from ministry_hub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="TrainingModule", resource_id=42)
    raise ValidationError("Complete the previous step first", details={"step": "love"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable model/entity name (e.g. "Member", "Room").
        resource_id: The PK that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint): the data
    was well-formed but violated a rule, e.g. a gated discipleship step, a
    backward status move, or a reservation whose end is not after its start.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class StateConflictError(Exception):
    """Raised when a record is not in a state that allows the requested action.

    Maps to HTTP 409 (e.g. approving training that was never submitted).
    """

    def __init__(self, resource: str, current: str, action: str) -> None:
        self.resource = resource
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} {resource} in status '{current}'")


class PermissionDenied(Exception):
    """Raised when the acting member lacks the role for an action. Maps to HTTP 403."""
