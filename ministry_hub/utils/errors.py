"""Standardised API error responses.

Usage
-----
    from ministry_hub.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Room not found")
    return api_error(E.VALIDATION_REQUIRED, "title is required")
    return api_error(E.GATED_STEP, "Complete the previous step", details={"step": "love"})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation (HTTP 400)
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Business rule (HTTP 422)
    BUSINESS_RULE = "ERR_BUSINESS_RULE"

    # Not-found (HTTP 404)
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate (HTTP 409)
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Permissions (HTTP 403)
    FORBIDDEN = "ERR_FORBIDDEN"

    # Server (HTTP 500)
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.BUSINESS_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.FORBIDDEN: 403,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for the UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, blocking step, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)``, drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(bp):
    """Attach the shared service-exception handlers to a blueprint."""
    import logging

    from flask import request

    from ministry_hub.core.exceptions import (
        ConflictError,
        NotFoundError,
        PermissionDenied,
        StateConflictError,
        ValidationError,
    )

    logger = logging.getLogger(bp.import_name)

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.BUSINESS_RULE, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(StateConflictError)
    def _handle_state_conflict(error: StateConflictError):
        return api_error(E.CONFLICT_STATE, str(error))

    @bp.errorhandler(PermissionDenied)
    def _handle_forbidden(error: PermissionDenied):
        return api_error(E.FORBIDDEN, str(error) or "Forbidden")

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        from werkzeug.exceptions import HTTPException

        if isinstance(error, HTTPException):
            return jsonify({"error": error.description or error.name}), error.code or 500
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")

    return bp
