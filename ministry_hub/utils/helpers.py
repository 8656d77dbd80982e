"""Shared utility functions for blueprints and services.

get_or_404:          tuple-return lookup (no abort)
parse_datetime:      ISO timestamp → naive UTC datetime (raises ValueError)
db_commit_or_error:  commit with uniform rollback + error mapping
"""
import logging
from datetime import datetime, timezone

from flask import jsonify

from ministry_hub.models import db

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (jsonify_response, 404))

    Usage:
        obj, err = get_or_404(Room, room_id)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if not obj:
        return None, (jsonify({"error": f"{label} not found", "code": "ERR_NOT_FOUND"}), 404)
    return obj, None


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value):
    """Parse an ISO-8601 timestamp to a naive UTC datetime.

    Accepts ``datetime`` objects, ``YYYY-MM-DDTHH:MM[:SS][.ffffff]`` with or
    without an offset, and a trailing ``Z``.  Aware values are converted to
    UTC before the tzinfo is dropped so comparisons against stored columns
    are consistent.

    Returns None for empty input; raises ValueError on unparsable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(
                f"Invalid timestamp {value!r}. Use ISO-8601, e.g. 2026-03-01T09:00:00Z."
            ) from exc
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure, ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other → 500 (unexpected)
    """
    from sqlalchemy.exc import IntegrityError, OperationalError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return jsonify({"error": "Duplicate or constraint violation", "code": "ERR_CONFLICT_DUPLICATE"}), 409
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return jsonify({"error": "Database error", "code": "ERR_DATABASE"}), 500
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return jsonify({"error": "Database error", "code": "ERR_DATABASE"}), 500
