"""
Rooms blueprint.

Endpoints:
    GET/POST /api/v1/rooms
    GET      /api/v1/rooms/reservations?start=&room_id=
    POST     /api/v1/rooms/reservations
    GET      /api/v1/rooms/reservations/conflicts?start=&room_id=

Overlapping reservations are created and reported, never refused.
"""

import logging

from flask import Blueprint, jsonify, request

from ministry_hub.blueprints import json_body
from ministry_hub.models import db
from ministry_hub.services import room_service
from ministry_hub.utils.errors import E, api_error, register_error_handlers
from ministry_hub.utils.helpers import db_commit_or_error, parse_datetime

logger = logging.getLogger(__name__)

room_bp = Blueprint("room", __name__, url_prefix="/api/v1/rooms")
register_error_handlers(room_bp)


def _window_args():
    """Return (start, room_id, error_response) from the query string."""
    try:
        start = parse_datetime(request.args.get("start"))
    except ValueError as exc:
        return None, None, api_error(E.VALIDATION_INVALID, str(exc), details={"start": "invalid"})
    return start, request.args.get("room_id", type=int), None


@room_bp.route("", methods=["GET"])
def list_rooms():
    include_inactive = request.args.get("include_inactive", "").lower() in ("true", "1", "yes")
    rooms = room_service.list_rooms(include_inactive=include_inactive)
    return jsonify({"items": [r.to_dict() for r in rooms], "total": len(rooms)}), 200


@room_bp.route("", methods=["POST"])
def create_room():
    """Body: { "name": str, "capacity"?: int >= 1, "location"?, "description"?,
               "amenities"?: list | "a, b" }"""
    data = json_body()
    if not str(data.get("name") or "").strip():
        return api_error(E.VALIDATION_REQUIRED, "name is required", details={"name": "required"})
    capacity = data.get("capacity")
    if capacity is not None and (
        isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1
    ):
        return api_error(E.VALIDATION_INVALID, "capacity must be a positive integer",
                         details={"capacity": "invalid"})
    amenities = data.get("amenities")
    if amenities is not None and not isinstance(amenities, (list, str)):
        return api_error(E.VALIDATION_INVALID, "amenities must be a list or a comma-separated string",
                         details={"amenities": "invalid"})

    room = room_service.build_room(data)
    db.session.add(room)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Room created", extra={"room_id": room.id})
    return jsonify(room.to_dict()), 201


@room_bp.route("/reservations", methods=["GET"])
def list_reservations():
    """Upcoming reservations with their conflicts.

    Query params: start? (ISO, default now), room_id?
    Returns: { "items": [...], "total": int, "conflict_count": int }
    """
    start, room_id, err = _window_args()
    if err:
        return err
    return jsonify(room_service.reservations_with_conflicts(start, room_id)), 200


@room_bp.route("/reservations/conflicts", methods=["GET"])
def list_conflicts():
    start, room_id, err = _window_args()
    if err:
        return err
    return jsonify(room_service.conflict_map(start, room_id)), 200


@room_bp.route("/reservations", methods=["POST"])
def create_reservation():
    """Book a room.

    Body: { "room_id": int, "title": str, "start_time": ISO, "end_time": ISO,
            "attendee_count"?: int, "requested_by_id"?: int, "status"? }
    Returns: Reservation dict with "conflicts" (201). end <= start → 422,
    unknown room or requester → 404.
    """
    data = json_body()
    missing = [
        f for f in ("room_id", "title", "start_time", "end_time")
        if data.get(f) in (None, "") or (f == "title" and not str(data[f]).strip())
    ]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED, f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )
    if not isinstance(data["title"], str):
        return api_error(E.VALIDATION_INVALID, "title must be a string",
                         details={"title": "invalid"})
    for name in ("room_id", "attendee_count", "requested_by_id"):
        value = data.get(name)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            return api_error(E.VALIDATION_INVALID, f"{name} must be an integer",
                             details={name: "invalid"})
    if data.get("attendee_count") is not None and data["attendee_count"] < 0:
        return api_error(E.VALIDATION_INVALID, "attendee_count cannot be negative",
                         details={"attendee_count": "out of range"})

    parsed = dict(data)
    errors = {}
    for field in ("start_time", "end_time"):
        try:
            parsed[field] = parse_datetime(data[field])
        except ValueError:
            errors[field] = "invalid ISO-8601 timestamp"
            continue
        if parsed[field] is None:
            errors[field] = "required"
    if errors:
        return api_error(E.VALIDATION_INVALID, "Invalid timestamp", details=errors)

    result = room_service.create_reservation(parsed)
    return jsonify(result), 201
