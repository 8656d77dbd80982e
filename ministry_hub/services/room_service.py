"""
Room booking service.

Reservations are never blocked by an overlap; the conflict detector runs
over a bounded window and its findings travel with the response so a
leader can resolve them.
"""

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import select

from ministry_hub.core.exceptions import NotFoundError, ValidationError
from ministry_hub.models import db
from ministry_hub.models.room import RESERVATION_STATUSES, Room, RoomReservation
from ministry_hub.services.conflict_detection import check_conflict, get_conflicting_reservations
from ministry_hub.services.member_service import get_member
from ministry_hub.utils.helpers import utcnow

logger = logging.getLogger(__name__)


def _window_limit() -> int:
    return int(current_app.config.get("RESERVATION_WINDOW_LIMIT", 200))


def list_rooms(include_inactive: bool = False) -> list[Room]:
    stmt = select(Room).order_by(Room.name)
    if not include_inactive:
        stmt = stmt.where(Room.is_active.is_(True))
    return list(db.session.execute(stmt).scalars())


def get_room(room_id: int) -> Room:
    room = db.session.get(Room, room_id)
    if not room:
        raise NotFoundError(resource="Room", resource_id=room_id)
    return room


def build_room(data: dict) -> Room:
    """Unsaved Room from validated input. Amenities may be a list or "a, b, c"."""
    amenities = data.get("amenities") or []
    if isinstance(amenities, str):
        amenities = [a.strip() for a in amenities.split(",") if a.strip()]
    return Room(
        name=data["name"].strip()[:200],
        capacity=data.get("capacity"),
        description=data.get("description") or "",
        location=(data.get("location") or "")[:200],
        amenities=list(amenities),
        is_active=data.get("is_active", True),
    )


def list_reservations(start: datetime | None = None, room_id: int | None = None) -> list[RoomReservation]:
    """Reservations ending after *start* (default now), earliest first, capped."""
    start = start or utcnow()
    stmt = (
        select(RoomReservation)
        .where(RoomReservation.end_time > start)
        .order_by(RoomReservation.start_time, RoomReservation.id)
        .limit(_window_limit())
    )
    if room_id is not None:
        stmt = stmt.where(RoomReservation.room_id == room_id)
    return list(db.session.execute(stmt).scalars())


def _reservation_entry(reservation: RoomReservation, conflicts: list) -> dict:
    d = reservation.to_dict()
    d["conflicts"] = [
        {"id": c.id, "title": c.title,
         "start_time": c.start_time.isoformat(), "end_time": c.end_time.isoformat()}
        for c in conflicts
    ]
    d["has_conflict"] = bool(conflicts)
    return d


def reservations_with_conflicts(start: datetime | None = None, room_id: int | None = None) -> dict:
    reservations = list_reservations(start, room_id)
    conflict_map = get_conflicting_reservations(reservations)
    return {
        "items": [_reservation_entry(r, conflict_map.get(r.id, [])) for r in reservations],
        "total": len(reservations),
        "conflict_count": len(conflict_map),
    }


def conflict_map(start: datetime | None = None, room_id: int | None = None) -> dict:
    """Reservation id → ids of the reservations it overlaps."""
    found = get_conflicting_reservations(list_reservations(start, room_id))
    return {
        "conflicts": {str(res_id): [c.id for c in others] for res_id, others in found.items()},
        "conflict_count": len(found),
    }


def create_reservation(data: dict) -> dict:
    """Create a reservation. Times arrive already parsed to naive UTC.

    Raises:
        NotFoundError: unknown room or requesting member.
        ValidationError: end not after start, or an unknown status.
    """
    room = get_room(data["room_id"])
    requested_by_id = data.get("requested_by_id")
    if requested_by_id is not None:
        get_member(requested_by_id)
    start, end = data["start_time"], data["end_time"]
    if start >= end:
        raise ValidationError(
            "end_time must be after start_time",
            details={"start_time": start.isoformat(), "end_time": end.isoformat()},
        )
    status = data.get("status") or "pending"
    if not isinstance(status, str) or status not in RESERVATION_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(sorted(RESERVATION_STATUSES))}",
            details={"status": status},
        )

    reservation = RoomReservation(
        room_id=room.id,
        title=data["title"].strip()[:300],
        start_time=start,
        end_time=end,
        status=status,
        attendee_count=data.get("attendee_count"),
        requested_by_id=requested_by_id,
    )
    db.session.add(reservation)
    db.session.commit()

    same_room = db.session.execute(
        select(RoomReservation).where(
            RoomReservation.room_id == room.id,
            RoomReservation.start_time < end,
            RoomReservation.end_time > start,
        )
    ).scalars()
    conflicts = check_conflict(reservation, list(same_room))
    if conflicts:
        logger.warning(
            "Reservation %s overlaps %d existing booking(s) in room %s",
            reservation.id, len(conflicts), room.id,
            extra={"reservation_id": reservation.id, "room_id": room.id,
                   "conflict_ids": [c.id for c in conflicts]},
        )
    else:
        logger.info("Reservation created",
                    extra={"reservation_id": reservation.id, "room_id": room.id})
    return _reservation_entry(reservation, conflicts)
