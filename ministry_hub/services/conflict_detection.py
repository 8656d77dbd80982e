"""
Room reservation conflict detection.

Advisory only: conflicts are reported for a human to resolve, they never
block a booking. Two reservations conflict when they are on the same room
and their half-open intervals overlap:

    a.start < b.end and a.end > b.start

so back-to-back bookings (one ends exactly when the next starts) do not
conflict. A reservation whose start is not before its end is malformed;
it conflicts with nothing and is logged.

The scan is O(n²) over the window it is given. Callers keep the window
bounded (see ``RESERVATION_WINDOW_LIMIT``).
"""

import logging

from ministry_hub.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)


def _attr(reservation, name):
    if isinstance(reservation, dict):
        return reservation.get(name)
    return getattr(reservation, name, None)


def _interval(reservation, warn=False):
    """Return (start, end) or None when the interval is malformed."""
    try:
        start = parse_datetime(_attr(reservation, "start_time"))
        end = parse_datetime(_attr(reservation, "end_time"))
    except ValueError:
        start = end = None
    if start is None or end is None or start >= end:
        if not warn:
            return None
        logger.warning(
            "Ignoring malformed reservation interval id=%s start=%s end=%s",
            _attr(reservation, "id"), start, end,
            extra={"reservation_id": _attr(reservation, "id")},
        )
        return None
    return start, end


def _overlaps(a, b):
    return a[0] < b[1] and a[1] > b[0]


def check_conflict(reservation, reservations):
    """Every other reservation on the same room whose interval overlaps *reservation*."""
    own = _interval(reservation, warn=True)
    if own is None:
        return []
    res_id = _attr(reservation, "id")
    room_id = _attr(reservation, "room_id")

    conflicts = []
    for other in reservations:
        if _attr(other, "id") == res_id or _attr(other, "room_id") != room_id:
            continue
        other_interval = _interval(other)
        if other_interval is not None and _overlaps(own, other_interval):
            conflicts.append(other)
    return conflicts


def get_conflicting_reservations(reservations):
    """Map reservation id → its conflicts, for reservations with at least one.

    The relation is symmetric: if ``b`` is listed under ``a`` then ``a`` is
    listed under ``b``.
    """
    reservations = list(reservations)
    conflicts = {}
    for reservation in reservations:
        found = check_conflict(reservation, reservations)
        if found:
            conflicts[_attr(reservation, "id")] = found
    return conflicts
