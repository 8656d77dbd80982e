"""
Ministry Hub
Room booking models.

Models:
    - Room:             bookable space (sanctuary, classroom, kitchen, ...)
    - RoomReservation:  a booked [start_time, end_time) interval on one room

Times are stored as naive UTC datetimes; the service layer normalises
incoming ISO timestamps before they reach these columns.
"""

from datetime import datetime, timezone

from ministry_hub.models import db


# ── Constants ────────────────────────────────────────────────────────────────

RESERVATION_STATUSES = {"pending", "approved", "declined"}


class Room(db.Model):
    __tablename__ = "rooms"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    capacity = db.Column(db.Integer, nullable=True)
    description = db.Column(db.Text, default="")
    location = db.Column(db.String(200), default="")
    amenities = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    reservations = db.relationship(
        "RoomReservation", back_populates="room",
        lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "capacity": self.capacity,
            "description": self.description,
            "location": self.location,
            "amenities": self.amenities or [],
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<Room {self.id}: {self.name}>"


class RoomReservation(db.Model):
    """A booking. Overlaps are allowed and reported, never blocked."""

    __tablename__ = "room_reservations"
    __table_args__ = (
        db.Index("ix_reservation_room_start", "room_id", "start_time"),
    )

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(
        db.Integer, db.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending",
                       comment="pending | approved | declined")
    attendee_count = db.Column(db.Integer, nullable=True)
    requested_by_id = db.Column(
        db.Integer, db.ForeignKey("members.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    room = db.relationship("Room", back_populates="reservations")

    def to_dict(self):
        return {
            "id": self.id,
            "room_id": self.room_id,
            "title": self.title,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
            "attendee_count": self.attendee_count,
            "requested_by_id": self.requested_by_id,
        }

    def __repr__(self):
        return f"<RoomReservation {self.id}: room={self.room_id} {self.start_time}..{self.end_time}>"
