"""
Ministry Hub
Member & ministry models.

Models:
    - Member:              a person using the hub (role drives leader capabilities)
    - Ministry:            a named church team/department (Worship, Guest Services, ...)
    - MinistryAssignment:  member ↔ ministry membership, optionally as a leader

Architecture:
    Member ──1:N──▶ MinistryAssignment ◀──N:1── Ministry
"""

from datetime import datetime, timezone

from ministry_hub.models import db


# ── Constants ────────────────────────────────────────────────────────────────

MEMBER_ROLES = {"member", "leader", "pastor", "admin"}

# Roles that may review training submissions and see leader-only modules
LEADER_ROLES = {"leader", "pastor", "admin"}

# Roles that see every ministry's submissions, not only the ones they lead
OVERSIGHT_ROLES = {"pastor", "admin"}

ASSIGNMENT_ROLES = {"member", "leader"}


class Member(db.Model):
    """A church member. One row per person."""

    __tablename__ = "members"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    role = db.Column(db.String(20), nullable=False, default="member",
                     comment="member | leader | pastor | admin")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    assignments = db.relationship(
        "MinistryAssignment", back_populates="member",
        lazy="dynamic", cascade="all, delete-orphan",
    )

    @property
    def is_leader(self) -> bool:
        return self.role in LEADER_ROLES

    def active_ministry_ids(self) -> list[int]:
        return [a.ministry_id for a in self.assignments.filter_by(is_active=True)]

    def led_ministry_ids(self) -> list[int]:
        return [
            a.ministry_id
            for a in self.assignments.filter_by(is_active=True, role="leader")
        ]

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "is_leader": self.is_leader,
            "ministry_ids": self.active_ministry_ids(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Member {self.id}: {self.full_name}>"


class Ministry(db.Model):
    __tablename__ = "ministries"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    description = db.Column(db.Text, default="")
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    assignments = db.relationship(
        "MinistryAssignment", back_populates="ministry",
        lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "member_count": self.assignments.filter_by(is_active=True).count(),
        }

    def __repr__(self):
        return f"<Ministry {self.id}: {self.name}>"


class MinistryAssignment(db.Model):
    """Membership of a member in a ministry. Deactivated rather than deleted."""

    __tablename__ = "ministry_assignments"
    __table_args__ = (
        db.UniqueConstraint("member_id", "ministry_id", name="uq_assignment_member_ministry"),
    )

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(
        db.Integer, db.ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    ministry_id = db.Column(
        db.Integer, db.ForeignKey("ministries.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    role = db.Column(db.String(20), nullable=False, default="member", comment="member | leader")
    is_active = db.Column(db.Boolean, default=True)
    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    member = db.relationship("Member", back_populates="assignments")
    ministry = db.relationship("Ministry", back_populates="assignments")

    def to_dict(self):
        return {
            "id": self.id,
            "member_id": self.member_id,
            "ministry_id": self.ministry_id,
            "role": self.role,
            "is_active": self.is_active,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }

    def __repr__(self):
        return f"<MinistryAssignment member={self.member_id} ministry={self.ministry_id}>"
