"""
Member & ministry service.

Functions:
    - create_member:     create a member (unique email, validated role)
    - get_member:        fetch or raise NotFoundError
    - member_context:    role + ministry membership snapshot passed to other services
    - list_ministries:   active (or all) ministries
    - create_ministry:   create a ministry (unique name)
    - join_ministry:     add a member to a ministry, re-activating an old assignment
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import select

from ministry_hub.core.exceptions import ConflictError, NotFoundError, ValidationError
from ministry_hub.models import db
from ministry_hub.models.member import (
    ASSIGNMENT_ROLES,
    MEMBER_ROLES,
    OVERSIGHT_ROLES,
    Member,
    Ministry,
    MinistryAssignment,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberContext:
    """Who is acting: services receive this instead of reading global state."""

    member_id: int
    role: str
    is_leader: bool
    ministry_ids: frozenset = field(default_factory=frozenset)
    led_ministry_ids: frozenset = field(default_factory=frozenset)

    @property
    def has_oversight(self) -> bool:
        return self.role in OVERSIGHT_ROLES


def get_member(member_id: int) -> Member:
    member = db.session.get(Member, member_id)
    if not member:
        raise NotFoundError(resource="Member", resource_id=member_id)
    return member


def member_context(member_id: int) -> MemberContext:
    member = get_member(member_id)
    return MemberContext(
        member_id=member.id,
        role=member.role,
        is_leader=member.is_leader,
        ministry_ids=frozenset(member.active_ministry_ids()),
        led_ministry_ids=frozenset(member.led_ministry_ids()),
    )


def create_member(data: dict) -> Member:
    """Create a member. Blueprint has already checked full_name/email are present.

    Raises:
        ValidationError: unknown role.
        ConflictError: email already registered.
    """
    role = data.get("role") or "member"
    if role not in MEMBER_ROLES:
        raise ValidationError(
            f"role must be one of: {', '.join(sorted(MEMBER_ROLES))}",
            details={"role": role},
        )
    email = data["email"].strip().lower()
    if db.session.execute(select(Member.id).where(Member.email == email)).first():
        raise ConflictError(resource="Member", field="email", value=email)

    member = Member(full_name=data["full_name"].strip()[:200], email=email[:200], role=role)
    db.session.add(member)
    db.session.commit()
    logger.info("Member created", extra={"member_id": member.id, "role": role})
    return member


def list_ministries(include_inactive: bool = False) -> list[Ministry]:
    stmt = select(Ministry).order_by(Ministry.name)
    if not include_inactive:
        stmt = stmt.where(Ministry.is_active.is_(True))
    return list(db.session.execute(stmt).scalars())


def create_ministry(data: dict) -> Ministry:
    name = data["name"].strip()
    if db.session.execute(select(Ministry.id).where(Ministry.name == name)).first():
        raise ConflictError(resource="Ministry", field="name", value=name)

    ministry = Ministry(
        name=name[:200],
        description=data.get("description") or "",
        is_active=data.get("is_active", True),
    )
    db.session.add(ministry)
    db.session.commit()
    logger.info("Ministry created", extra={"ministry_id": ministry.id})
    return ministry


def join_ministry(ministry_id: int, member_id: int, role: str = "member") -> MinistryAssignment:
    """Add *member_id* to *ministry_id*. An existing assignment is re-activated
    and takes the new role."""
    if role not in ASSIGNMENT_ROLES:
        raise ValidationError(
            f"role must be one of: {', '.join(sorted(ASSIGNMENT_ROLES))}",
            details={"role": role},
        )
    ministry = db.session.get(Ministry, ministry_id)
    if not ministry:
        raise NotFoundError(resource="Ministry", resource_id=ministry_id)
    get_member(member_id)

    assignment = db.session.execute(
        select(MinistryAssignment).where(
            MinistryAssignment.member_id == member_id,
            MinistryAssignment.ministry_id == ministry_id,
        )
    ).scalar_one_or_none()
    if assignment is None:
        assignment = MinistryAssignment(member_id=member_id, ministry_id=ministry_id, role=role)
        db.session.add(assignment)
    else:
        assignment.is_active = True
        assignment.role = role
    db.session.commit()
    logger.info(
        "Member joined ministry",
        extra={"member_id": member_id, "ministry_id": ministry_id, "role": role},
    )
    return assignment
