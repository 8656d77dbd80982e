"""
Discipleship path persistence.

Loads a member's ``MinistryPathProgress`` (absent row ⇒ nothing started),
applies the field update planned by ``discipleship_path.plan_step_action``
and commits. Readers re-read after every write.
"""

import logging

from sqlalchemy import select

from ministry_hub.models import db
from ministry_hub.models.discipleship import MinistryPathProgress
from ministry_hub.services import discipleship_path
from ministry_hub.services.member_service import get_member
from ministry_hub.utils.helpers import utcnow

logger = logging.getLogger(__name__)


def get_path_progress(member_id: int) -> MinistryPathProgress | None:
    return db.session.execute(
        select(MinistryPathProgress).where(MinistryPathProgress.member_id == member_id)
    ).scalar_one_or_none()


def _stored_fields(member_id: int, progress: MinistryPathProgress | None) -> dict:
    if progress is None:
        return {
            "member_id": member_id,
            "has_attended_sunday": False,
            "has_attended_next_night": False,
            "learn_status": discipleship_path.NOT_STARTED,
            "love_status": discipleship_path.NOT_STARTED,
            "lead_status": discipleship_path.NOT_STARTED,
            "last_updated": None,
        }
    return progress.to_dict()


def get_path_view(member_id: int) -> dict:
    """Stored fields plus the derived per-step view for one member."""
    get_member(member_id)
    progress = get_path_progress(member_id)
    return {
        "progress": _stored_fields(member_id, progress),
        **discipleship_path.describe_path(progress),
    }


def apply_step_action(member_id: int, step_id: str, action: str) -> dict:
    """Validate and persist one step action, then return the refreshed view.

    Raises:
        NotFoundError: unknown member.
        ValidationError: gated step, unsupported action, or a backward move.
    """
    get_member(member_id)
    progress = get_path_progress(member_id)
    update = discipleship_path.plan_step_action(step_id, action, progress)

    if progress is None:
        progress = MinistryPathProgress(member_id=member_id)
        db.session.add(progress)
    for column, value in update.items():
        setattr(progress, column, value)
    progress.last_updated = utcnow()
    db.session.commit()

    logger.info(
        "Discipleship step %s: %s", action, step_id,
        extra={"member_id": member_id, "step": step_id, "action": action},
    )
    return get_path_view(member_id)
