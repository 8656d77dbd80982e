"""
Training service: modules, member progress, and leader review.

Business logic for the training hub. The step machine itself lives in
``training_progression`` (pure); this module loads records, runs it, and
persists the progress updates it emits.

Functions:
    - list_modules / get_module / module_detail
    - is_module_visible:    audience rules for one member
    - training_hub:         visible modules grouped for the member's hub
    - upsert_progress:      validated status/percent write (one commit)
    - run_session_event:    drive the step machine and record its update
    - submit_assessment:    score a full answer set in one call
    - next_module:          next unfinished module in the same track
    - list_submissions:     completed work awaiting a leader
    - approve_progress / reject_progress
"""

import logging

from flask import current_app
from sqlalchemy import select

from ministry_hub.core.exceptions import (
    NotFoundError,
    PermissionDenied,
    StateConflictError,
    ValidationError,
)
from ministry_hub.models import db
from ministry_hub.models.member import Member
from ministry_hub.models.training import (
    AWAITING_REVIEW_STATUSES,
    COMPLETED_STATUSES,
    TrainingModule,
    UserTrainingProgress,
    validate_progress_transition,
)
from ministry_hub.services import training_progression as tp
from ministry_hub.services.member_service import MemberContext, member_context
from ministry_hub.utils.helpers import utcnow

logger = logging.getLogger(__name__)

# Statuses a member can no longer move out of on their own
_LOCKED_STATUSES = {"completed", "submitted", "approved"}


def _pass_threshold() -> int:
    return int(current_app.config.get("TRAINING_PASS_THRESHOLD", tp.PASS_THRESHOLD))


# ── Modules ──────────────────────────────────────────────────────────────────


def list_modules(ministry_id: int | None = None) -> list[TrainingModule]:
    stmt = select(TrainingModule).order_by(TrainingModule.sort_order, TrainingModule.id)
    if ministry_id is not None:
        stmt = stmt.where(TrainingModule.ministry_id == ministry_id)
    return list(db.session.execute(stmt).scalars())


def get_module(module_id: int) -> TrainingModule:
    module = db.session.get(TrainingModule, module_id)
    if not module:
        raise NotFoundError(resource="TrainingModule", resource_id=module_id)
    return module


def module_detail(module: TrainingModule) -> dict:
    content = tp.TrainingContent.from_module(module)
    d = module.to_dict(include_content=True)
    d["is_deep"] = content.is_deep
    d["enabled_steps"] = tp.enabled_steps(content)
    return d


def is_module_visible(module: TrainingModule, ctx: MemberContext) -> bool:
    """Audience rules.

    leader:    leaders only; ministry-scoped modules also need membership
    ministry:  members of the module's ministry (none set ⇒ nobody)
    all:       everyone, unless ministry-scoped, then members of it
    """
    audience = module.audience or "all"
    in_ministry = module.ministry_id is not None and module.ministry_id in ctx.ministry_ids

    if audience == "leader":
        if module.ministry_id is not None:
            return ctx.is_leader and in_ministry
        return ctx.is_leader
    if audience == "ministry":
        return in_ministry
    if module.ministry_id is not None:
        return in_ministry
    return True


# ── Progress records ─────────────────────────────────────────────────────────


def get_progress(member_id: int, module_id: int) -> UserTrainingProgress | None:
    return db.session.execute(
        select(UserTrainingProgress).where(
            UserTrainingProgress.member_id == member_id,
            UserTrainingProgress.module_id == module_id,
        )
    ).scalar_one_or_none()


def list_member_progress(member_id: int) -> list[UserTrainingProgress]:
    member_context(member_id)
    stmt = (
        select(UserTrainingProgress)
        .where(UserTrainingProgress.member_id == member_id)
        .order_by(UserTrainingProgress.module_id)
    )
    return list(db.session.execute(stmt).scalars())


def progress_dict(progress: UserTrainingProgress | None, module: TrainingModule) -> dict | None:
    if progress is None:
        return None
    d = progress.to_dict()
    d["display_status"] = tp.display_status(progress, module)
    d["review_mode_available"] = tp.is_review_mode_available(progress)
    return d


def _apply_progress(progress, module, status, progress_percent=None, assessment_score=None):
    """Validate one write against the current record and mutate it in place.

    - completed ⇒ 100
    - percent never decreases while the status moves forward
    - leaving ``rejected`` for a retake may restart the percent
    """
    if status == "submitted":
        status = "completed"

    current = progress.status or "not-started"
    if status != current and not validate_progress_transition(current, status):
        raise ValidationError(
            f"Cannot move training from '{current}' to '{status}'",
            details={"current": current, "requested": status},
        )
    if status == current and current in _LOCKED_STATUSES:
        raise ValidationError(
            f"Training is already '{current}'",
            details={"current": current, "requested": status},
        )

    now = utcnow()
    existing = progress.progress_percent or 0
    if status in COMPLETED_STATUSES:
        percent = 100
    elif progress_percent is None:
        percent = existing
    elif current == "rejected":
        percent = progress_percent
    else:
        percent = max(existing, progress_percent)

    progress.status = status
    progress.progress_percent = percent
    if assessment_score is not None:
        progress.assessment_score = assessment_score
    if progress.started_at is None:
        progress.started_at = now
    if status == "completed":
        progress.completed_at = now
        if module.requires_approval is not False:
            progress.submitted_at = now


def _get_or_create_progress(member_id: int, module_id: int) -> UserTrainingProgress:
    progress = get_progress(member_id, module_id)
    if progress is None:
        progress = UserTrainingProgress(
            member_id=member_id, module_id=module_id,
            status="not-started", progress_percent=0,
        )
        db.session.add(progress)
    return progress


def upsert_progress(
    member_id: int, module_id: int, status: str, progress_percent: int | None = None,
) -> dict:
    """Create or update the member's record for one module.

    A module with an assessment is only completed by passing it, so a
    direct completed/submitted write is refused there.

    Raises:
        NotFoundError: unknown member or module.
        ValidationError: backward transition, a repeated finished status,
            or completing an assessed module without scoring it.
    """
    member_context(member_id)
    module = get_module(module_id)
    if status in AWAITING_REVIEW_STATUSES and tp.TrainingContent.from_module(module).has_assessment:
        raise ValidationError(
            "This module is completed by passing its assessment",
            details={"module_id": module_id, "requested": status},
        )
    progress = _get_or_create_progress(member_id, module_id)
    _apply_progress(progress, module, status, progress_percent)
    db.session.commit()
    logger.info(
        "Training progress updated",
        extra={"member_id": member_id, "module_id": module_id,
               "status": progress.status, "progress_percent": progress.progress_percent},
    )
    return progress_dict(progress, module)


# ── Step machine ─────────────────────────────────────────────────────────────


def run_session_event(
    member_id: int, module_id: int, session_data: dict | None, event: str, value=None,
) -> dict:
    """Apply one event to the member's session and record any progress it emits.

    The first interaction creates the record (in-progress, 0). A finished
    module may only be revisited in review mode. Outside review mode the
    session may not stand past the recorded percent: the item before its
    position must already be done.
    """
    member_context(member_id)
    module = get_module(module_id)
    content = tp.TrainingContent.from_module(module)
    session = tp.TrainingSession.from_dict(session_data)
    progress = get_progress(member_id, module_id)

    if event == tp.EVENT_START_REVIEW and not tp.is_review_mode_available(progress):
        raise ValidationError(
            "Review mode opens once the module has been completed or reviewed",
            details={"status": progress.status if progress else "not-started"},
        )
    if (
        progress is not None
        and progress.status in _LOCKED_STATUSES
        and not session.review_mode
        and event != tp.EVENT_START_REVIEW
    ):
        raise ValidationError(
            "This module is finished; start review mode to revisit it",
            details={"status": progress.status},
        )
    if not session.review_mode and event != tp.EVENT_START_REVIEW:
        required = tp.entry_percent(content, session.stage, session.lesson_index,
                                    session.question_index)
        recorded = (progress.progress_percent or 0) if progress is not None else 0
        if required > recorded:
            logger.warning(
                "Session ahead of recorded progress",
                extra={"member_id": member_id, "module_id": module_id,
                       "stage": session.stage, "required": required, "recorded": recorded},
            )
            raise ValidationError(
                "The previous step has not been finished yet",
                details={"stage": session.stage, "lesson_index": session.lesson_index,
                         "question_index": session.question_index,
                         "required_percent": required, "progress_percent": recorded},
            )

    result = tp.transition(session, event, content, pass_threshold=_pass_threshold(), value=value)

    if progress is None and not session.review_mode:
        progress = _get_or_create_progress(member_id, module_id)
        _apply_progress(progress, module, "in-progress", 0)
    if result.progress_update is not None:
        update = result.progress_update
        if progress.status == "rejected" and update.status == "in-progress":
            logger.info("Retaking rejected training",
                        extra={"member_id": member_id, "module_id": module_id})
        _apply_progress(progress, module, update.status,
                        update.progress_percent, update.assessment_score)
    db.session.commit()

    logger.info(
        "Training session event %s → %s", event, result.outcome,
        extra={"member_id": member_id, "module_id": module_id,
               "stage": result.session.stage, "recorded": result.progress_update is not None},
    )
    return {
        **result.to_dict(),
        "progress": progress_dict(progress, module),
    }


def submit_assessment(member_id: int, module_id: int, answers, review_mode: bool = False) -> dict:
    """Score a complete answer set; persist completion on a pass outside review mode."""
    member_context(member_id)
    module = get_module(module_id)
    content = tp.TrainingContent.from_module(module)
    if not content.has_assessment:
        raise ValidationError("This module has no assessment", details={"module_id": module_id})

    threshold = _pass_threshold()
    score = tp.score_assessment(content, answers or {})
    passed = score >= threshold
    progress = get_progress(member_id, module_id)

    if passed and not review_mode:
        if progress is not None and progress.status in _LOCKED_STATUSES:
            raise ValidationError(
                "This module is finished; retake it in review mode",
                details={"status": progress.status},
            )
        progress = _get_or_create_progress(member_id, module_id)
        _apply_progress(progress, module, "completed", 100, score)
        db.session.commit()
        logger.info("Assessment passed",
                    extra={"member_id": member_id, "module_id": module_id, "score": score})
    else:
        logger.info("Assessment scored without recording",
                    extra={"member_id": member_id, "module_id": module_id,
                           "score": score, "review_mode": review_mode})

    return {
        "score": score,
        "passed": passed,
        "pass_threshold": threshold,
        "weighted": content.has_intensive_assessment,
        "progress": progress_dict(progress, module),
    }


# ── Hub & next module ────────────────────────────────────────────────────────


def training_hub(member_id: int) -> dict:
    ctx = member_context(member_id)
    visible = [m for m in list_modules() if is_module_visible(m, ctx)]
    records = {p.module_id: p for p in list_member_progress(member_id)}

    def entry(module):
        d = module.to_dict()
        progress = records.get(module.id)
        d["progress"] = progress_dict(progress, module)
        d["display_status"] = tp.display_status(progress, module)
        return d

    def is_done(module):
        progress = records.get(module.id)
        return progress is not None and progress.status in COMPLETED_STATUSES

    required = [entry(m) for m in visible if m.is_required and not is_done(m)]
    optional = [entry(m) for m in visible if not m.is_required and not is_done(m)]
    completed = [entry(m) for m in visible if is_done(m)]
    submitted = [e for e in completed if e["display_status"] == "submitted"]
    submitted += [
        entry(m) for m in visible
        if not is_done(m) and tp.display_status(records.get(m.id), m) == "submitted"
    ]

    return {
        "member_id": member_id,
        "required": required,
        "optional": optional,
        "completed": completed,
        "submitted": submitted,
        "counts": {
            "visible": len(visible),
            "required_incomplete": len(required),
            "optional_incomplete": len(optional),
            "completed": len(completed),
            "submitted": len(submitted),
        },
    }


def next_module(member_id: int, module_id: int) -> TrainingModule | None:
    """The module after *module_id* in its track, unless the member already finished it.

    Track = same ministry; modules without a ministry form the general track.
    """
    member_context(member_id)
    current = get_module(module_id)
    track = [
        m for m in list_modules()
        if m.ministry_id == current.ministry_id
    ]
    ids = [m.id for m in track]
    position = ids.index(current.id)
    if position + 1 >= len(track):
        return None
    upcoming = track[position + 1]
    progress = get_progress(member_id, upcoming.id)
    if progress is not None and progress.status in COMPLETED_STATUSES:
        return None
    return upcoming


# ── Leader review ────────────────────────────────────────────────────────────


def _reviewer(leader_id: int) -> MemberContext:
    ctx = member_context(leader_id)
    if not ctx.is_leader:
        raise PermissionDenied("Only leaders can review training")
    return ctx


def _can_review(ctx: MemberContext, module: TrainingModule) -> bool:
    if ctx.has_oversight:
        return True
    return module.ministry_id is not None and module.ministry_id in ctx.led_ministry_ids


def list_submissions(leader_id: int) -> list[dict]:
    ctx = _reviewer(leader_id)
    stmt = (
        select(UserTrainingProgress, TrainingModule, Member)
        .join(TrainingModule, TrainingModule.id == UserTrainingProgress.module_id)
        .join(Member, Member.id == UserTrainingProgress.member_id)
        .where(UserTrainingProgress.status.in_(AWAITING_REVIEW_STATUSES))
        .where(TrainingModule.requires_approval.isnot(False))
        .order_by(UserTrainingProgress.submitted_at, UserTrainingProgress.id)
    )
    items = []
    for progress, module, member in db.session.execute(stmt):
        if not _can_review(ctx, module):
            continue
        d = progress_dict(progress, module)
        d["module_title"] = module.title
        d["member_name"] = member.full_name
        items.append(d)
    return items


def _reviewable_progress(progress_id: int, leader_id: int, action: str):
    ctx = _reviewer(leader_id)
    progress = db.session.get(UserTrainingProgress, progress_id)
    if not progress:
        raise NotFoundError(resource="UserTrainingProgress", resource_id=progress_id)
    module = get_module(progress.module_id)
    if not _can_review(ctx, module):
        raise PermissionDenied("You do not lead the ministry this module belongs to")
    if progress.status not in AWAITING_REVIEW_STATUSES:
        raise StateConflictError(resource="training progress", current=progress.status, action=action)
    return progress, module


def approve_progress(progress_id: int, leader_id: int) -> dict:
    progress, module = _reviewable_progress(progress_id, leader_id, "approve")
    progress.status = "approved"
    progress.progress_percent = 100
    progress.approved_at = utcnow()
    progress.approved_by_id = leader_id
    db.session.commit()
    logger.info("Training approved",
                extra={"progress_id": progress_id, "leader_id": leader_id,
                       "member_id": progress.member_id, "module_id": progress.module_id})
    return progress_dict(progress, module)


def reject_progress(progress_id: int, leader_id: int, feedback: str) -> dict:
    progress, module = _reviewable_progress(progress_id, leader_id, "reject")
    progress.status = "rejected"
    progress.rejected_at = utcnow()
    progress.rejection_feedback = feedback
    db.session.commit()
    logger.info("Training rejected",
                extra={"progress_id": progress_id, "leader_id": leader_id,
                       "member_id": progress.member_id, "module_id": progress.module_id})
    return progress_dict(progress, module)
