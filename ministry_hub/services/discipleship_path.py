"""
Discipleship Path: progression rules for the five-stage path.

Worship → Next Night → Learn → Love → Lead

Pure functions over a progress snapshot (a ``MinistryPathProgress`` row, a
dict with the same keys, or ``None`` for a member who has not started).
Nothing here touches the session; ``discipleship_service`` persists the
field updates these functions plan.

Rules:
    - A step is actionable only when the previous step is complete; the
      first step always is.
    - Worship and Next Night are attendance flags: not-started → complete.
    - Learn, Love and Lead are tri-state: not-started → in-progress → complete,
      and may also be completed straight from not-started.
    - Nothing moves backward from complete.
"""

from __future__ import annotations

from dataclasses import dataclass

from ministry_hub.core.exceptions import ValidationError

NOT_STARTED = "not-started"
IN_PROGRESS = "in-progress"
COMPLETE = "complete"

ACTION_START = "start"
ACTION_COMPLETE = "complete"
STEP_ACTIONS = {ACTION_START, ACTION_COMPLETE}


@dataclass(frozen=True)
class PathStep:
    id: str
    title: str
    description: str
    field: str
    is_flag: bool
    xp: int


DISCIPLESHIP_STEPS: tuple[PathStep, ...] = (
    PathStep("worship", "Worship", "Attend a Sunday worship gathering.",
             "has_attended_sunday", True, 100),
    PathStep("next-night", "Next Night", "Come to a Next Night to meet the team.",
             "has_attended_next_night", True, 100),
    PathStep("learn", "Learn", "Complete the foundations class.",
             "learn_status", False, 200),
    PathStep("love", "Love", "Join a ministry team and serve.",
             "love_status", False, 300),
    PathStep("lead", "Lead", "Step into leading others.",
             "lead_status", False, 500),
)

_STEP_INDEX = {step.id: i for i, step in enumerate(DISCIPLESHIP_STEPS)}


def _field(progress, name, default):
    if progress is None:
        return default
    if isinstance(progress, dict):
        return progress.get(name, default)
    value = getattr(progress, name, default)
    return default if value is None else value


def get_step(step_id: str) -> PathStep:
    """Return the step definition or raise ValidationError for an unknown id."""
    idx = _STEP_INDEX.get(step_id)
    if idx is None:
        raise ValidationError(
            f"Unknown discipleship step '{step_id}'",
            details={"step": step_id, "valid_steps": [s.id for s in DISCIPLESHIP_STEPS]},
        )
    return DISCIPLESHIP_STEPS[idx]


def get_step_status(step_id: str, progress) -> str:
    """Map stored flags / tri-state fields to a uniform step status."""
    step = get_step(step_id)
    if step.is_flag:
        return COMPLETE if _field(progress, step.field, False) else NOT_STARTED
    status = _field(progress, step.field, NOT_STARTED)
    return status if status in (NOT_STARTED, IN_PROGRESS, COMPLETE) else NOT_STARTED


def is_step_actionable(index: int, progress) -> bool:
    """True when the step at *index* may be started or completed."""
    if index == 0:
        return True
    previous = DISCIPLESHIP_STEPS[index - 1]
    return get_step_status(previous.id, progress) == COMPLETE


def available_actions(step_id: str, progress) -> list[str]:
    """Actions to offer for a step in its current state."""
    step = get_step(step_id)
    status = get_step_status(step_id, progress)
    if status == COMPLETE or not is_step_actionable(_STEP_INDEX[step_id], progress):
        return []
    if step.is_flag:
        return [ACTION_COMPLETE]
    if status == NOT_STARTED:
        return [ACTION_START]
    return [ACTION_COMPLETE]


def completed_step_count(progress) -> int:
    return sum(1 for s in DISCIPLESHIP_STEPS if get_step_status(s.id, progress) == COMPLETE)


def progress_percent(progress) -> float:
    """100 * completed / total; always within [0, 100]."""
    return 100 * completed_step_count(progress) / len(DISCIPLESHIP_STEPS)


def next_step(progress) -> PathStep | None:
    """First step that is not complete, or None when the path is finished."""
    for step in DISCIPLESHIP_STEPS:
        if get_step_status(step.id, progress) != COMPLETE:
            return step
    return None


def xp_summary(progress) -> dict:
    earned = sum(
        s.xp for s in DISCIPLESHIP_STEPS if get_step_status(s.id, progress) == COMPLETE
    )
    return {"earned": earned, "available": sum(s.xp for s in DISCIPLESHIP_STEPS)}


def plan_step_action(step_id: str, action: str, progress) -> dict:
    """Validate *action* on *step_id* and return the field update it implies.

    Raises:
        ValidationError: unknown step/action, gated step, start on a flag
            step, or any move away from complete.
    """
    step = get_step(step_id)
    if action not in STEP_ACTIONS:
        raise ValidationError(
            f"Unknown action '{action}'",
            details={"action": action, "valid_actions": sorted(STEP_ACTIONS)},
        )

    status = get_step_status(step_id, progress)
    if status == COMPLETE:
        raise ValidationError(
            f"Step '{step_id}' is already complete",
            details={"step": step_id, "status": status},
        )

    index = _STEP_INDEX[step_id]
    if not is_step_actionable(index, progress):
        previous = DISCIPLESHIP_STEPS[index - 1]
        raise ValidationError(
            f"Complete '{previous.id}' before '{step_id}'",
            details={"step": step_id, "blocked_by": previous.id},
        )

    if action == ACTION_START:
        if step.is_flag:
            raise ValidationError(
                f"Step '{step_id}' has no in-progress state; mark it complete instead",
                details={"step": step_id, "action": action},
            )
        if status == IN_PROGRESS:
            raise ValidationError(
                f"Step '{step_id}' is already in progress",
                details={"step": step_id, "status": status},
            )
        return {step.field: IN_PROGRESS}

    return {step.field: True if step.is_flag else COMPLETE}


def describe_path(progress) -> dict:
    """Derived view of the whole path for API responses."""
    steps = []
    for i, step in enumerate(DISCIPLESHIP_STEPS):
        status = get_step_status(step.id, progress)
        steps.append({
            "id": step.id,
            "title": step.title,
            "description": step.description,
            "status": status,
            "actionable": is_step_actionable(i, progress),
            "actions": available_actions(step.id, progress),
            "xp": step.xp,
        })
    upcoming = next_step(progress)
    return {
        "steps": steps,
        "completed_steps": completed_step_count(progress),
        "total_steps": len(DISCIPLESHIP_STEPS),
        "progress_percent": round(progress_percent(progress), 1),
        "next_step": upcoming.id if upcoming else None,
        "xp": xp_summary(progress),
    }
