"""
Training module step machine.

A member works through a module as an explicit session state
(``TrainingSession``) driven by a pure ``transition(session, event, content)``
function. The function never writes anything; it returns the next session
and, when the move should be recorded, a ``ProgressUpdate`` the service
layer persists.

Stages:
    deep modules (explicit lesson list):
        lesson[0..n-1] → [knowledge-check] → [assessment] → results
    legacy modules:
        lesson → [study] → [knowledge-check] → [assessment] → results

Percent bands (deep):
    lessons 0-60, knowledge check 60-80, assessment 80-100, results 100.
Legacy modules split 100 evenly over the enabled stages, with the
assessment band subdivided by question index.

The knowledge check is practice and is never scored. Only the assessment
stage produces a score; a module without one is completed by finishing
its last enabled stage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace

from ministry_hub.core.exceptions import ValidationError
from ministry_hub.models.training import AWAITING_REVIEW_STATUSES, REVIEWABLE_STATUSES

PASS_THRESHOLD = 70

STAGE_LESSON = "lesson"
STAGE_STUDY = "study"
STAGE_KNOWLEDGE_CHECK = "knowledge-check"
STAGE_ASSESSMENT = "assessment"
STAGE_RESULTS = "results"
STAGES = (STAGE_LESSON, STAGE_STUDY, STAGE_KNOWLEDGE_CHECK, STAGE_ASSESSMENT, STAGE_RESULTS)
QUIZ_STAGES = {STAGE_KNOWLEDGE_CHECK, STAGE_ASSESSMENT}

EVENT_NEXT = "next"
EVENT_PREVIOUS = "previous"
EVENT_ANSWER = "answer"
EVENT_RETRY = "retry"
EVENT_START_REVIEW = "start_review"
EVENTS = {EVENT_NEXT, EVENT_PREVIOUS, EVENT_ANSWER, EVENT_RETRY, EVENT_START_REVIEW}

# Outcomes reported alongside each transition
OUTCOME_ADVANCED = "advanced"
OUTCOME_MOVED_BACK = "moved-back"
OUTCOME_UNCHANGED = "unchanged"
OUTCOME_ANSWERED = "answered"
OUTCOME_PASSED = "passed"
OUTCOME_FAILED = "failed"
OUTCOME_COMPLETED = "completed"
OUTCOME_RETRY = "retry"
OUTCOME_REVIEW_STARTED = "review-started"


def _round_half_up(value: float) -> int:
    """Round .5 upward, as a browser's ``Math.round`` does (``round`` would not)."""
    return int(math.floor(value + 0.5))


def _get(obj, name, default=None):
    if isinstance(obj, dict):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


# ══════════════════════════════════════════════════════════════════════════════
# Module content
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TrainingContent:
    """Content flags and question sets of one module, read once per load."""

    lesson_count: int = 0
    study_question_count: int = 0
    knowledge_check_count: int = 0
    intensive_questions: tuple = ()
    assessments: tuple = ()

    @classmethod
    def from_module(cls, module) -> "TrainingContent":
        """Build from a ``TrainingModule`` row or its ``to_dict(include_content=True)``."""
        return cls(
            lesson_count=len(_get(module, "lessons", []) or []),
            study_question_count=len(_get(module, "study_questions", []) or []),
            knowledge_check_count=len(_get(module, "knowledge_check_questions", []) or []),
            intensive_questions=tuple(_get(module, "intensive_assessment_questions", []) or []),
            assessments=tuple(_get(module, "assessments", []) or []),
        )

    @property
    def is_deep(self) -> bool:
        return self.lesson_count > 0

    @property
    def has_study_questions(self) -> bool:
        return self.study_question_count > 0

    @property
    def has_knowledge_check(self) -> bool:
        return self.knowledge_check_count > 0

    @property
    def has_intensive_assessment(self) -> bool:
        return len(self.intensive_questions) > 0

    @property
    def has_assessment(self) -> bool:
        return len(self.assessments) > 0 or self.has_intensive_assessment

    @property
    def assessment_questions(self) -> tuple:
        """The scored question set: intensive questions win over standard ones."""
        return self.intensive_questions if self.has_intensive_assessment else self.assessments


def enabled_steps(content: TrainingContent) -> list[str]:
    """Ordered stages this module offers, excluding ``results``."""
    steps = [STAGE_LESSON]
    if content.is_deep:
        if content.has_knowledge_check:
            steps.append(STAGE_KNOWLEDGE_CHECK)
        if content.has_intensive_assessment:
            steps.append(STAGE_ASSESSMENT)
        return steps
    if content.has_study_questions:
        steps.append(STAGE_STUDY)
    if content.has_knowledge_check:
        steps.append(STAGE_KNOWLEDGE_CHECK)
    if content.has_assessment:
        steps.append(STAGE_ASSESSMENT)
    return steps


def _question_count(content: TrainingContent, stage: str) -> int:
    if stage == STAGE_KNOWLEDGE_CHECK:
        return content.knowledge_check_count
    if stage == STAGE_ASSESSMENT:
        return len(content.assessment_questions)
    return 0


def progress_for_state(
    content: TrainingContent, stage: str, lesson_index: int = 0, question_index: int = 0,
) -> int:
    """Percent complete once the item at (stage, index) is done. Always 0-100."""
    if stage == STAGE_RESULTS:
        return 100

    if content.is_deep:
        if stage == STAGE_LESSON:
            percent = _round_half_up((lesson_index + 1) / (content.lesson_count or 1) * 60)
        elif stage == STAGE_KNOWLEDGE_CHECK:
            percent = 60 + _round_half_up(
                (question_index + 1) / (content.knowledge_check_count or 1) * 20
            )
        elif stage == STAGE_ASSESSMENT:
            percent = 80 + _round_half_up(
                (question_index + 1) / (len(content.intensive_questions) or 1) * 20
            )
        else:
            percent = 0
        return max(0, min(100, percent))

    steps = enabled_steps(content)
    if stage not in steps:
        return 0
    step_index = steps.index(stage)
    total = len(steps)
    questions = len(content.assessment_questions)
    if stage == STAGE_ASSESSMENT and questions > 0:
        base = step_index / total * 100
        within = (question_index + 1) / questions * (100 / total)
        percent = _round_half_up(base + within)
    else:
        percent = _round_half_up((step_index + 1) / total * 100)
    return max(0, min(100, percent))


def _last_item_percent(content: TrainingContent, stage: str) -> int:
    return progress_for_state(
        content, stage,
        lesson_index=max(content.lesson_count - 1, 0),
        question_index=max(_question_count(content, stage) - 1, 0),
    )


def entry_percent(
    content: TrainingContent, stage: str, lesson_index: int = 0, question_index: int = 0,
) -> int:
    """Percent the member must already have recorded to stand on (stage, index).

    That is the percent of the item just before it, so every item is reached
    only after its predecessor was finished. Results sit behind the last
    question (a failed attempt never records past it).
    """
    steps = enabled_steps(content)
    if stage == STAGE_RESULTS:
        last = steps[-1]
        return entry_percent(
            content, last,
            lesson_index=max(content.lesson_count - 1, 0),
            question_index=max(_question_count(content, last) - 1, 0),
        )
    if stage not in steps:
        return 0
    if stage == STAGE_LESSON:
        if content.is_deep and lesson_index > 0:
            return progress_for_state(content, stage, lesson_index - 1)
        return 0
    if stage in QUIZ_STAGES and question_index > 0:
        return progress_for_state(content, stage, 0, question_index - 1)
    return _last_item_percent(content, steps[steps.index(stage) - 1])


# ══════════════════════════════════════════════════════════════════════════════
# Scoring
# ══════════════════════════════════════════════════════════════════════════════


def _answer_at(answers, index):
    if not answers:
        return None
    if isinstance(answers, dict):
        if index in answers:
            return answers[index]
        return answers.get(str(index))
    return answers[index] if index < len(answers) else None


def _as_index(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return -1


def score_standard(assessments, answers) -> int:
    """``round(100 * correct / total)``; each answer is an option index."""
    if not assessments:
        return 0
    correct = 0
    for i, question in enumerate(assessments):
        chosen = _as_index(_answer_at(answers, i))
        if chosen >= 0 and chosen == _as_index(_get(question, "correct_answer")):
            correct += 1
    return _round_half_up(correct / len(assessments) * 100)


def _weighted_answer_is_correct(question, answer) -> bool:
    if answer is None:
        return False
    correct = _get(question, "correct_answer")
    if answer == correct:
        return True
    options = list(_get(question, "options", []) or [])
    if answer in options and correct in options:
        return options.index(answer) == options.index(correct)
    return False


def score_weighted(questions, answers) -> int:
    """``round(100 * earned_weight / total_weight)``; weight defaults to 1."""
    total_weight = 0
    earned_weight = 0
    for i, question in enumerate(questions or ()):
        weight = _get(question, "weight", 1) or 1
        total_weight += weight
        if _weighted_answer_is_correct(question, _answer_at(answers, i)):
            earned_weight += weight
    if total_weight <= 0:
        return 0
    return _round_half_up(earned_weight / total_weight * 100)


def score_assessment(content: TrainingContent, answers) -> int:
    if content.has_intensive_assessment:
        return score_weighted(content.intensive_questions, answers)
    return score_standard(content.assessments, answers)


# ══════════════════════════════════════════════════════════════════════════════
# Status helpers
# ══════════════════════════════════════════════════════════════════════════════


def _status_of(progress) -> str:
    if progress is None:
        return "not-started"
    return _get(progress, "status", "not-started")


def display_status(progress, module) -> str:
    """Status as shown to the member: completed work awaiting a leader is 'submitted'."""
    status = _status_of(progress)
    requires_approval = _get(module, "requires_approval", True) is not False
    if status in AWAITING_REVIEW_STATUSES and requires_approval:
        return "submitted"
    return status


def is_review_mode_available(progress) -> bool:
    return _status_of(progress) in REVIEWABLE_STATUSES


# ══════════════════════════════════════════════════════════════════════════════
# Session state machine
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class TrainingSession:
    stage: str = STAGE_LESSON
    lesson_index: int = 0
    question_index: int = 0
    answers: dict = field(default_factory=dict)
    score: int | None = None
    review_mode: bool = False

    @classmethod
    def from_dict(cls, data: dict | None) -> "TrainingSession":
        """Rebuild a session sent back by a client. Missing keys take defaults."""
        data = data or {}
        stage = data.get("stage", STAGE_LESSON)
        if stage not in STAGES:
            raise ValidationError(
                f"Unknown training stage '{stage}'",
                details={"stage": stage, "valid_stages": list(STAGES)},
            )
        try:
            lesson_index = int(data.get("lesson_index", 0) or 0)
            question_index = int(data.get("question_index", 0) or 0)
            answers = {int(k): v for k, v in (data.get("answers") or {}).items()}
            score = data.get("score")
            score = int(score) if score is not None else None
        except (TypeError, ValueError, AttributeError) as exc:
            raise ValidationError(
                "Session indices, answer keys and score must be integers",
                details={"session": str(exc)},
            ) from exc
        if lesson_index < 0 or question_index < 0:
            raise ValidationError("Session indices cannot be negative")
        return cls(
            stage=stage,
            lesson_index=lesson_index,
            question_index=question_index,
            answers=answers,
            score=score,
            review_mode=bool(data.get("review_mode", False)),
        )

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "lesson_index": self.lesson_index,
            "question_index": self.question_index,
            "answers": {str(k): v for k, v in sorted(self.answers.items())},
            "score": self.score,
            "review_mode": self.review_mode,
        }


@dataclass(frozen=True)
class ProgressUpdate:
    status: str
    progress_percent: int
    assessment_score: int | None = None

    def to_dict(self) -> dict:
        d = {"status": self.status, "progress_percent": self.progress_percent}
        if self.assessment_score is not None:
            d["assessment_score"] = self.assessment_score
        return d


@dataclass(frozen=True)
class TransitionResult:
    session: TrainingSession
    progress_update: ProgressUpdate | None
    outcome: str

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "progress_update": self.progress_update.to_dict() if self.progress_update else None,
            "outcome": self.outcome,
        }


def _record(session, update):
    """Review mode suppresses every progress write."""
    return None if session.review_mode else update


def _back_into_stage(session, stage, content):
    """Step back onto the last item of *stage*. Answers already entered are kept."""
    if stage == STAGE_LESSON:
        return replace(session, stage=stage, lesson_index=max(content.lesson_count - 1, 0),
                       question_index=0)
    last_question = max(_question_count(content, stage) - 1, 0)
    return replace(session, stage=stage, question_index=last_question)


def _leave_stage(session, steps, completed_percent):
    """Move past the current stage, completing the module after the last one.

    Practice answers stay behind when the knowledge check is left; any other
    answers ride along so stepping back and forward again keeps them.
    """
    position = steps.index(session.stage)
    if position + 1 < len(steps):
        upcoming = steps[position + 1]
        answers = {} if session.stage == STAGE_KNOWLEDGE_CHECK else session.answers
        moved = replace(session, stage=upcoming, question_index=0, answers=answers)
        update = ProgressUpdate("in-progress", completed_percent)
        return TransitionResult(moved, _record(session, update), OUTCOME_ADVANCED)

    finished = replace(session, stage=STAGE_RESULTS, question_index=0)
    return TransitionResult(
        finished, _record(session, ProgressUpdate("completed", 100)), OUTCOME_COMPLETED,
    )


def _score_and_finish(session, content, pass_threshold):
    score = score_assessment(content, session.answers)
    finished = replace(session, stage=STAGE_RESULTS, score=score)
    if score >= pass_threshold:
        update = ProgressUpdate("completed", 100, assessment_score=score)
        return TransitionResult(finished, _record(session, update), OUTCOME_PASSED)
    return TransitionResult(finished, None, OUTCOME_FAILED)


def _next(session, content, steps, pass_threshold):
    stage = session.stage
    if stage == STAGE_RESULTS:
        raise ValidationError(
            "The module is finished; retry the assessment or start review mode",
            details={"stage": stage},
        )

    if stage == STAGE_LESSON:
        completed_percent = progress_for_state(content, stage, session.lesson_index, 0)
        if content.is_deep and session.lesson_index < content.lesson_count - 1:
            moved = replace(session, lesson_index=session.lesson_index + 1)
            update = ProgressUpdate("in-progress", completed_percent)
            return TransitionResult(moved, _record(session, update), OUTCOME_ADVANCED)
        return _leave_stage(session, steps, completed_percent)

    if stage == STAGE_STUDY:
        completed_percent = progress_for_state(content, stage)
        return _leave_stage(session, steps, completed_percent)

    # quiz stages
    total = _question_count(content, stage)
    completed_percent = progress_for_state(content, stage, 0, session.question_index)
    if session.question_index < total - 1:
        moved = replace(session, question_index=session.question_index + 1)
        update = ProgressUpdate("in-progress", completed_percent)
        return TransitionResult(moved, _record(session, update), OUTCOME_ADVANCED)
    if stage == STAGE_ASSESSMENT:
        return _score_and_finish(session, content, pass_threshold)
    return _leave_stage(session, steps, completed_percent)


def _previous(session, content, steps):
    stage = session.stage
    if stage == STAGE_RESULTS:
        raise ValidationError(
            "The module is finished; retry the assessment or start review mode",
            details={"stage": stage},
        )
    if stage == STAGE_LESSON:
        if session.lesson_index > 0:
            return TransitionResult(
                replace(session, lesson_index=session.lesson_index - 1), None, OUTCOME_MOVED_BACK,
            )
        return TransitionResult(session, None, OUTCOME_UNCHANGED)

    if stage in QUIZ_STAGES and session.question_index > 0:
        return TransitionResult(
            replace(session, question_index=session.question_index - 1), None, OUTCOME_MOVED_BACK,
        )

    earlier = steps[steps.index(stage) - 1]
    return TransitionResult(_back_into_stage(session, earlier, content), None, OUTCOME_MOVED_BACK)


def _answer(session, content, value):
    if session.stage not in QUIZ_STAGES:
        raise ValidationError(
            f"Answers are only accepted during a quiz, not '{session.stage}'",
            details={"stage": session.stage},
        )
    if value is None or value == "":
        raise ValidationError("An answer value is required", details={"value": value})
    answers = dict(session.answers)
    answers[session.question_index] = value
    return TransitionResult(replace(session, answers=answers), None, OUTCOME_ANSWERED)


def transition(
    session: TrainingSession,
    event: str,
    content: TrainingContent,
    pass_threshold: int = PASS_THRESHOLD,
    value=None,
) -> TransitionResult:
    """Apply *event* to *session* for a module with *content*.

    Raises:
        ValidationError: unknown event, a stage this module does not offer,
            an index outside the module, or an event the stage cannot take.
    """
    if event not in EVENTS:
        raise ValidationError(
            f"Unknown event '{event}'",
            details={"event": event, "valid_events": sorted(EVENTS)},
        )

    steps = enabled_steps(content)
    if session.stage != STAGE_RESULTS and session.stage not in steps:
        raise ValidationError(
            f"Stage '{session.stage}' is not part of this module",
            details={"stage": session.stage, "enabled_steps": steps},
        )
    if session.stage == STAGE_LESSON and content.is_deep and session.lesson_index >= content.lesson_count:
        raise ValidationError(
            "Lesson index is outside this module",
            details={"lesson_index": session.lesson_index, "lessons": content.lesson_count},
        )
    if session.stage in QUIZ_STAGES and session.question_index >= _question_count(content, session.stage):
        raise ValidationError(
            "Question index is outside this quiz",
            details={"question_index": session.question_index,
                     "questions": _question_count(content, session.stage)},
        )

    if event == EVENT_START_REVIEW:
        reviewing = TrainingSession(review_mode=True)
        return TransitionResult(reviewing, None, OUTCOME_REVIEW_STARTED)

    if event == EVENT_RETRY:
        if session.stage != STAGE_RESULTS or STAGE_ASSESSMENT not in steps:
            raise ValidationError(
                "Retry is only available from the results of an assessment",
                details={"stage": session.stage},
            )
        retrying = replace(session, stage=STAGE_ASSESSMENT, question_index=0, answers={}, score=None)
        return TransitionResult(retrying, None, OUTCOME_RETRY)

    if event == EVENT_ANSWER:
        return _answer(session, content, value)

    if event == EVENT_PREVIOUS:
        return _previous(session, content, steps)

    return _next(session, content, steps, pass_threshold)
