"""
Ministry Hub
Training domain models.

Models:
    - TrainingModule:        authored instructional unit (lessons, reflection
                             questions, knowledge check, scored assessment)
    - UserTrainingProgress:  one record per (member, module) pair

Architecture:
    Ministry ──1:N──▶ TrainingModule ──1:N──▶ UserTrainingProgress ◀──N:1── Member

Lifecycle states (UserTrainingProgress):
    not-started → in-progress → completed → approved
                                          → rejected → in-progress
    "submitted" is the leader-review alias of completed for modules that
    require approval.
"""

from datetime import datetime, timezone

from ministry_hub.models import db


# ── Constants ────────────────────────────────────────────────────────────────

TRAINING_AUDIENCES = {"all", "leader", "ministry"}

PROGRESS_STATUSES = {
    "not-started", "in-progress", "submitted",
    "completed", "approved", "rejected",
}

# Statuses counted as "done" in hub summaries and next-module lookups
COMPLETED_STATUSES = {"completed", "approved"}

# Statuses awaiting a leader decision
AWAITING_REVIEW_STATUSES = {"completed", "submitted"}

# Statuses from which the member may revisit content without writing progress
REVIEWABLE_STATUSES = {"completed", "approved", "submitted", "rejected"}

# Statuses a member may write; approved/rejected belong to leaders
MEMBER_STATUSES = {"in-progress", "completed", "submitted"}

PROGRESS_TRANSITIONS = {
    "not-started": ["in-progress", "completed"],
    "in-progress": ["in-progress", "completed"],
    "completed":   ["approved", "rejected"],
    "submitted":   ["approved", "rejected"],
    "approved":    [],
    "rejected":    ["in-progress", "completed"],
}


def validate_progress_transition(old_status, new_status):
    """Return True if UserTrainingProgress status transition is valid."""
    return new_status in PROGRESS_TRANSITIONS.get(old_status, [])


class TrainingModule(db.Model):
    """
    Static training content. List-valued content lives in JSON columns:

    - content_sections:                [{title, content, key_points}]
    - lessons:                         [{title, content, ...}]; non-empty marks a "deep" module
    - study_questions:                 [{question, guidance}]
    - knowledge_check_questions:       [{question, options, correct_answer}]
    - intensive_assessment_questions:  [{question, options, correct_answer, weight}]
    - assessments:                     [{question, options, correct_answer (index)}]
    """

    __tablename__ = "training_modules"

    id = db.Column(db.Integer, primary_key=True)
    ministry_id = db.Column(
        db.Integer, db.ForeignKey("ministries.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    category = db.Column(db.String(50), default="general")
    estimated_minutes = db.Column(db.Integer, nullable=True)
    is_required = db.Column(db.Boolean, default=False)
    audience = db.Column(db.String(20), default="all", comment="all | leader | ministry")
    sort_order = db.Column(db.Integer, default=0)
    requires_approval = db.Column(db.Boolean, default=True)

    lesson_summary = db.Column(db.Text, default="")
    content_sections = db.Column(db.JSON, default=list)
    lessons = db.Column(db.JSON, default=list)
    study_questions = db.Column(db.JSON, default=list)
    knowledge_check_questions = db.Column(db.JSON, default=list)
    intensive_assessment_questions = db.Column(db.JSON, default=list)
    assessments = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    ministry = db.relationship("Ministry")
    progress_records = db.relationship(
        "UserTrainingProgress", back_populates="module",
        lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_dict(self, include_content=False):
        d = {
            "id": self.id,
            "ministry_id": self.ministry_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "estimated_minutes": self.estimated_minutes,
            "is_required": bool(self.is_required),
            "audience": self.audience or "all",
            "sort_order": self.sort_order or 0,
            "requires_approval": self.requires_approval is not False,
        }
        if include_content:
            d.update({
                "lesson_summary": self.lesson_summary,
                "content_sections": self.content_sections or [],
                "lessons": self.lessons or [],
                "study_questions": self.study_questions or [],
                "knowledge_check_questions": self.knowledge_check_questions or [],
                "intensive_assessment_questions": self.intensive_assessment_questions or [],
                "assessments": self.assessments or [],
            })
        return d

    def __repr__(self):
        return f"<TrainingModule {self.id}: {self.title[:40]}>"


class UserTrainingProgress(db.Model):
    """Per-member progress on one module. Never deleted by members."""

    __tablename__ = "user_training_progress"
    __table_args__ = (
        db.UniqueConstraint("member_id", "module_id", name="uq_progress_member_module"),
    )

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(
        db.Integer, db.ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    module_id = db.Column(
        db.Integer, db.ForeignKey("training_modules.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    status = db.Column(db.String(20), nullable=False, default="not-started")
    progress_percent = db.Column(db.Integer, nullable=False, default=0)
    assessment_score = db.Column(db.Integer, nullable=True)

    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    submitted_at = db.Column(db.DateTime, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    approved_by_id = db.Column(
        db.Integer, db.ForeignKey("members.id", ondelete="SET NULL"), nullable=True,
    )
    rejected_at = db.Column(db.DateTime, nullable=True)
    rejection_feedback = db.Column(db.Text, nullable=True)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    module = db.relationship("TrainingModule", back_populates="progress_records")
    member = db.relationship("Member", foreign_keys=[member_id])

    def to_dict(self):
        return {
            "id": self.id,
            "member_id": self.member_id,
            "module_id": self.module_id,
            "status": self.status,
            "progress_percent": self.progress_percent or 0,
            "assessment_score": self.assessment_score,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "approved_by_id": self.approved_by_id,
            "rejected_at": self.rejected_at.isoformat() if self.rejected_at else None,
            "rejection_feedback": self.rejection_feedback,
        }

    def __repr__(self):
        return f"<UserTrainingProgress member={self.member_id} module={self.module_id} {self.status}>"
