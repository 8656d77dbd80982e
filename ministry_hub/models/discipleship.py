"""
Ministry Hub
Discipleship path model.

Models:
    - MinistryPathProgress: one row per member tracking the five-stage path
      (Worship → Next Night → Learn → Love → Lead)

Worship and Next Night are boolean attendance flags; Learn, Love and Lead
carry a tri-state status.
"""

from datetime import datetime, timezone

from ministry_hub.models import db


# ── Constants ────────────────────────────────────────────────────────────────

PATH_STATUSES = {"not-started", "in-progress", "complete"}


class MinistryPathProgress(db.Model):
    __tablename__ = "ministry_path_progress"

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(
        db.Integer, db.ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False, unique=True, index=True,
    )
    has_attended_sunday = db.Column(db.Boolean, nullable=False, default=False)
    has_attended_next_night = db.Column(db.Boolean, nullable=False, default=False)
    learn_status = db.Column(db.String(20), nullable=False, default="not-started")
    love_status = db.Column(db.String(20), nullable=False, default="not-started")
    lead_status = db.Column(db.String(20), nullable=False, default="not-started")
    last_updated = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "member_id": self.member_id,
            "has_attended_sunday": bool(self.has_attended_sunday),
            "has_attended_next_night": bool(self.has_attended_next_night),
            "learn_status": self.learn_status or "not-started",
            "love_status": self.love_status or "not-started",
            "lead_status": self.lead_status or "not-started",
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    def __repr__(self):
        return f"<MinistryPathProgress member={self.member_id}>"
