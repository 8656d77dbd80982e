"""initial_ministry_hub_schema

Create members, ministries, discipleship path, training and room booking tables.

Revision ID: b7c1e4d2a9f0
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "b7c1e4d2a9f0"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "members" not in existing_tables:
        op.create_table(
            "members",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )
        op.create_index("ix_members_email", "members", ["email"])

    if "ministries" not in existing_tables:
        op.create_table(
            "ministries",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name"),
        )

    if "ministry_assignments" not in existing_tables:
        op.create_table(
            "ministry_assignments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("member_id", sa.Integer(), nullable=False),
            sa.Column("ministry_id", sa.Integer(), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("joined_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["ministry_id"], ["ministries.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("member_id", "ministry_id", name="uq_assignment_member_ministry"),
        )
        op.create_index("ix_ministry_assignments_member_id", "ministry_assignments", ["member_id"])
        op.create_index("ix_ministry_assignments_ministry_id", "ministry_assignments", ["ministry_id"])

    if "ministry_path_progress" not in existing_tables:
        op.create_table(
            "ministry_path_progress",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("member_id", sa.Integer(), nullable=False),
            sa.Column("has_attended_sunday", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("has_attended_next_night", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("learn_status", sa.String(length=20), nullable=False, server_default="not-started"),
            sa.Column("love_status", sa.String(length=20), nullable=False, server_default="not-started"),
            sa.Column("lead_status", sa.String(length=20), nullable=False, server_default="not-started"),
            sa.Column("last_updated", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_ministry_path_progress_member_id", "ministry_path_progress", ["member_id"], unique=True,
        )

    if "training_modules" not in existing_tables:
        op.create_table(
            "training_modules",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("ministry_id", sa.Integer(), nullable=True),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=50), nullable=True),
            sa.Column("estimated_minutes", sa.Integer(), nullable=True),
            sa.Column("is_required", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("audience", sa.String(length=20), nullable=True, server_default="all"),
            sa.Column("sort_order", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("requires_approval", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("lesson_summary", sa.Text(), nullable=True),
            sa.Column("content_sections", sa.JSON(), nullable=True),
            sa.Column("lessons", sa.JSON(), nullable=True),
            sa.Column("study_questions", sa.JSON(), nullable=True),
            sa.Column("knowledge_check_questions", sa.JSON(), nullable=True),
            sa.Column("intensive_assessment_questions", sa.JSON(), nullable=True),
            sa.Column("assessments", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["ministry_id"], ["ministries.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_training_modules_ministry_id", "training_modules", ["ministry_id"])

    if "user_training_progress" not in existing_tables:
        op.create_table(
            "user_training_progress",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("member_id", sa.Integer(), nullable=False),
            sa.Column("module_id", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="not-started"),
            sa.Column("progress_percent", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("assessment_score", sa.Integer(), nullable=True),
            sa.Column("started_at", sa.DateTime(), nullable=True),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            sa.Column("submitted_at", sa.DateTime(), nullable=True),
            sa.Column("approved_at", sa.DateTime(), nullable=True),
            sa.Column("approved_by_id", sa.Integer(), nullable=True),
            sa.Column("rejected_at", sa.DateTime(), nullable=True),
            sa.Column("rejection_feedback", sa.Text(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["module_id"], ["training_modules.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["approved_by_id"], ["members.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("member_id", "module_id", name="uq_progress_member_module"),
        )
        op.create_index("ix_user_training_progress_member_id", "user_training_progress", ["member_id"])
        op.create_index("ix_user_training_progress_module_id", "user_training_progress", ["module_id"])

    if "rooms" not in existing_tables:
        op.create_table(
            "rooms",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("capacity", sa.Integer(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("location", sa.String(length=200), nullable=True),
            sa.Column("amenities", sa.JSON(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "room_reservations" not in existing_tables:
        op.create_table(
            "room_reservations",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("room_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("start_time", sa.DateTime(), nullable=False),
            sa.Column("end_time", sa.DateTime(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("attendee_count", sa.Integer(), nullable=True),
            sa.Column("requested_by_id", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["room_id"], ["rooms.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["requested_by_id"], ["members.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_room_reservations_room_id", "room_reservations", ["room_id"])
        op.create_index("ix_reservation_room_start", "room_reservations", ["room_id", "start_time"])


def downgrade():
    existing_tables = set(sa_inspect(op.get_bind()).get_table_names())
    for table in (
        "room_reservations", "rooms",
        "user_training_progress", "training_modules",
        "ministry_path_progress", "ministry_assignments", "ministries", "members",
    ):
        if table in existing_tables:
            op.drop_table(table)
