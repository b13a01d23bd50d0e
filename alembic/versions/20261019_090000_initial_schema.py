"""Initial schema: users, habits, goals, journal, achievements, activities

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    "habitfrequency": ("daily", "weekly"),
    "goalstatus": ("pending", "in-progress", "completed"),
    "invitationstatus": ("pending", "accepted"),
    "mood": ("terrible", "bad", "neutral", "good", "great"),
    "achievementtype": (
        "first_habit", "week_streak", "month_streak", "first_goal",
        "goal_completed", "journal_entry", "perfect_week",
    ),
    "activitytype": (
        "habit_completed", "goal_created", "goal_completed", "achievement_unlocked",
        "level_up", "collaboration_joined", "journal_entry",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created once up front
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps(created_only: bool = False) -> list[sa.Column]:
    columns = [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if not created_only:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
    return columns


def _user_fk() -> sa.Column:
    return sa.Column(
        "user_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Upgrade database schema."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    jsonb = postgresql.JSONB()

    op.create_table(
        "users",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("verification_code", sa.String(6), nullable=True),
        sa.Column("verification_code_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reset_password_code", sa.String(6), nullable=True),
        sa.Column("reset_password_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bio", sa.Text(), nullable=False),
        sa.Column("avatar", sa.String(500), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("website", sa.String(500), nullable=False),
        sa.Column("preferences", jsonb, nullable=False),
        sa.Column("followers", jsonb, nullable=False),
        sa.Column("following", jsonb, nullable=False),
        sa.Column("xp", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "habits",
        sa.Column("habit_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("frequency", _enum("habitfrequency"), nullable=False),
        sa.Column("streak", sa.Integer(), nullable=False),
        sa.Column("completed_dates", jsonb, nullable=False),
        sa.Column("icon", sa.String(20), nullable=False),
        sa.Column("color", sa.String(20), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("tags", jsonb, nullable=False),
        sa.Column("reminder_time", sa.String(5), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("notes", jsonb, nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_habit_user_created", "habits", ["user_id", "created_at"])

    op.create_table(
        "habit_templates",
        sa.Column("template_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("icon", sa.String(20), nullable=False),
        sa.Column("color", sa.String(20), nullable=False),
        sa.Column("frequency", _enum("habitfrequency"), nullable=False),
        sa.Column("tags", jsonb, nullable=False),
        sa.Column("popularity", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "goals",
        sa.Column("goal_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_date", sa.Date(), nullable=True),
        sa.Column("status", _enum("goalstatus"), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("sub_goals", jsonb, nullable=False),
        sa.Column("milestones", jsonb, nullable=False),
        sa.Column("dependencies", jsonb, nullable=False),
        sa.Column("collaborators", jsonb, nullable=False),
        sa.Column("attachments", jsonb, nullable=False),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False),
        sa.Column("last_reminder_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_goal_user_target", "goals", ["user_id", "target_date"])
    op.create_index("idx_goal_reminder", "goals", ["status", "target_date", "reminder_sent"])

    op.create_table(
        "goal_templates",
        sa.Column("template_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("icon", sa.String(20), nullable=False),
        sa.Column("sub_goals", jsonb, nullable=False),
        sa.Column("milestones", jsonb, nullable=False),
        sa.Column("popularity", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "goal_invitations",
        sa.Column("invitation_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "goal_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("goals.goal_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "inviter_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "invitee_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("status", _enum("invitationstatus"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_goal_invitations_token", "goal_invitations", ["token"], unique=True)

    op.create_table(
        "journal_entries",
        sa.Column("entry_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("mood", _enum("mood"), nullable=False),
        sa.Column("tags", jsonb, nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_journal_user_created", "journal_entries", ["user_id", "created_at"])
    op.create_index("idx_journal_mood", "journal_entries", ["user_id", "mood"])

    op.create_table(
        "achievements",
        sa.Column("achievement_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("type", _enum("achievementtype"), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(20), nullable=False),
        sa.Column("is_shared", sa.Boolean(), nullable=False),
        *_timestamps(created_only=True),
    )
    op.create_index("idx_achievement_user_created", "achievements", ["user_id", "created_at"])

    op.create_table(
        "activities",
        sa.Column("activity_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("type", _enum("activitytype"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metadata", jsonb, nullable=False),
        *_timestamps(created_only=True),
    )
    op.create_index("idx_activity_user_created", "activities", ["user_id", "created_at"])


def downgrade() -> None:
    """Downgrade database schema."""
    for table in (
        "activities",
        "achievements",
        "journal_entries",
        "goal_invitations",
        "goal_templates",
        "goals",
        "habit_templates",
        "habits",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
