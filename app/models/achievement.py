"""
Achievement & Activity Models
=============================

SQLAlchemy models for unlocked achievements and the append-only activity
feed.
"""

from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    Boolean,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, CreatedAtMixin, JSONType


class AchievementType(str, Enum):
    """Achievement categories."""
    FIRST_HABIT = "first_habit"
    WEEK_STREAK = "week_streak"
    MONTH_STREAK = "month_streak"
    FIRST_GOAL = "first_goal"
    GOAL_COMPLETED = "goal_completed"
    JOURNAL_ENTRY = "journal_entry"
    PERFECT_WEEK = "perfect_week"


class ActivityType(str, Enum):
    """Activity feed entry types."""
    HABIT_COMPLETED = "habit_completed"
    GOAL_CREATED = "goal_created"
    GOAL_COMPLETED = "goal_completed"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    LEVEL_UP = "level_up"
    COLLABORATION_JOINED = "collaboration_joined"
    JOURNAL_ENTRY = "journal_entry"


class Achievement(Base, CreatedAtMixin):
    """
    Achievement unlocked by a user.
    """

    __tablename__ = "achievements"

    achievement_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[AchievementType] = mapped_column(
        SQLEnum(
            AchievementType,
            name="achievementtype",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(20), default="🏆", nullable=False)
    is_shared: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_achievement_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Achievement(user_id={self.user_id}, type={self.type})>"


class Activity(Base, CreatedAtMixin):
    """
    Activity feed entry. Rows are only ever appended.

    ``details`` maps to the ``metadata`` column and holds
    ``{reference_id, icon, value}``.
    """

    __tablename__ = "activities"

    activity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[ActivityType] = mapped_column(
        SQLEnum(
            ActivityType,
            name="activitytype",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict] = mapped_column("metadata", JSONType, nullable=False, default=dict)

    __table_args__ = (
        Index("idx_activity_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Activity(user_id={self.user_id}, type={self.type})>"
