"""
Habit Models
============

SQLAlchemy models for habits and the global habit template catalogue.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import (
    Boolean,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from app.models.user import User


class HabitFrequency(str, Enum):
    """How often a habit is meant to be performed."""
    DAILY = "daily"
    WEEKLY = "weekly"


class Habit(Base, TimestampMixin):
    """
    Habit model.

    ``completed_dates`` holds ISO-8601 timestamps of every check-in and is
    the source of truth for "completed today". ``streak`` is a counter
    maintained by the check-in toggle.
    """

    __tablename__ = "habits"

    # Primary Key
    habit_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Key
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )

    # Habit details
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    frequency: Mapped[HabitFrequency] = mapped_column(
        SQLEnum(
            HabitFrequency,
            name="habitfrequency",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=HabitFrequency.DAILY,
        nullable=False,
    )

    # Tracking
    streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_dates: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Display metadata
    icon: Mapped[str] = mapped_column(String(20), default="✓", nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#10B981", nullable=False)
    category: Mapped[str] = mapped_column(String(50), default="general", nullable=False)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Reminder config ("HH:MM" in the user's local time)
    reminder_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="habits")

    __table_args__ = (
        Index("idx_habit_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Habit(habit_id={self.habit_id}, title={self.title}, streak={self.streak})>"


class HabitTemplate(Base, TimestampMixin):
    """
    Global habit template.

    Seed content used to instantiate a Habit. ``popularity`` counts how
    many habits were created from it.
    """

    __tablename__ = "habit_templates"

    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    icon: Mapped[str] = mapped_column(String(20), default="✓", nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#10B981", nullable=False)
    frequency: Mapped[HabitFrequency] = mapped_column(
        SQLEnum(
            HabitFrequency,
            name="habitfrequency",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=HabitFrequency.DAILY,
        nullable=False,
    )
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    popularity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<HabitTemplate(title={self.title}, popularity={self.popularity})>"
