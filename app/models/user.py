"""
User Model
==========

SQLAlchemy model for user accounts, preferences, social edges and
gamification counters.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional
import uuid

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from app.models.goal import Goal
    from app.models.habit import Habit


DEFAULT_PREFERENCES: dict[str, Any] = {
    "dark_mode": False,
    "email_notifications": True,
    "habit_reminders": True,
    "goal_reminders": True,
    "gamification_enabled": True,
    "reminder_days_before": 3,
}


class User(Base, TimestampMixin):
    """
    User account model.

    Stores account, profile, preference and social information.
    """

    __tablename__ = "users"

    # Primary Key
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Account fields
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Verification / password reset
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    verification_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    verification_code_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    reset_password_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    reset_password_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Profile
    bio: Mapped[str] = mapped_column(Text, default="", nullable=False)
    avatar: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    location: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    website: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    # Preferences
    preferences: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        default=lambda: dict(DEFAULT_PREFERENCES),
    )

    # Social edges (user ids as strings), kept symmetric across users
    followers: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    following: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Gamification
    xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Relationships
    habits: Mapped[list["Habit"]] = relationship(
        "Habit",
        back_populates="user",
        lazy="dynamic",
    )
    goals: Mapped[list["Goal"]] = relationship(
        "Goal",
        back_populates="user",
        lazy="dynamic",
        foreign_keys="Goal.user_id",
    )

    @property
    def prefs(self) -> dict[str, Any]:
        """Stored preferences merged over the defaults."""
        return {**DEFAULT_PREFERENCES, **(self.preferences or {})}

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, username={self.username})>"
