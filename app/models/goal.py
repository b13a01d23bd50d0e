"""
Goal Models
===========

SQLAlchemy models for goals, goal templates and collaboration invitations.
"""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
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


# =============================================================================
# Enums
# =============================================================================

class GoalStatus(str, Enum):
    """Goal lifecycle status."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class InvitationStatus(str, Enum):
    """Collaboration invitation status."""
    PENDING = "pending"
    ACCEPTED = "accepted"


# =============================================================================
# Models
# =============================================================================

class Goal(Base, TimestampMixin):
    """
    Goal model.

    ``reminder_sent`` and ``last_reminder_date`` form the idempotency guard
    of the daily deadline reminder sweep.
    """

    __tablename__ = "goals"

    # Primary Key
    goal_id: Mapped[uuid.UUID] = mapped_column(
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

    # Goal details
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    target_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[GoalStatus] = mapped_column(
        SQLEnum(
            GoalStatus,
            name="goalstatus",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=GoalStatus.PENDING,
        nullable=False,
    )
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category: Mapped[str] = mapped_column(String(50), default="General", nullable=False)

    # Nested content
    sub_goals: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    milestones: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    dependencies: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    collaborators: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    attachments: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Deadline reminder idempotency guard
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_reminder_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="goals",
        foreign_keys=[user_id],
    )

    __table_args__ = (
        Index("idx_goal_user_target", "user_id", "target_date"),
        Index("idx_goal_reminder", "status", "target_date", "reminder_sent"),
    )

    def __repr__(self) -> str:
        return f"<Goal(goal_id={self.goal_id}, title={self.title}, status={self.status})>"


class GoalTemplate(Base, TimestampMixin):
    """
    Global goal template with suggested sub-goals and milestones.

    Milestones carry ``relative_days`` measured from the day the goal is
    instantiated.
    """

    __tablename__ = "goal_templates"

    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), default="General", nullable=False)
    icon: Mapped[str] = mapped_column(String(20), default="🎯", nullable=False)
    sub_goals: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    milestones: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    popularity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<GoalTemplate(title={self.title})>"


class GoalInvitation(Base, TimestampMixin):
    """
    Invitation for another user to collaborate on a goal.
    """

    __tablename__ = "goal_invitations"

    invitation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    goal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("goals.goal_id", ondelete="CASCADE"),
        nullable=False,
    )
    inviter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    invitee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    status: Mapped[InvitationStatus] = mapped_column(
        SQLEnum(
            InvitationStatus,
            name="invitationstatus",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=InvitationStatus.PENDING,
        nullable=False,
    )

    goal: Mapped["Goal"] = relationship("Goal", lazy="selectin")

    def __repr__(self) -> str:
        return f"<GoalInvitation(goal_id={self.goal_id}, status={self.status})>"
