"""
Journal Models
==============

SQLAlchemy model for free-text journal entries.
"""

from enum import Enum
import uuid

from sqlalchemy import (
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType, TimestampMixin


class Mood(str, Enum):
    """Mood values, worst to best."""
    TERRIBLE = "terrible"  # 1
    BAD = "bad"  # 2
    NEUTRAL = "neutral"  # 3
    GOOD = "good"  # 4
    GREAT = "great"  # 5


class JournalEntry(Base, TimestampMixin):
    """
    Journal entry model.

    Stores free-text reflections with a mood and tags.
    """

    __tablename__ = "journal_entries"

    # Primary Key
    entry_id: Mapped[uuid.UUID] = mapped_column(
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

    # Entry details
    content: Mapped[str] = mapped_column(Text, nullable=False)
    mood: Mapped[Mood] = mapped_column(
        SQLEnum(Mood, name="mood", values_callable=lambda e: [m.value for m in e]),
        default=Mood.NEUTRAL,
        nullable=False,
    )
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Constraints and Indexes
    __table_args__ = (
        Index("idx_journal_user_created", "user_id", "created_at"),
        Index("idx_journal_mood", "user_id", "mood"),
    )

    def __repr__(self) -> str:
        return f"<JournalEntry(user_id={self.user_id}, mood={self.mood})>"
