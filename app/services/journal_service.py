"""
Journal Service
===============

Business logic for journal entries.
"""

from typing import Any, Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, ForbiddenError, NotFoundError
from app.models.achievement import ActivityType
from app.models.journal import JournalEntry, Mood
from app.models.user import User
from app.schemas.journal import JournalEntryCreate, JournalEntryUpdate
from app.services.achievement_service import AchievementService, achievement_to_dict
from app.services.cache import CacheInvalidator
from app.services.gamification import GamificationService, XPValues


MOOD_ICONS = {
    Mood.TERRIBLE: "😢",
    Mood.BAD: "😕",
    Mood.NEUTRAL: "😐",
    Mood.GOOD: "🙂",
    Mood.GREAT: "😄",
}


def entry_to_dict(entry: JournalEntry) -> dict[str, Any]:
    """Serialize a journal entry for API responses."""
    return {
        "id": str(entry.entry_id),
        "userId": str(entry.user_id),
        "content": entry.content,
        "mood": entry.mood.value,
        "moodIcon": MOOD_ICONS.get(entry.mood),
        "tags": list(entry.tags or []),
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
        "updatedAt": entry.updated_at.isoformat() if entry.updated_at else None,
    }


class JournalService:
    """Service for journal operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.achievements = AchievementService(db)
        self.gamification = GamificationService(db)

    async def list_for_user(self, user_id: uuid.UUID) -> list[JournalEntry]:
        """All entries of a user, newest first."""
        stmt = (
            select(JournalEntry)
            .where(JournalEntry.user_id == user_id)
            .order_by(JournalEntry.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_owned(self, entry_id: uuid.UUID, user_id: uuid.UUID) -> JournalEntry:
        """Get journal entry by ID ensuring it belongs to user."""
        entry = await self.db.get(JournalEntry, entry_id)
        if entry is None:
            raise NotFoundError(code=ErrorCodes.JOURNAL_NOT_FOUND, message="Entry not found")
        if entry.user_id != user_id:
            raise ForbiddenError(message="Not authorized to access this entry")
        return entry

    async def count_for_user(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(JournalEntry.entry_id)).where(JournalEntry.user_id == user_id)
        )
        return result.scalar_one()

    async def create_entry(
        self,
        user: User,
        entry_data: JournalEntryCreate,
    ) -> tuple[JournalEntry, Optional[dict], list[dict]]:
        """
        Create a journal entry.

        Records a ``journal_entry`` activity, awards XP and unlocks the
        1 / 5 / 10 entry milestones.

        Returns:
            (entry, xp award or None, unlocked achievements)
        """
        entry = JournalEntry(
            user_id=user.user_id,
            content=entry_data.content,
            mood=entry_data.mood,
            tags=entry_data.tags,
        )
        self.db.add(entry)
        await self.db.flush()

        await self.achievements.record_activity(
            user.user_id,
            ActivityType.JOURNAL_ENTRY,
            title="Mindful Reflection",
            description="Documented thoughts and feelings in the journal.",
            reference_id=entry.entry_id,
            icon="📝",
        )
        award = await self.gamification.award_xp(user, XPValues.JOURNAL_ENTRY)

        unlocked = []
        achievement = await self.achievements.check_journal_milestones(
            user.user_id, await self.count_for_user(user.user_id),
        )
        if achievement is not None:
            unlocked.append(achievement_to_dict(achievement))

        await CacheInvalidator.on_journal_change(str(user.user_id))
        return entry, award.to_dict() if award else None, unlocked

    async def update_entry(
        self,
        entry: JournalEntry,
        entry_data: JournalEntryUpdate,
    ) -> JournalEntry:
        """Update an existing journal entry."""
        if entry_data.content is not None:
            entry.content = entry_data.content
        if entry_data.mood is not None:
            entry.mood = entry_data.mood
        if entry_data.tags is not None:
            entry.tags = entry_data.tags

        await self.db.flush()
        return entry

    async def delete_entry(self, entry: JournalEntry) -> None:
        await self.db.delete(entry)
        await self.db.flush()
        await CacheInvalidator.on_journal_change(str(entry.user_id))
