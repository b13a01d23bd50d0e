"""
Journal Schemas
===============

Pydantic schemas for journal entry endpoints.
"""

from typing import Optional

from pydantic import Field

from app.models.journal import Mood
from app.schemas.common import CamelModel


class JournalEntryCreate(CamelModel):
    """Request schema for creating a journal entry."""

    content: str = Field(min_length=1, max_length=20000)
    mood: Mood = Mood.NEUTRAL
    tags: list[str] = Field(default_factory=list)


class JournalEntryUpdate(CamelModel):
    """Request schema for updating a journal entry."""

    content: Optional[str] = Field(None, min_length=1, max_length=20000)
    mood: Optional[Mood] = None
    tags: Optional[list[str]] = None
