"""
Profile Schemas
===============

Pydantic schemas for user profile and preference endpoints.
"""

from typing import Optional

from pydantic import Field

from app.schemas.common import CamelModel


class ProfileUpdate(CamelModel):
    """Request schema for profile updates."""

    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=255)
    website: Optional[str] = Field(None, max_length=500)


class PreferencesUpdate(CamelModel):
    """Request schema for preference updates. Omitted fields are unchanged."""

    dark_mode: Optional[bool] = None
    email_notifications: Optional[bool] = None
    habit_reminders: Optional[bool] = None
    goal_reminders: Optional[bool] = None
    gamification_enabled: Optional[bool] = None
    reminder_days_before: Optional[int] = Field(None, ge=1, le=30)
