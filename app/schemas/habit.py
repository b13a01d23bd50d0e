"""
Habit Schemas
=============

Pydantic schemas for habit and habit template endpoints.
"""

from typing import Optional

from pydantic import Field, field_validator

from app.models.habit import HabitFrequency
from app.schemas.common import CamelModel
from app.utils.validators import validate_hex_color, validate_reminder_time


class HabitCreate(CamelModel):
    """Request schema for creating a habit."""

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    frequency: HabitFrequency = HabitFrequency.DAILY
    icon: str = Field(default="✓", max_length=20)
    color: str = "#10B981"
    category: str = Field(default="general", max_length=50)
    tags: list[str] = Field(default_factory=list)
    reminder_time: Optional[str] = None
    is_public: bool = False

    @field_validator("reminder_time")
    @classmethod
    def check_reminder_time(cls, v: Optional[str]) -> Optional[str]:
        return validate_reminder_time(v) if v else None

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str) -> str:
        return validate_hex_color(v)


class HabitUpdate(CamelModel):
    """Request schema for a partial habit update."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    frequency: Optional[HabitFrequency] = None
    icon: Optional[str] = Field(None, max_length=20)
    color: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    tags: Optional[list[str]] = None
    reminder_time: Optional[str] = None
    is_public: Optional[bool] = None

    @field_validator("reminder_time")
    @classmethod
    def check_reminder_time(cls, v: Optional[str]) -> Optional[str]:
        return validate_reminder_time(v) if v else v

    @field_validator("color")
    @classmethod
    def check_color(cls, v: Optional[str]) -> Optional[str]:
        return validate_hex_color(v) if v is not None else None


class HabitNoteCreate(CamelModel):
    """Request schema for attaching a note to a habit."""

    text: str = Field(min_length=1, max_length=1000)


class HabitTemplateCreate(CamelModel):
    """Request schema for adding a habit template (admin)."""

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: str = Field(min_length=1, max_length=50)
    icon: str = Field(default="✓", max_length=20)
    color: str = "#10B981"
    frequency: HabitFrequency = HabitFrequency.DAILY
    tags: list[str] = Field(default_factory=list)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str) -> str:
        return validate_hex_color(v)
