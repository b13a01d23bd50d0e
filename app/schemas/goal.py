"""
Goal Schemas
============

Pydantic schemas for goals, goal templates and collaboration invites.
"""

import datetime as dt
from typing import Optional
import uuid

from pydantic import Field, field_validator

from app.models.goal import GoalStatus
from app.schemas.common import CamelModel, coerce_date


class SubGoalIn(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    completed: bool = False


class MilestoneIn(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    date: Optional[dt.date] = None
    completed: bool = False

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return coerce_date(v)


class AttachmentIn(CamelModel):
    url: str = Field(min_length=1, max_length=1000)
    name: str = Field(default="", max_length=255)
    type: str = Field(default="", max_length=100)


class GoalCreate(CamelModel):
    """Request schema for creating a goal."""

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    target_date: Optional[dt.date] = None
    category: str = Field(default="General", max_length=50)
    sub_goals: list[SubGoalIn] = Field(default_factory=list)
    milestones: list[MilestoneIn] = Field(default_factory=list)
    dependencies: list[uuid.UUID] = Field(default_factory=list)
    attachments: list[AttachmentIn] = Field(default_factory=list)

    @field_validator("target_date", mode="before")
    @classmethod
    def parse_target_date(cls, v):
        return coerce_date(v)


class GoalUpdate(CamelModel):
    """
    Request schema for a partial goal update.

    Only fields present in the request body are applied.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    target_date: Optional[dt.date] = None
    status: Optional[GoalStatus] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    category: Optional[str] = Field(None, max_length=50)
    sub_goals: Optional[list[SubGoalIn]] = None
    milestones: Optional[list[MilestoneIn]] = None
    dependencies: Optional[list[uuid.UUID]] = None
    attachments: Optional[list[AttachmentIn]] = None

    @field_validator("target_date", mode="before")
    @classmethod
    def parse_target_date(cls, v):
        return coerce_date(v)


class GoalInviteRequest(CamelModel):
    """Invite another user, by username, to collaborate on a goal."""

    username: str = Field(min_length=1, max_length=50)


class GoalFromTemplate(CamelModel):
    """Optional body when instantiating a goal template."""

    target_date: Optional[dt.date] = None

    @field_validator("target_date", mode="before")
    @classmethod
    def parse_target_date(cls, v):
        return coerce_date(v)
