"""
Database Models
===============

SQLAlchemy ORM models for all database entities.

All models are imported here to ensure they are registered
with SQLAlchemy's metadata for migrations and relationships.
"""

from app.models.user import User, DEFAULT_PREFERENCES
from app.models.habit import Habit, HabitTemplate, HabitFrequency
from app.models.goal import (
    Goal,
    GoalTemplate,
    GoalInvitation,
    GoalStatus,
    InvitationStatus,
)
from app.models.journal import JournalEntry, Mood
from app.models.achievement import (
    Achievement,
    AchievementType,
    Activity,
    ActivityType,
)

__all__ = [
    # User
    "User",
    "DEFAULT_PREFERENCES",
    # Habit
    "Habit",
    "HabitTemplate",
    "HabitFrequency",
    # Goal
    "Goal",
    "GoalTemplate",
    "GoalInvitation",
    "GoalStatus",
    "InvitationStatus",
    # Journal
    "JournalEntry",
    "Mood",
    # Achievements & activity
    "Achievement",
    "AchievementType",
    "Activity",
    "ActivityType",
]
