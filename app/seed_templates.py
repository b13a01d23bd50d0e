"""
Template Seeding
================

Replaces the habit and goal template catalogues with the built-in set.

Usage:
    python -m app.seed_templates
"""

import asyncio
import logging

from sqlalchemy import delete

from app.db.session import close_db, get_session_factory
from app.models.goal import GoalTemplate
from app.models.habit import HabitFrequency, HabitTemplate

logger = logging.getLogger(__name__)


def _habit(title, description, category, icon, color, tags, frequency=HabitFrequency.DAILY):
    return {
        "title": title,
        "description": description,
        "category": category,
        "icon": icon,
        "color": color,
        "frequency": frequency,
        "tags": tags,
    }


HABIT_TEMPLATES = [
    # Health & Fitness
    _habit("Morning Exercise", "30 minutes of physical activity", "health", "💪", "#EF4444", ["fitness", "health"]),
    _habit("Drink 8 Glasses of Water", "Stay hydrated throughout the day", "health", "💧", "#3B82F6", ["health", "wellness"]),
    _habit("Meditation", "10 minutes of mindfulness", "wellness", "🧘", "#8B5CF6", ["mindfulness", "mental-health"]),
    _habit("Healthy Breakfast", "Start the day with nutritious food", "health", "🥗", "#10B981", ["nutrition", "health"]),
    _habit("Evening Walk", "20-minute walk before bed", "health", "🚶", "#F59E0B", ["fitness", "wellness"]),
    # Productivity
    _habit("Read for 30 Minutes", "Daily reading habit", "learning", "📚", "#6366F1", ["learning", "growth"]),
    _habit("Learn Something New", "Dedicate time to learning", "learning", "🎓", "#8B5CF6", ["education", "growth"]),
    _habit("Practice Coding", "1 hour of programming practice", "skill", "💻", "#06B6D4", ["coding", "skill-building"]),
    _habit("Write in Journal", "Reflect on your day", "reflection", "📝", "#F59E0B", ["journaling", "reflection"]),
    _habit("Plan Tomorrow", "Set goals for the next day", "productivity", "📋", "#10B981", ["planning", "organization"]),
    # Personal Development
    _habit("Practice Gratitude", "Write 3 things you're grateful for", "mindfulness", "🙏", "#EC4899", ["gratitude", "mindfulness"]),
    _habit("No Social Media", "Avoid social media for the day", "digital-detox", "📵", "#EF4444", ["focus", "wellness"]),
    _habit(
        "Call a Friend/Family", "Stay connected with loved ones", "social", "📞", "#3B82F6",
        ["relationships", "social"], HabitFrequency.WEEKLY,
    ),
    _habit("Practice a Language", "20 minutes of language learning", "learning", "🗣️", "#8B5CF6", ["language", "learning"]),
    _habit("Creative Work", "Spend time on creative projects", "creativity", "🎨", "#EC4899", ["creativity", "hobbies"]),
    # Lifestyle
    _habit("Make Your Bed", "Start the day with a small win", "routine", "🛏️", "#6366F1", ["routine", "discipline"]),
    _habit("Clean for 15 Minutes", "Maintain a tidy space", "routine", "🧹", "#10B981", ["organization", "routine"]),
    _habit("No Caffeine After 2 PM", "Better sleep hygiene", "health", "☕", "#F59E0B", ["sleep", "health"]),
    _habit("Stretch", "10 minutes of stretching", "health", "🤸", "#EF4444", ["flexibility", "health"]),
    _habit("Track Expenses", "Log daily spending", "finance", "💰", "#10B981", ["finance", "budgeting"]),
]

GOAL_TEMPLATES = [
    {
        "title": "Run a 5K",
        "description": "Go from the couch to running 5 kilometres without stopping",
        "category": "Health",
        "icon": "🏃",
        "sub_goals": [
            {"title": "Buy running shoes"},
            {"title": "Run 1K without stopping"},
            {"title": "Run 3K without stopping"},
            {"title": "Run 5K"},
        ],
        "milestones": [
            {"title": "First week of training done", "relative_days": 7},
            {"title": "Halfway through the plan", "relative_days": 28},
            {"title": "Race day", "relative_days": 56},
        ],
    },
    {
        "title": "Read 12 Books",
        "description": "Finish one book a month for a year",
        "category": "Learning",
        "icon": "📚",
        "sub_goals": [
            {"title": "Pick the reading list"},
            {"title": "Finish 3 books"},
            {"title": "Finish 6 books"},
            {"title": "Finish 12 books"},
        ],
        "milestones": [
            {"title": "First quarter", "relative_days": 90},
            {"title": "Half year", "relative_days": 182},
            {"title": "Full year", "relative_days": 365},
        ],
    },
    {
        "title": "Build an Emergency Fund",
        "description": "Save three months of expenses",
        "category": "Finance",
        "icon": "💰",
        "sub_goals": [
            {"title": "Calculate monthly expenses"},
            {"title": "Open a savings account"},
            {"title": "Set up an automatic transfer"},
            {"title": "Reach one month of expenses"},
            {"title": "Reach three months of expenses"},
        ],
        "milestones": [
            {"title": "Budget in place", "relative_days": 7},
            {"title": "One month saved", "relative_days": 60},
            {"title": "Fund complete", "relative_days": 180},
        ],
    },
    {
        "title": "Launch a Side Project",
        "description": "Ship a small project from idea to first users",
        "category": "Career",
        "icon": "🚀",
        "sub_goals": [
            {"title": "Write down the idea and scope"},
            {"title": "Build the first version"},
            {"title": "Get feedback from 5 people"},
            {"title": "Launch publicly"},
        ],
        "milestones": [
            {"title": "Scope agreed", "relative_days": 3},
            {"title": "First version ready", "relative_days": 30},
            {"title": "Launch", "relative_days": 45},
        ],
    },
]


async def seed_templates() -> None:
    """Delete all templates and insert the built-in catalogue."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            await session.execute(delete(HabitTemplate))
            await session.execute(delete(GoalTemplate))
            logger.info("Cleared existing templates")

            session.add_all(HabitTemplate(**t) for t in HABIT_TEMPLATES)
            session.add_all(GoalTemplate(**t) for t in GOAL_TEMPLATES)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info(
        "Inserted %d habit templates and %d goal templates",
        len(HABIT_TEMPLATES),
        len(GOAL_TEMPLATES),
    )


async def main() -> None:
    try:
        await seed_templates()
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
