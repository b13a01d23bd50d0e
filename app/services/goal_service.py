"""
Goal Service
============

Business logic for goals: progress derived from sub-goals, status
toggling, dependencies, templates and collaboration invitations.
"""

from datetime import date, timedelta
import logging
from typing import Any, Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    ConflictError,
    ErrorCodes,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.core.security import generate_invitation_token
from app.models.achievement import ActivityType
from app.models.goal import Goal, GoalInvitation, GoalStatus, GoalTemplate, InvitationStatus
from app.models.user import User
from app.schemas.goal import GoalCreate, GoalUpdate
from app.services.achievement_service import AchievementService, achievement_to_dict
from app.services.cache import CacheInvalidator
from app.services.email_service import EmailDispatcher, EmailResult
from app.services.email_templates import goal_invitation_email
from app.services.gamification import GamificationService, XPValues
from app.utils.helpers import round_half_up

logger = logging.getLogger(__name__)


# =============================================================================
# Pure helpers
# =============================================================================

def derive_progress(sub_goals: list[dict]) -> tuple[int, GoalStatus]:
    """
    Progress and status from sub-goal completion.

    ``progress = round(100 * completed / total)``; the goal is completed
    exactly when progress reaches 100, otherwise it is in progress.
    """
    total = len(sub_goals)
    if total == 0:
        raise ValueError("Goal has no sub-goals")
    done = sum(1 for s in sub_goals if s.get("completed"))
    progress = round_half_up(100 * done / total)
    status = GoalStatus.COMPLETED if progress == 100 else GoalStatus.IN_PROGRESS
    return progress, status


def toggled_status(status: GoalStatus) -> tuple[GoalStatus, int]:
    """Completed goals reopen as pending with 0%, anything else completes at 100%."""
    if status == GoalStatus.COMPLETED:
        return GoalStatus.PENDING, 0
    return GoalStatus.COMPLETED, 100


def milestones_from_template(milestones: list[dict], today: date) -> list[dict]:
    """Turn template milestones with ``relative_days`` into dated milestones."""
    return [
        {
            "title": m["title"],
            "date": (today + timedelta(days=int(m.get("relative_days", 0)))).isoformat(),
            "completed": False,
        }
        for m in milestones
    ]


def goal_to_dict(goal: Goal) -> dict[str, Any]:
    """Serialize a goal for API responses."""
    return {
        "id": str(goal.goal_id),
        "userId": str(goal.user_id),
        "title": goal.title,
        "description": goal.description,
        "targetDate": goal.target_date.isoformat() if goal.target_date else None,
        "status": goal.status.value,
        "progress": goal.progress,
        "category": goal.category,
        "subGoals": list(goal.sub_goals or []),
        "milestones": list(goal.milestones or []),
        "dependencies": list(goal.dependencies or []),
        "collaborators": list(goal.collaborators or []),
        "attachments": list(goal.attachments or []),
        "reminderSent": goal.reminder_sent,
        "lastReminderDate": goal.last_reminder_date.isoformat() if goal.last_reminder_date else None,
        "createdAt": goal.created_at.isoformat() if goal.created_at else None,
    }


def goal_template_to_dict(template: GoalTemplate) -> dict[str, Any]:
    return {
        "id": str(template.template_id),
        "title": template.title,
        "description": template.description,
        "category": template.category,
        "icon": template.icon,
        "subGoals": list(template.sub_goals or []),
        "milestones": list(template.milestones or []),
        "popularity": template.popularity,
    }


def invitation_to_dict(invitation: GoalInvitation) -> dict[str, Any]:
    return {
        "id": str(invitation.invitation_id),
        "goalId": str(invitation.goal_id),
        "goalTitle": invitation.goal.title if invitation.goal else None,
        "inviterId": str(invitation.inviter_id),
        "inviteeId": str(invitation.invitee_id),
        "token": invitation.token,
        "status": invitation.status.value,
        "createdAt": invitation.created_at.isoformat() if invitation.created_at else None,
    }


# =============================================================================
# Service
# =============================================================================

class GoalService:
    """Service for goal operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.achievements = AchievementService(db)
        self.gamification = GamificationService(db)

    async def list_for_user(self, user_id: uuid.UUID) -> list[Goal]:
        """Goals of a user, nearest target date first."""
        stmt = (
            select(Goal)
            .where(Goal.user_id == user_id)
            .order_by(Goal.target_date.asc().nulls_last(), Goal.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_goal(self, goal_id: uuid.UUID) -> Goal:
        goal = await self.db.get(Goal, goal_id)
        if goal is None:
            raise NotFoundError(code=ErrorCodes.GOAL_NOT_FOUND, message="Goal not found")
        return goal

    async def get_owned(self, goal_id: uuid.UUID, user_id: uuid.UUID) -> Goal:
        """Load a goal that ``user_id`` owns."""
        goal = await self.get_goal(goal_id)
        if goal.user_id != user_id:
            raise ForbiddenError(message="Not authorized to access this goal")
        return goal

    async def get_editable(self, goal_id: uuid.UUID, user_id: uuid.UUID) -> Goal:
        """Load a goal that ``user_id`` owns or collaborates on."""
        goal = await self.get_goal(goal_id)
        if goal.user_id != user_id and str(user_id) not in (goal.collaborators or []):
            raise ForbiddenError(message="Not authorized to access this goal")
        return goal

    async def count_completed(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(Goal.goal_id)).where(
                Goal.user_id == user_id,
                Goal.status == GoalStatus.COMPLETED,
            )
        )
        return result.scalar_one()

    async def _validate_dependencies(
        self,
        user_id: uuid.UUID,
        dependencies: list[uuid.UUID],
        goal_id: Optional[uuid.UUID] = None,
    ) -> list[str]:
        """Dependencies must be other goals owned by the same user."""
        unique = list(dict.fromkeys(dependencies))
        if goal_id is not None and goal_id in unique:
            raise ValidationError(
                message="A goal cannot depend on itself",
                field="dependencies",
                code=ErrorCodes.GOAL_INVALID_DEPENDENCY,
            )
        if not unique:
            return []

        result = await self.db.execute(
            select(func.count(Goal.goal_id)).where(
                Goal.goal_id.in_(unique),
                Goal.user_id == user_id,
            )
        )
        if result.scalar_one() != len(unique):
            raise ValidationError(
                message="Dependencies must reference your own goals",
                field="dependencies",
                code=ErrorCodes.GOAL_INVALID_DEPENDENCY,
            )
        return [str(d) for d in unique]

    # -- lifecycle ---------------------------------------------------------

    async def create(self, user: User, data: GoalCreate) -> Goal:
        """Create a goal, record ``goal_created`` and award XP."""
        dependencies = await self._validate_dependencies(user.user_id, data.dependencies)

        goal = Goal(
            user_id=user.user_id,
            title=data.title,
            description=data.description,
            target_date=data.target_date,
            category=data.category,
            status=GoalStatus.PENDING,
            progress=0,
            sub_goals=[s.model_dump() for s in data.sub_goals],
            milestones=[m.model_dump(mode="json") for m in data.milestones],
            dependencies=dependencies,
            collaborators=[],
            attachments=[a.model_dump() for a in data.attachments],
            reminder_sent=False,
        )
        self.db.add(goal)
        await self.db.flush()

        await self.achievements.record_activity(
            user.user_id,
            ActivityType.GOAL_CREATED,
            title=goal.title,
            description=f"Committed to a new mission: {goal.title}",
            reference_id=goal.goal_id,
            icon="🎯",
        )
        await self.gamification.award_xp(user, XPValues.GOAL_CREATE)
        await CacheInvalidator.on_goal_change(str(user.user_id))
        return goal

    async def update(self, user: User, goal: Goal, data: GoalUpdate) -> tuple[Goal, list[dict]]:
        """
        Apply the fields present in the request body.

        A transition into ``completed`` records the completion side effects.
        Moving the target date re-arms the deadline reminder.
        """
        fields = data.model_dump(exclude_unset=True)
        was_completed = goal.status == GoalStatus.COMPLETED

        if "dependencies" in fields:
            goal.dependencies = await self._validate_dependencies(
                goal.user_id, data.dependencies or [], goal.goal_id,
            )
        if "title" in fields and data.title:
            goal.title = data.title
        if "description" in fields:
            goal.description = data.description
        if "target_date" in fields and data.target_date != goal.target_date:
            goal.target_date = data.target_date
            goal.reminder_sent = False
            goal.last_reminder_date = None
        if "category" in fields and data.category:
            goal.category = data.category
        if "sub_goals" in fields and data.sub_goals is not None:
            goal.sub_goals = [s.model_dump() for s in data.sub_goals]
        if "milestones" in fields and data.milestones is not None:
            goal.milestones = [m.model_dump(mode="json") for m in data.milestones]
        if "attachments" in fields and data.attachments is not None:
            goal.attachments = [a.model_dump() for a in data.attachments]
        if "progress" in fields and data.progress is not None:
            goal.progress = data.progress
        if "status" in fields and data.status is not None:
            goal.status = data.status

        await self.db.flush()

        unlocked = []
        if goal.status == GoalStatus.COMPLETED and not was_completed:
            unlocked = await self._on_completed(user, goal)

        await CacheInvalidator.on_goal_change(str(goal.user_id))
        return goal, unlocked

    async def toggle_status(self, user: User, goal: Goal) -> tuple[Goal, list[dict]]:
        """Flip between completed (100%) and pending (0%)."""
        goal.status, goal.progress = toggled_status(goal.status)
        await self.db.flush()

        unlocked = []
        if goal.status == GoalStatus.COMPLETED:
            unlocked = await self._on_completed(user, goal)

        await CacheInvalidator.on_goal_change(str(goal.user_id))
        return goal, unlocked

    async def toggle_sub_goal(self, user: User, goal: Goal, index: int) -> tuple[Goal, list[dict]]:
        """Toggle one sub-goal and derive progress and status from the list."""
        sub_goals = [dict(s) for s in (goal.sub_goals or [])]
        if not 0 <= index < len(sub_goals):
            raise NotFoundError(
                code=ErrorCodes.GOAL_SUB_GOAL_NOT_FOUND,
                message="Sub-goal not found",
            )

        was_completed = goal.status == GoalStatus.COMPLETED
        sub_goals[index]["completed"] = not sub_goals[index].get("completed", False)
        goal.sub_goals = sub_goals
        goal.progress, goal.status = derive_progress(sub_goals)
        await self.db.flush()

        unlocked = []
        if goal.status == GoalStatus.COMPLETED and not was_completed:
            unlocked = await self._on_completed(user, goal)

        await CacheInvalidator.on_goal_change(str(goal.user_id))
        return goal, unlocked

    async def delete(self, goal: Goal) -> None:
        """Delete a goal and drop it from the owner's other goals' dependencies."""
        goal_id = str(goal.goal_id)
        for other in await self.list_for_user(goal.user_id):
            if goal_id in (other.dependencies or []):
                other.dependencies = [d for d in other.dependencies if d != goal_id]

        await self.db.delete(goal)
        await self.db.flush()
        await CacheInvalidator.on_goal_change(str(goal.user_id))

    async def _on_completed(self, user: User, goal: Goal) -> list[dict]:
        """Completion side effects: activity, XP and goal count milestones."""
        await self.achievements.record_activity(
            goal.user_id,
            ActivityType.GOAL_COMPLETED,
            title=goal.title,
            description=f"Mission Accomplished: {goal.title}!",
            reference_id=goal.goal_id,
            icon="🏆",
        )
        if user.user_id == goal.user_id:
            await self.gamification.award_xp(user, XPValues.GOAL_COMPLETE)

        unlocked = []
        achievement = await self.achievements.check_goal_milestones(
            goal.user_id, await self.count_completed(goal.user_id),
        )
        if achievement is not None:
            unlocked.append(achievement_to_dict(achievement))
        return unlocked

    # -- templates ---------------------------------------------------------

    async def list_templates(self, category: Optional[str] = None) -> list[GoalTemplate]:
        stmt = select(GoalTemplate)
        if category:
            stmt = stmt.where(GoalTemplate.category == category)
        stmt = stmt.order_by(GoalTemplate.popularity.desc(), GoalTemplate.title)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_from_template(
        self,
        user: User,
        template_id: uuid.UUID,
        today: date,
        target_date: Optional[date] = None,
    ) -> Goal:
        """Instantiate a goal with the template's sub-goals and dated milestones."""
        template = await self.db.get(GoalTemplate, template_id)
        if template is None:
            raise NotFoundError(
                code=ErrorCodes.GOAL_TEMPLATE_NOT_FOUND,
                message="Goal template not found",
            )

        template.popularity += 1
        goal = await self.create(user, GoalCreate(
            title=template.title,
            description=template.description,
            category=template.category,
            target_date=target_date,
            sub_goals=[{"title": s["title"], "completed": False} for s in template.sub_goals or []],
        ))
        goal.milestones = milestones_from_template(list(template.milestones or []), today)
        await self.db.flush()
        return goal

    # -- collaboration -----------------------------------------------------

    async def invite(
        self,
        inviter: User,
        goal: Goal,
        username: str,
        dispatcher: EmailDispatcher,
    ) -> tuple[GoalInvitation, EmailResult]:
        """
        Invite a user to collaborate on a goal and email them the link.

        The invitation is kept even when the email cannot be delivered.
        """
        result = await self.db.execute(
            select(User).where(func.lower(User.username) == username.strip().lower())
        )
        invitee = result.scalar_one_or_none()
        if invitee is None:
            raise NotFoundError(code=ErrorCodes.USER_NOT_FOUND, message="User not found")
        if invitee.user_id == inviter.user_id:
            raise ValidationError(message="You cannot invite yourself", field="username")
        if str(invitee.user_id) in (goal.collaborators or []):
            raise ConflictError(
                code=ErrorCodes.GOAL_ALREADY_COLLABORATOR,
                message="User is already a collaborator",
            )

        invitation = GoalInvitation(
            goal_id=goal.goal_id,
            inviter_id=inviter.user_id,
            invitee_id=invitee.user_id,
            token=generate_invitation_token(),
            status=InvitationStatus.PENDING,
        )
        self.db.add(invitation)
        await self.db.flush()
        await self.db.refresh(invitation, ["goal"])

        subject, html = goal_invitation_email(
            inviter.username, invitee.username, goal.title, invitation.token,
        )
        sent = await dispatcher.send(invitee.email, subject, html)
        if not sent.success:
            logger.warning("Invitation email for goal %s not delivered: %s", goal.goal_id, sent.error)
        return invitation, sent

    async def list_invitations(self, user_id: uuid.UUID) -> list[GoalInvitation]:
        """Pending invitations addressed to ``user_id``."""
        stmt = (
            select(GoalInvitation)
            .where(
                GoalInvitation.invitee_id == user_id,
                GoalInvitation.status == InvitationStatus.PENDING,
            )
            .order_by(GoalInvitation.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def accept_invitation(self, user: User, token: str) -> Goal:
        """Join a goal as collaborator using an invitation token."""
        result = await self.db.execute(
            select(GoalInvitation).where(
                GoalInvitation.token == token,
                GoalInvitation.status == InvitationStatus.PENDING,
            )
        )
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise NotFoundError(
                code=ErrorCodes.GOAL_INVITATION_NOT_FOUND,
                message="Invitation not found or already used",
            )
        if invitation.invitee_id != user.user_id:
            raise ForbiddenError(message="This invitation belongs to another user")

        goal = await self.get_goal(invitation.goal_id)
        if str(user.user_id) not in (goal.collaborators or []):
            goal.collaborators = [*(goal.collaborators or []), str(user.user_id)]
        invitation.status = InvitationStatus.ACCEPTED
        await self.db.flush()

        await self.achievements.record_activity(
            user.user_id,
            ActivityType.COLLABORATION_JOINED,
            title=goal.title,
            description=f"Joined the goal: {goal.title}",
            reference_id=goal.goal_id,
            icon="🤝",
        )
        return goal
