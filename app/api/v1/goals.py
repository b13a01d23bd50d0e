"""
Goals API Endpoints
===================

Goal CRUD, sub-goal progress, templates and collaboration invitations.
"""

import logging
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentUser, DBSession, EmailSender
from app.schemas.common import BaseResponse, ErrorResponse
from app.schemas.goal import GoalCreate, GoalFromTemplate, GoalInviteRequest, GoalUpdate
from app.services.goal_service import (
    GoalService,
    goal_template_to_dict,
    goal_to_dict,
    invitation_to_dict,
)
from app.utils.helpers import local_now

logger = logging.getLogger(__name__)

router = APIRouter()

_not_found = {404: {"model": ErrorResponse, "description": "Goal not found"}}


@router.get("", response_model=BaseResponse[list])
async def list_goals(current_user: CurrentUser, db: DBSession):
    """Goals of the signed-in user, nearest target date first."""
    goals = await GoalService(db).list_for_user(current_user.user_id)
    return BaseResponse(data=[goal_to_dict(g) for g in goals])


@router.post(
    "",
    response_model=BaseResponse[dict],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Invalid dependencies"}},
)
async def create_goal(body: GoalCreate, current_user: CurrentUser, db: DBSession):
    goal = await GoalService(db).create(current_user, body)
    return BaseResponse(data=goal_to_dict(goal), message="Goal created")


@router.get("/templates", response_model=BaseResponse[list])
async def list_templates(
    current_user: CurrentUser,
    db: DBSession,
    category: Optional[str] = Query(None),
):
    templates = await GoalService(db).list_templates(category)
    return BaseResponse(data=[goal_template_to_dict(t) for t in templates])


@router.post(
    "/from-template/{template_id}",
    response_model=BaseResponse[dict],
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse, "description": "Template not found"}},
)
async def create_from_template(
    template_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    body: Optional[GoalFromTemplate] = None,
):
    """Create a goal from a template; milestone dates count from today."""
    goal = await GoalService(db).create_from_template(
        current_user,
        template_id,
        today=local_now().date(),
        target_date=body.target_date if body else None,
    )
    return BaseResponse(data=goal_to_dict(goal), message="Goal created from template")


@router.get("/invitations", response_model=BaseResponse[list])
async def list_invitations(current_user: CurrentUser, db: DBSession):
    """Pending collaboration invitations for the signed-in user."""
    invitations = await GoalService(db).list_invitations(current_user.user_id)
    return BaseResponse(data=[invitation_to_dict(i) for i in invitations])


@router.post(
    "/accept/{token}",
    response_model=BaseResponse[dict],
    responses={404: {"model": ErrorResponse, "description": "Invitation not found"}},
)
async def accept_invitation(token: str, current_user: CurrentUser, db: DBSession):
    goal = await GoalService(db).accept_invitation(current_user, token)
    return BaseResponse(data=goal_to_dict(goal), message="You joined the goal")


@router.put("/{goal_id}", response_model=BaseResponse[dict], responses=_not_found)
async def update_goal(
    goal_id: uuid.UUID,
    body: GoalUpdate,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Partially update a goal.

    Owners and collaborators may edit. Completing the goal here records
    the completion and may unlock goal achievements.
    """
    service = GoalService(db)
    goal = await service.get_editable(goal_id, current_user.user_id)
    goal, unlocked = await service.update(current_user, goal, body)
    return BaseResponse(data={"goal": goal_to_dict(goal), "achievements": unlocked})


@router.put("/{goal_id}/status", response_model=BaseResponse[dict], responses=_not_found)
async def toggle_status(goal_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    service = GoalService(db)
    goal = await service.get_editable(goal_id, current_user.user_id)
    goal, unlocked = await service.toggle_status(current_user, goal)
    return BaseResponse(data={"goal": goal_to_dict(goal), "achievements": unlocked})


@router.put(
    "/{goal_id}/sub-goals/{index}",
    response_model=BaseResponse[dict],
    responses=_not_found,
)
async def toggle_sub_goal(
    goal_id: uuid.UUID,
    index: int,
    current_user: CurrentUser,
    db: DBSession,
):
    """Toggle a sub-goal; progress and status follow the sub-goal list."""
    service = GoalService(db)
    goal = await service.get_editable(goal_id, current_user.user_id)
    goal, unlocked = await service.toggle_sub_goal(current_user, goal, index)
    return BaseResponse(data={"goal": goal_to_dict(goal), "achievements": unlocked})


@router.delete("/{goal_id}", response_model=BaseResponse[dict], responses=_not_found)
async def delete_goal(goal_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    service = GoalService(db)
    goal = await service.get_owned(goal_id, current_user.user_id)
    await service.delete(goal)
    return BaseResponse(data={"id": str(goal_id)}, message="Goal removed")


@router.post(
    "/{goal_id}/invite",
    response_model=BaseResponse[dict],
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Goal or user not found"},
        409: {"model": ErrorResponse, "description": "Already a collaborator"},
    },
)
async def invite_collaborator(
    goal_id: uuid.UUID,
    body: GoalInviteRequest,
    current_user: CurrentUser,
    db: DBSession,
    dispatcher: EmailSender,
):
    """Invite a user by username; the invitation link is emailed to them."""
    service = GoalService(db)
    goal = await service.get_owned(goal_id, current_user.user_id)
    invitation, sent = await service.invite(current_user, goal, body.username, dispatcher)

    return BaseResponse(
        data={"invitation": invitation_to_dict(invitation), "emailSent": sent.success},
        message="Invitation sent" if sent.success else "Invitation created but email could not be sent",
    )
