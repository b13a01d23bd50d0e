"""
Habits API Endpoints
====================

Habit CRUD, daily check-ins, notes and the habit template catalogue.
"""

import logging
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from app.dependencies import AdminUser, CurrentUser, DBSession
from app.schemas.common import BaseResponse, ErrorResponse
from app.schemas.habit import HabitCreate, HabitNoteCreate, HabitTemplateCreate, HabitUpdate
from app.services.habit_service import HabitService, habit_to_dict, template_to_dict
from app.utils.helpers import local_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=BaseResponse[list])
async def list_habits(current_user: CurrentUser, db: DBSession):
    """All habits of the signed-in user, newest first."""
    now = local_now()
    habits = await HabitService(db).list_for_user(current_user.user_id)
    return BaseResponse(data=[habit_to_dict(h, now) for h in habits])


@router.post("", response_model=BaseResponse[dict], status_code=status.HTTP_201_CREATED)
async def create_habit(body: HabitCreate, current_user: CurrentUser, db: DBSession):
    habit, unlocked = await HabitService(db).create(current_user, body)
    return BaseResponse(
        data={"habit": habit_to_dict(habit, local_now()), "achievements": unlocked},
        message="Habit created",
    )


@router.get("/templates", response_model=BaseResponse[list])
async def list_templates(
    current_user: CurrentUser,
    db: DBSession,
    category: Optional[str] = Query(None),
):
    templates = await HabitService(db).list_templates(category)
    return BaseResponse(data=[template_to_dict(t) for t in templates])


@router.post(
    "/templates",
    response_model=BaseResponse[dict],
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse, "description": "Admin only"}},
)
async def create_template(body: HabitTemplateCreate, admin: AdminUser, db: DBSession):
    template = await HabitService(db).create_template(body)
    return BaseResponse(data=template_to_dict(template), message="Template created")


@router.post(
    "/from-template/{template_id}",
    response_model=BaseResponse[dict],
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse, "description": "Template not found"}},
)
async def create_from_template(template_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    habit, unlocked = await HabitService(db).create_from_template(current_user, template_id)
    return BaseResponse(
        data={"habit": habit_to_dict(habit, local_now()), "achievements": unlocked},
        message="Habit created from template",
    )


@router.put(
    "/{habit_id}",
    response_model=BaseResponse[dict],
    responses={
        403: {"model": ErrorResponse, "description": "Not your habit"},
        404: {"model": ErrorResponse, "description": "Habit not found"},
    },
)
async def update_habit(
    habit_id: uuid.UUID,
    body: HabitUpdate,
    current_user: CurrentUser,
    db: DBSession,
):
    service = HabitService(db)
    habit = await service.get_owned(habit_id, current_user.user_id)
    habit = await service.update(habit, body)
    return BaseResponse(data=habit_to_dict(habit, local_now()))


@router.delete("/{habit_id}", response_model=BaseResponse[dict])
async def delete_habit(habit_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    service = HabitService(db)
    habit = await service.get_owned(habit_id, current_user.user_id)
    await service.delete(habit)
    return BaseResponse(data={"id": str(habit_id)}, message="Habit removed")


@router.put("/{habit_id}/check", response_model=BaseResponse[dict])
async def check_habit(habit_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    """
    Toggle today's check-in.

    Checking in appends now to the completion list and bumps the streak;
    calling again on the same day undoes it.
    """
    now = local_now()
    service = HabitService(db)
    habit = await service.get_owned(habit_id, current_user.user_id)
    result = await service.check(current_user, habit, now)

    return BaseResponse(data={
        "habit": habit_to_dict(result.habit, now),
        "checkedIn": result.checked_in,
        "xp": result.xp,
        "achievements": result.achievements,
    })


@router.post("/{habit_id}/notes", response_model=BaseResponse[dict])
async def add_note(
    habit_id: uuid.UUID,
    body: HabitNoteCreate,
    current_user: CurrentUser,
    db: DBSession,
):
    now = local_now()
    service = HabitService(db)
    habit = await service.get_owned(habit_id, current_user.user_id)
    habit = await service.add_note(habit, body.text, now)
    return BaseResponse(data=habit_to_dict(habit, now), message="Note added")
