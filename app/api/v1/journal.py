"""
Journal API Endpoints
=====================

Handles journal entry CRUD.
"""

import uuid

from fastapi import APIRouter, status

from app.dependencies import CurrentUser, DBSession
from app.schemas.common import BaseResponse, ErrorResponse
from app.schemas.journal import JournalEntryCreate, JournalEntryUpdate
from app.services.journal_service import JournalService, entry_to_dict

router = APIRouter()


@router.get("", response_model=BaseResponse[list])
async def list_entries(current_user: CurrentUser, db: DBSession):
    """Entries of the signed-in user, newest first."""
    entries = await JournalService(db).list_for_user(current_user.user_id)
    return BaseResponse(data=[entry_to_dict(e) for e in entries])


@router.post("", response_model=BaseResponse[dict], status_code=status.HTTP_201_CREATED)
async def create_entry(body: JournalEntryCreate, current_user: CurrentUser, db: DBSession):
    entry, xp, unlocked = await JournalService(db).create_entry(current_user, body)
    return BaseResponse(
        data={"entry": entry_to_dict(entry), "xp": xp, "achievements": unlocked},
        message="Journal entry saved",
    )


@router.put(
    "/{entry_id}",
    response_model=BaseResponse[dict],
    responses={
        403: {"model": ErrorResponse, "description": "Not your entry"},
        404: {"model": ErrorResponse, "description": "Entry not found"},
    },
)
async def update_entry(
    entry_id: uuid.UUID,
    body: JournalEntryUpdate,
    current_user: CurrentUser,
    db: DBSession,
):
    service = JournalService(db)
    entry = await service.get_owned(entry_id, current_user.user_id)
    entry = await service.update_entry(entry, body)
    return BaseResponse(data=entry_to_dict(entry))


@router.delete("/{entry_id}", response_model=BaseResponse[dict])
async def delete_entry(entry_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    service = JournalService(db)
    entry = await service.get_owned(entry_id, current_user.user_id)
    await service.delete_entry(entry)
    return BaseResponse(data={"id": str(entry_id)}, message="Entry removed")
