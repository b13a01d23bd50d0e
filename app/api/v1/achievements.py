"""
Achievements API Endpoints
==========================

Own achievements, sharing, the followed-users feed and the leaderboard.
"""

import uuid

from fastapi import APIRouter

from app.dependencies import CurrentUser, DBSession
from app.schemas.common import BaseResponse, ErrorResponse
from app.services.achievement_service import AchievementService, achievement_to_dict
from app.services.cache import CacheKeys, CacheManager

router = APIRouter()


@router.get("", response_model=BaseResponse[list])
async def list_achievements(current_user: CurrentUser, db: DBSession):
    achievements = await AchievementService(db).list_for_user(current_user.user_id)
    return BaseResponse(data=[achievement_to_dict(a) for a in achievements])


@router.get("/feed", response_model=BaseResponse[list])
async def feed(current_user: CurrentUser, db: DBSession):
    """Shared achievements of the users you follow."""
    return BaseResponse(data=await AchievementService(db).feed(current_user))


@router.get("/leaderboard", response_model=BaseResponse[list])
async def leaderboard(current_user: CurrentUser, db: DBSession):
    """
    Top users by score.

    score = total streak * 10 + completed goals * 50 + achievements * 25.
    Cached for fifteen minutes.
    """
    cached = await CacheManager.get(CacheKeys.leaderboard())
    if cached:
        return BaseResponse(data=cached)

    board = await AchievementService(db).leaderboard()
    await CacheManager.set(CacheKeys.leaderboard(), board, ttl=CacheManager.TTL_MEDIUM)
    return BaseResponse(data=board)


@router.post(
    "/{achievement_id}/share",
    response_model=BaseResponse[dict],
    responses={
        403: {"model": ErrorResponse, "description": "Not your achievement"},
        404: {"model": ErrorResponse, "description": "Achievement not found"},
    },
)
async def share_achievement(achievement_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    achievement = await AchievementService(db).share(achievement_id, current_user.user_id)
    return BaseResponse(data=achievement_to_dict(achievement), message="Achievement shared")
