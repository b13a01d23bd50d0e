"""
Profile API Endpoints
=====================

Handles user profile retrieval and updates, preferences, user search,
activity history and following.
"""

from fastapi import APIRouter, Query

from app.dependencies import CurrentUser, DBSession
from app.schemas.common import BaseResponse, ErrorResponse
from app.schemas.profile import PreferencesUpdate, ProfileUpdate
from app.services.achievement_service import AchievementService, activity_to_dict
from app.services.cache import CacheKeys, CacheManager
from app.services.profile_service import ProfileService
from app.utils.validators import validate_uuid

router = APIRouter()

_user_not_found = {404: {"model": ErrorResponse, "description": "User not found"}}


@router.get("/me", response_model=BaseResponse[dict])
async def get_my_profile(current_user: CurrentUser, db: DBSession):
    """
    Get the complete profile of the signed-in user.

    Includes preferences, follower lists and counters.
    """
    key = CacheKeys.profile(str(current_user.user_id))

    # Try cache first
    cached = await CacheManager.get(key)
    if cached:
        return BaseResponse(data=cached)

    profile = await ProfileService(db).get_own_profile(current_user)
    await CacheManager.set(key, profile, ttl=CacheManager.TTL_SHORT)
    return BaseResponse(data=profile)


@router.put("/me", response_model=BaseResponse[dict])
async def update_my_profile(body: ProfileUpdate, current_user: CurrentUser, db: DBSession):
    service = ProfileService(db)
    await service.update_profile(current_user, body)
    return BaseResponse(
        data=await service.get_own_profile(current_user),
        message="Profile updated successfully",
    )


@router.put("/preferences", response_model=BaseResponse[dict])
async def update_preferences(body: PreferencesUpdate, current_user: CurrentUser, db: DBSession):
    prefs = await ProfileService(db).update_preferences(current_user, body)
    return BaseResponse(data=prefs, message="Preferences updated")


@router.get("/search/users", response_model=BaseResponse[list])
async def search_users(
    current_user: CurrentUser,
    db: DBSession,
    q: str = Query("", max_length=100),
):
    return BaseResponse(data=await ProfileService(db).search(q))


@router.post("/follow/{user_id}", response_model=BaseResponse[dict], responses=_user_not_found)
async def follow_user(user_id: str, current_user: CurrentUser, db: DBSession):
    target_id = validate_uuid(user_id, "user_id")
    await ProfileService(db).follow(current_user, target_id)
    return BaseResponse(data={"following": list(current_user.following)}, message="User followed")


@router.post("/unfollow/{user_id}", response_model=BaseResponse[dict], responses=_user_not_found)
async def unfollow_user(user_id: str, current_user: CurrentUser, db: DBSession):
    target_id = validate_uuid(user_id, "user_id")
    await ProfileService(db).unfollow(current_user, target_id)
    return BaseResponse(data={"following": list(current_user.following)}, message="User unfollowed")


@router.get("/{user_id}", response_model=BaseResponse[dict], responses=_user_not_found)
async def get_public_profile(user_id: str, current_user: CurrentUser, db: DBSession):
    """Another user's profile, without email or preferences."""
    profile = await ProfileService(db).get_public_profile(validate_uuid(user_id, "user_id"))
    return BaseResponse(data=profile)


@router.get("/{user_id}/activity", response_model=BaseResponse[list], responses=_user_not_found)
async def get_activity(user_id: str, current_user: CurrentUser, db: DBSession):
    """Recent activity of a user; ``me`` means the signed-in user."""
    if user_id == "me":
        target_id = current_user.user_id
    else:
        target_id = (await ProfileService(db).get_user(validate_uuid(user_id, "user_id"))).user_id

    activities = await AchievementService(db).list_activity(target_id)
    return BaseResponse(data=[activity_to_dict(a) for a in activities])
