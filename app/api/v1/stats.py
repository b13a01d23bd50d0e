"""
Stats API Endpoints
===================

Dashboard analytics for the signed-in user.
"""

from fastapi import APIRouter

from app.dependencies import CurrentUser, DBSession
from app.schemas.common import BaseResponse
from app.services.cache import CacheKeys, CacheManager
from app.services.stats_service import StatsService
from app.utils.helpers import local_now

router = APIRouter()


@router.get("", response_model=BaseResponse[dict])
async def get_stats(current_user: CurrentUser, db: DBSession):
    """
    Habit, goal and journal totals plus a 7-day completion series.

    Cached per user for five minutes; habit, goal and journal writes
    invalidate the entry.
    """
    key = CacheKeys.stats(str(current_user.user_id))

    cached = await CacheManager.get(key)
    if cached:
        return BaseResponse(data=cached)

    stats = await StatsService(db).get_stats(current_user.user_id, local_now())
    await CacheManager.set(key, stats, ttl=CacheManager.TTL_SHORT)
    return BaseResponse(data=stats)
