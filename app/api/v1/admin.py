"""
Admin API Endpoints
===================

Admin panel operations. Every route requires the account named by
``ADMIN_USERNAME``.
"""

import logging
import uuid

from fastapi import APIRouter, Depends

from app.core.errors import ErrorCodes, ServiceUnavailableError
from app.core.rate_limit import create_rate_limit_dependency
from app.dependencies import AdminUser, DBSession, EmailSender, Sweep
from app.schemas.common import BaseResponse, ErrorResponse
from app.services.admin_service import AdminService
from app.services.email_templates import smtp_test_email
from app.services.goal_service import goal_to_dict
from app.utils.helpers import local_now

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(create_rate_limit_dependency("admin"))])


@router.get("/stats", response_model=BaseResponse[dict])
async def system_stats(admin: AdminUser, db: DBSession):
    return BaseResponse(data=await AdminService(db).system_stats(local_now()))


@router.post(
    "/test-email",
    response_model=BaseResponse[dict],
    responses={503: {"model": ErrorResponse, "description": "Email could not be sent"}},
)
async def send_test_email(admin: AdminUser, dispatcher: EmailSender):
    """Send a test email to the admin's own address."""
    subject, html = smtp_test_email(admin.username, admin.email, local_now())
    result = await dispatcher.send(admin.email, subject, html)

    if not result.success:
        logger.error("Test email to %s failed: %s", admin.email, result.error)
        raise ServiceUnavailableError(
            code=ErrorCodes.EMAIL_DELIVERY_FAILED,
            message="Failed to send test email",
            error=result.error,
        )

    return BaseResponse(
        data={"sentTo": admin.email, "messageId": result.message_id},
        message="Test email sent successfully",
    )


@router.post(
    "/trigger-goal-reminders",
    response_model=BaseResponse[dict],
    responses={409: {"model": ErrorResponse, "description": "A sweep is already running"}},
)
async def trigger_goal_reminders(admin: AdminUser, sweep: Sweep):
    """
    Run the goal reminder sweep now and return its summary.

    Same logic as the daily scheduled run, including the 24 hour
    per-goal guard.
    """
    logger.info("Goal reminder sweep triggered by %s", admin.username)
    summary = await sweep.run_sweep(local_now())
    return BaseResponse(data=summary, message="Goal reminder check completed")


@router.get("/recent-goals", response_model=BaseResponse[list])
async def recent_goals(admin: AdminUser, db: DBSession):
    return BaseResponse(data=await AdminService(db).recent_goals())


@router.get("/users", response_model=BaseResponse[list])
async def list_users(admin: AdminUser, db: DBSession):
    return BaseResponse(data=await AdminService(db).list_users())


@router.post(
    "/reset-reminder/{goal_id}",
    response_model=BaseResponse[dict],
    responses={404: {"model": ErrorResponse, "description": "Goal not found"}},
)
async def reset_reminder(goal_id: uuid.UUID, admin: AdminUser, db: DBSession):
    goal = await AdminService(db).reset_reminder(goal_id)
    return BaseResponse(data=goal_to_dict(goal), message="Reminder status reset")
