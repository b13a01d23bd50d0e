"""
Progress API - Main Application
===============================

FastAPI application entry point with middleware configuration
and route registration.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import newrelic.agent

# Configure logging for the application (root logger defaults to WARNING)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.errors import setup_exception_handlers
from app.db.session import close_db, get_session_factory, init_db
from app.services.cache import close_redis, init_redis
from app.services.email_service import SmtpEmailDispatcher
from app.services.goal_reminders import ReminderSweep, SqlReminderStore
from app.services.reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


# =============================================================================
# New Relic Transaction Enrichment Middleware (Raw ASGI)
# =============================================================================

class NewRelicTransactionMiddleware:
    """
    Raw ASGI middleware that adds custom attributes to every New Relic
    transaction: method, route pattern, status, latency, client IP and the
    authenticated user id.

    Raw ASGI keeps the route handler in the same task, so New Relic's
    contextvars-based spans for Redis and the database stay attached.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500  # until the response starts

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            txn = newrelic.agent.current_transaction()
            if txn:
                route = scope.get("route")
                client = scope.get("client")

                newrelic.agent.add_custom_attributes([
                    ("http.method", scope.get("method", "")),
                    ("http.route", route.path if route else scope.get("path", "unknown")),
                    ("http.status_code", status_code),
                    ("http.duration_ms", round((time.perf_counter() - start) * 1000, 2)),
                    ("http.client_ip", client[0] if client else "unknown"),
                    ("environment", settings.ENVIRONMENT),
                ])

                # Set by the auth dependency
                state = scope.get("state")
                user_id = state.get("user_id") if isinstance(state, dict) else None
                if user_id:
                    newrelic.agent.add_custom_attribute("enduser.id", str(user_id))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of:
    - Database connection
    - Redis connection
    - SMTP email dispatcher (``app.state.email_dispatcher``)
    - Goal reminder sweep and its daily scheduler (``app.state.reminder_sweep``)
    """
    logger.info("Starting Progress API...")

    # Initialize database
    try:
        await init_db()
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        # Continue startup even if DB fails (for health checks)

    # Initialize Redis
    try:
        await init_redis()
    except Exception as e:
        logger.warning("Redis connection failed: %s", e)

    dispatcher = SmtpEmailDispatcher.from_settings(settings)
    if not settings.smtp_configured:
        logger.warning("SMTP_HOST is not set; outgoing email is disabled")
    elif await dispatcher.verify_connection():
        logger.info("SMTP server is ready to send emails")
    app.state.email_dispatcher = dispatcher

    scheduler = None
    try:
        sweep = ReminderSweep(SqlReminderStore(get_session_factory()), dispatcher)
        app.state.reminder_sweep = sweep
        if settings.GOAL_REMINDER_ENABLED:
            scheduler = ReminderScheduler(
                sweep,
                hour=settings.GOAL_REMINDER_HOUR,
                minute=settings.GOAL_REMINDER_MINUTE,
            )
            await scheduler.start()
    except ValueError as e:
        # No DATABASE_URL; reminders stay unavailable
        logger.error("Goal reminders disabled: %s", e)

    yield

    # Shutdown
    logger.info("Shutting down Progress API...")
    if scheduler is not None:
        await scheduler.stop()
    await close_db()
    await close_redis()


# Create FastAPI application
app = FastAPI(
    title="Progress API",
    description="""
## Progress - Habits, Goals and Journaling Backend

### Features
- **Authentication**: Username/email login with emailed verification codes
- **Habits**: Daily check-ins, streaks, notes and templates
- **Goals**: Sub-goal progress, milestones, dependencies, templates and collaboration
- **Journal**: Mood-tagged entries
- **Gamification**: XP, levels, achievements and a leaderboard
- **Social**: Profiles, following and an achievement feed
- **Reminders**: Daily goal deadline emails

### Rate Limits
- Authentication: 10 requests/minute
- Email-sending endpoints: 3 requests/minute
- Admin: 30 requests/minute
    """,
    version="1.0.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Permission denied"},
        404: {"description": "Resource not found"},
        409: {"description": "Resource conflict"},
        422: {"description": "Validation error"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Internal server error"},
    },
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# New Relic transaction enrichment (adds custom attrs to every transaction)
app.add_middleware(NewRelicTransactionMiddleware)

# Setup exception handlers
setup_exception_handlers(app)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns the current status of the API.
    """
    return {
        "status": "healthy",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/", tags=["Health"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Progress API",
        "version": "1.0.0",
        "docs": "/docs" if settings.is_development else "Disabled in production",
    }


# =============================================================================
# API Routes
# =============================================================================

from app.api.v1 import achievements, admin, auth, goals, habits, journal, profile, stats

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(habits.router, prefix="/api/v1/habits", tags=["Habits"])
app.include_router(goals.router, prefix="/api/v1/goals", tags=["Goals"])
app.include_router(journal.router, prefix="/api/v1/journal", tags=["Journal"])
app.include_router(stats.router, prefix="/api/v1/stats", tags=["Stats"])
app.include_router(profile.router, prefix="/api/v1/profile", tags=["Profile"])
app.include_router(achievements.router, prefix="/api/v1/achievements", tags=["Achievements"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])
