"""
API Tests
=========

Request-level tests for authentication, the admin panel and the goal
reminder trigger. The database, Redis and SMTP are replaced with mocks.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient

from app.core.security import create_access_token, create_tokens_for_user, hash_password
from app.db.session import get_db
from app.dependencies import get_current_user, get_email_dispatcher, get_reminder_sweep
from app.main import app
from app.services.auth_service import AuthService
from app.services.email_service import EmailResult
from app.services.goal_reminders import SweepInProgressError


@pytest_asyncio.fixture
async def api(client: AsyncClient):
    """Client with a mock database session and Redis unavailable."""
    session = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()

    async def fake_db():
        yield session

    app.dependency_overrides[get_db] = fake_db
    # Rate limiting fails open without Redis
    with patch("app.core.rate_limit.get_redis", AsyncMock(side_effect=ConnectionError("no redis"))):
        yield client


def login_as(user):
    app.dependency_overrides[get_current_user] = lambda: user


def mock_sweep(**kwargs):
    sweep = MagicMock()
    sweep.run_sweep = AsyncMock(**kwargs)
    app.dependency_overrides[get_reminder_sweep] = lambda: sweep
    return sweep


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token_is_rejected(self, api: AsyncClient):
        response = await api.get("/api/v1/habits")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_garbage_token_is_rejected(self, api: AsyncClient):
        response = await api.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_005"

    @pytest.mark.asyncio
    async def test_refresh_token_cannot_be_used_as_access_token(self, api: AsyncClient, user_factory):
        user = user_factory()
        tokens = create_tokens_for_user(user.user_id, user.username)

        response = await api.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {tokens['refresh_token']}"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("transport", ["header", "cookie"])
    async def test_token_accepted_from_header_or_cookie(self, api: AsyncClient, user_factory, transport):
        user = user_factory("carol")
        token = create_access_token({"sub": str(user.user_id), "username": user.username})
        if transport == "header":
            kwargs = {"headers": {"x-auth-token": token}}
        else:
            api.cookies.set("token", token)
            kwargs = {}

        with patch.object(AuthService, "get_user_by_id", AsyncMock(return_value=user)):
            response = await api.get("/api/v1/auth/me", **kwargs)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == "carol"
        assert data["preferences"]["reminder_days_before"] == 3

    @pytest.mark.asyncio
    async def test_login_sets_cookie(self, api: AsyncClient, user_factory):
        user = user_factory("dave", password_hash=hash_password("correct horse"))

        with patch.object(AuthService, "get_user_by_identifier", AsyncMock(return_value=user)):
            response = await api.post(
                "/api/v1/auth/login",
                json={"username": "dave", "password": "correct horse"},
            )

        assert response.status_code == 200
        body = response.json()["data"]
        assert body["user"]["username"] == "dave"
        assert "access_token" in body["tokens"]
        assert response.headers["set-cookie"].startswith("token=")
        assert "HttpOnly" in response.headers["set-cookie"]

    @pytest.mark.asyncio
    async def test_login_unverified_account(self, api: AsyncClient, user_factory):
        user = user_factory("erin", is_verified=False, password_hash=hash_password("correct horse"))

        with patch.object(AuthService, "get_user_by_identifier", AsyncMock(return_value=user)):
            response = await api.post(
                "/api/v1/auth/login",
                json={"email": "erin@example.com", "password": "correct horse"},
            )

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "AUTH_003"
        assert error["needs_verification"] is True

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, api: AsyncClient, user_factory):
        user = user_factory("frank", password_hash=hash_password("correct horse"))

        with patch.object(AuthService, "get_user_by_identifier", AsyncMock(return_value=user)):
            response = await api.post(
                "/api/v1/auth/login",
                json={"username": "frank", "password": "battery staple"},
            )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_001"

    @pytest.mark.asyncio
    async def test_login_requires_an_identifier(self, api: AsyncClient):
        response = await api.post("/api/v1/auth/login", json={"password": "whatever"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

class TestAdminAccess:
    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, api: AsyncClient, user_factory):
        login_as(user_factory("mallory"))
        sweep = mock_sweep()

        response = await api.post("/api/v1/admin/trigger-goal-reminders")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ADMIN_ONLY"
        sweep.run_sweep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_username_match_is_case_insensitive(self, api: AsyncClient, user_factory):
        login_as(user_factory("Admin"))
        mock_sweep(return_value={"usersChecked": 0, "totalReminders": 0, "results": []})

        response = await api.post("/api/v1/admin/trigger-goal-reminders")

        assert response.status_code == 200


class TestTriggerGoalReminders:
    @pytest.mark.asyncio
    async def test_returns_sweep_summary(self, api: AsyncClient, user_factory):
        login_as(user_factory("admin"))
        summary = {
            "usersChecked": 2,
            "totalReminders": 1,
            "results": [{"user": "bob", "email": "bob@example.com", "goalsFound": 1, "emailSent": True}],
        }
        sweep = mock_sweep(return_value=summary)

        response = await api.post("/api/v1/admin/trigger-goal-reminders")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == summary
        assert body["message"] == "Goal reminder check completed"
        sweep.run_sweep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_busy_sweep_returns_conflict(self, api: AsyncClient, user_factory):
        login_as(user_factory("admin"))
        mock_sweep(side_effect=SweepInProgressError())

        response = await api.post("/api/v1/admin/trigger-goal-reminders")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "REMINDER_001"


class TestAdminTestEmail:
    @pytest.mark.asyncio
    async def test_sends_to_admin_address(self, api: AsyncClient, user_factory):
        login_as(user_factory("admin"))
        dispatcher = MagicMock()
        dispatcher.send = AsyncMock(return_value=EmailResult(success=True, message_id="<1@progress>"))
        app.dependency_overrides[get_email_dispatcher] = lambda: dispatcher

        response = await api.post("/api/v1/admin/test-email")

        assert response.status_code == 200
        assert response.json()["data"] == {"sentTo": "admin@example.com", "messageId": "<1@progress>"}
        assert dispatcher.send.await_args.args[0] == "admin@example.com"

    @pytest.mark.asyncio
    async def test_delivery_failure_is_reported(self, api: AsyncClient, user_factory):
        login_as(user_factory("admin"))
        dispatcher = MagicMock()
        dispatcher.send = AsyncMock(return_value=EmailResult(success=False, error="SMTP is not configured"))
        app.dependency_overrides[get_email_dispatcher] = lambda: dispatcher

        response = await api.post("/api/v1/admin/test-email")

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "EMAIL_001"
        assert error["error"] == "SMTP is not configured"
