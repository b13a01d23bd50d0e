"""
Shared Test Fixtures
====================
"""

import os

# Settings are read once at import time
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-123")
os.environ["ENVIRONMENT"] = "testing"
os.environ["ADMIN_USERNAME"] = "admin"

import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.models.user import DEFAULT_PREFERENCES, User


def make_user(username: str = "alice", **overrides) -> User:
    """Build a transient (session-free) user."""
    fields = {
        "user_id": uuid.uuid4(),
        "username": username,
        "email": f"{username}@example.com",
        "password_hash": "x",
        "is_verified": True,
        "preferences": dict(DEFAULT_PREFERENCES),
        "followers": [],
        "following": [],
        "xp": 0,
        "level": 1,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return User(**fields)


@pytest.fixture
def user_factory():
    return make_user


@pytest_asyncio.fixture
async def client():
    """HTTP client bound to the ASGI app (lifespan is not run)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
