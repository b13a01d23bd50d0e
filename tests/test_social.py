"""
Social and Preference Tests
===========================

Tests for the follow graph and preference updates.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.errors import ConflictError, ErrorCodes, ValidationError
from app.schemas.profile import PreferencesUpdate
from app.services.profile_service import ProfileService, follow, unfollow, user_summary


class TestFollow:
    def test_follow_updates_both_users(self, user_factory):
        alice, bob = user_factory("alice"), user_factory("bob")

        follow(alice, bob)

        assert alice.following == [str(bob.user_id)]
        assert bob.followers == [str(alice.user_id)]
        assert alice.followers == []
        assert bob.following == []

    def test_cannot_follow_yourself(self, user_factory):
        alice = user_factory("alice")

        with pytest.raises(ValidationError) as exc:
            follow(alice, alice)

        assert exc.value.code == ErrorCodes.SOCIAL_SELF_FOLLOW
        assert alice.following == []

    def test_cannot_follow_twice(self, user_factory):
        alice, bob = user_factory("alice"), user_factory("bob")
        follow(alice, bob)

        with pytest.raises(ConflictError) as exc:
            follow(alice, bob)

        assert exc.value.code == ErrorCodes.SOCIAL_ALREADY_FOLLOWING
        assert bob.followers == [str(alice.user_id)]


class TestUnfollow:
    def test_unfollow_removes_both_edges(self, user_factory):
        alice, bob = user_factory("alice"), user_factory("bob")
        follow(alice, bob)
        follow(bob, alice)

        unfollow(alice, bob)

        assert alice.following == []
        assert bob.followers == []
        # The reverse edge is untouched
        assert bob.following == [str(alice.user_id)]
        assert alice.followers == [str(bob.user_id)]

    def test_unfollow_when_not_following_is_harmless(self, user_factory):
        alice, bob = user_factory("alice"), user_factory("bob")

        unfollow(alice, bob)

        assert alice.following == []
        assert bob.followers == []


def test_user_summary(user_factory):
    bob = user_factory("bob", bio="Runner", avatar="https://example.com/bob.png")

    assert user_summary(bob) == {
        "id": str(bob.user_id),
        "username": "bob",
        "avatar": "https://example.com/bob.png",
        "bio": "Runner",
    }


class TestPreferences:
    @pytest.mark.asyncio
    async def test_update_merges_over_stored_preferences(self, user_factory):
        db = MagicMock()
        db.flush = AsyncMock()
        user = user_factory(preferences={"dark_mode": True})

        with patch(
            "app.services.profile_service.CacheInvalidator.on_profile_update",
            AsyncMock(),
        ) as invalidate:
            prefs = await ProfileService(db).update_preferences(
                user,
                PreferencesUpdate(reminderDaysBefore=7, goalReminders=False),
            )

        assert prefs["dark_mode"] is True
        assert prefs["reminder_days_before"] == 7
        assert prefs["goal_reminders"] is False
        assert prefs["email_notifications"] is True
        invalidate.assert_awaited_once_with(str(user.user_id))
