"""
Email Tests
===========

Tests for the SMTP dispatcher and the transactional email templates.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from app.services.email_service import EmailResult, SmtpEmailDispatcher
from app.services.email_templates import (
    goal_invitation_email,
    password_reset_email,
    smtp_test_email,
    verification_email,
    welcome_email,
)


def make_dispatcher(host="smtp.example.com") -> SmtpEmailDispatcher:
    return SmtpEmailDispatcher(
        host=host,
        port=587,
        from_email="noreply@progress.test",
        from_name="Progress App",
    )


class TestSmtpEmailDispatcher:
    @pytest.mark.asyncio
    async def test_unconfigured_dispatcher_reports_failure(self):
        result = await make_dispatcher(host="").send("a@example.com", "Hi", "<p>Hi</p>")

        assert result == EmailResult(success=False, error="SMTP is not configured")

    @pytest.mark.asyncio
    async def test_successful_send_returns_message_id(self):
        dispatcher = make_dispatcher()

        with patch.object(dispatcher, "_send_sync") as send_sync:
            result = await dispatcher.send("a@example.com", "Hi", "<p>Hi</p>")

        assert result.success is True
        assert result.message_id.endswith("@progress.test>")
        sent = send_sync.call_args.args[0]
        assert sent["To"] == "a@example.com"

    @pytest.mark.asyncio
    async def test_smtp_errors_become_failed_results(self):
        dispatcher = make_dispatcher()

        with patch.object(dispatcher, "_send_sync", side_effect=ConnectionRefusedError("refused")):
            result = await dispatcher.send("a@example.com", "Hi", "<p>Hi</p>")

        assert result.success is False
        assert "refused" in result.error

    @pytest.mark.asyncio
    async def test_verify_connection_without_host(self):
        assert await make_dispatcher(host="").verify_connection() is False

    def test_build_message(self):
        msg = make_dispatcher().build_message("a@example.com", "Subject", "<p>Body</p>")

        assert msg["Subject"] == "Subject"
        assert msg["From"] == "Progress App <noreply@progress.test>"
        assert msg.get_body(preferencelist=("html",)).get_content().strip() == "<p>Body</p>"

    def test_result_to_dict_drops_empty_fields(self):
        assert EmailResult(success=True, message_id="<1@x>").to_dict() == {
            "success": True,
            "message_id": "<1@x>",
        }


class TestTemplates:
    def test_verification_email_contains_code(self):
        subject, html = verification_email("482913", "alice")

        assert subject == "Verify Your Progress Account"
        assert "482913" in html
        assert "Welcome, alice!" in html

    def test_password_reset_email_contains_code(self):
        subject, html = password_reset_email("111222", "alice")

        assert subject == "Reset Your Progress Password"
        assert "111222" in html

    def test_welcome_email(self):
        subject, html = welcome_email("alice")

        assert subject.startswith("Welcome to Progress")
        assert "Track Daily Habits" in html

    def test_usernames_are_escaped(self):
        _, html = verification_email("123456", "<img src=x>")

        assert "<img src=x>" not in html
        assert "&lt;img src=x&gt;" in html

    def test_smtp_test_email(self):
        now = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)

        subject, html = smtp_test_email("admin", "admin@example.com", now)

        assert "Test Email" in subject
        assert "2026-10-19 09:30:00" in html
        assert "admin@example.com" in html

    def test_goal_invitation_email_links_the_token(self):
        subject, html = goal_invitation_email("alice", "bob", "Run a 5K", "tok123")

        assert subject == "🤝 alice invited you to a goal"
        assert "/invite/tok123" in html
        assert "Run a 5K" in html
