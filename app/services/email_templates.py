"""
Email Templates
===============

Subject and HTML body builders for transactional emails. Every
user-controlled value is HTML-escaped before interpolation.
"""

from datetime import datetime
from html import escape

from app.config import settings

_FONT = "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif"


def _layout(header: str, body: str, header_bg: str = "linear-gradient(135deg, #1E293B 0%, #334155 100%)") -> str:
    """Wrap a body fragment in the shared card layout."""
    year = datetime.now().year
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; font-family: {_FONT}; background-color: #FBFBFA; color: #1E293B;">
  <div style="max-width: 600px; margin: 40px auto; background: white; border-radius: 12px; overflow: hidden;">
    <div style="background: {header_bg}; padding: 40px 30px; text-align: center;">
      <h1 style="color: white; margin: 0; font-size: 28px; font-weight: 600;">{header}</h1>
    </div>
    <div style="padding: 40px 30px; line-height: 1.6;">
      {body}
      <p style="margin-top: 30px; color: #6B7280; font-size: 14px;">Best regards,<br>The Progress Team</p>
    </div>
    <div style="background: #F1F1EF; padding: 20px 30px; text-align: center; font-size: 12px; color: #6B7280;">
      <p>This is an automated message, please do not reply.</p>
      <p>&copy; {year} Progress App. Built for human potential.</p>
    </div>
  </div>
</body>
</html>
"""


def _code_box(code: str) -> str:
    return (
        '<div style="background: #F1F1EF; border: 2px dashed #94A3B8; border-radius: 8px; '
        'padding: 20px; text-align: center; margin: 30px 0;">'
        '<div style="font-size: 32px; font-weight: bold; letter-spacing: 8px; '
        f"font-family: 'Courier New', monospace;\">{escape(code)}</div></div>"
    )


def verification_email(code: str, username: str) -> tuple[str, str]:
    """Account verification code email."""
    ttl = settings.VERIFICATION_CODE_TTL_MINUTES
    body = f"""
      <h2>Welcome, {escape(username)}!</h2>
      <p>Thank you for joining Progress. To complete your registration, please verify your email address using the code below:</p>
      {_code_box(code)}
      <p>This code will expire in <strong>{ttl} minutes</strong>.</p>
      <div style="background: #FEF3C7; border-left: 4px solid #F59E0B; padding: 12px 16px; margin: 20px 0; border-radius: 4px; font-size: 14px;">
        If you didn't create an account with Progress, please ignore this email.
      </div>
    """
    return "Verify Your Progress Account", _layout("🚀 Progress", body)


def password_reset_email(code: str, username: str) -> tuple[str, str]:
    """Password reset code email."""
    ttl = settings.VERIFICATION_CODE_TTL_MINUTES
    body = f"""
      <h2>Password Reset Request</h2>
      <p>Hi {escape(username)},</p>
      <p>We received a request to reset your password. Use the code below to proceed:</p>
      {_code_box(code)}
      <p>This code will expire in <strong>{ttl} minutes</strong>.</p>
      <div style="background: #FEE2E2; border-left: 4px solid #EF4444; padding: 12px 16px; margin: 20px 0; border-radius: 4px; font-size: 14px;">
        If you didn't request a password reset, please ignore this email and ensure your account is secure.
      </div>
    """
    return "Reset Your Progress Password", _layout("🚀 Progress", body)


_WELCOME_FEATURES = [
    ("📅 Track Daily Habits", "Build consistency with our streak system and visual tracking."),
    ("🎯 Set Goals", "Transform ambitions into actionable milestones with progress tracking."),
    ("📓 Reflect & Journal", "Document your thoughts and track your mood throughout your journey."),
    ("📊 Analyze Progress", "Visualize your growth with charts and insights."),
]


def welcome_email(username: str) -> tuple[str, str]:
    """Sent once the account is verified."""
    features = "".join(
        '<div style="margin: 20px 0; padding: 15px; background: #F1F1EF; border-radius: 8px;">'
        f'<h3 style="margin: 0 0 8px 0;">{title}</h3><p>{text}</p></div>'
        for title, text in _WELCOME_FEATURES
    )
    body = f"""
      <h2>You're all set, {escape(username)}!</h2>
      <p>Your account has been verified and you're ready to start your journey to peak potential.</p>
      <h3 style="margin-top: 30px;">Here's what you can do:</h3>
      {features}
      <p style="margin-top: 30px;">Ready to begin? Log in and create your first habit!</p>
    """
    return (
        "Welcome to Progress - Let's Get Started!",
        _layout("🎉 Welcome to Progress!", body, "linear-gradient(135deg, #10B981 0%, #059669 100%)"),
    )


def smtp_test_email(username: str, email: str, now: datetime) -> tuple[str, str]:
    """Admin panel SMTP smoke test."""
    body = f"""
      <h2 style="color: #667eea;">✅ Email System Working!</h2>
      <p>This is a test email sent from the Admin Panel at {now.strftime('%Y-%m-%d %H:%M:%S')}.</p>
      <div style="background: #eff6ff; padding: 20px; border-radius: 8px; margin-top: 20px;">
        <p style="margin: 0; color: #1e40af; font-size: 14px;">
          <strong>User:</strong> {escape(username)}<br>
          <strong>Email:</strong> {escape(email)}<br>
          <strong>Server Time:</strong> {now.isoformat()}
        </p>
      </div>
    """
    return "🧪 Test Email from Progress Admin Panel", _layout("🚀 Progress", body)


def goal_invitation_email(
    inviter_username: str,
    invitee_username: str,
    goal_title: str,
    token: str,
) -> tuple[str, str]:
    """Collaboration invite with the accept link."""
    link = f"{settings.CLIENT_URL}/invite/{escape(token)}"
    body = f"""
      <h2>Hi {escape(invitee_username)},</h2>
      <p><strong>{escape(inviter_username)}</strong> invited you to collaborate on the goal
      <strong>{escape(goal_title)}</strong>.</p>
      <div style="text-align: center; margin-top: 32px;">
        <a href="{link}" style="display: inline-block; background: #3B82F6; color: white; padding: 14px 32px; text-decoration: none; border-radius: 8px; font-weight: 600;">
          Accept Invitation
        </a>
      </div>
    """
    return f"🤝 {inviter_username} invited you to a goal", _layout("🚀 Progress", body)
