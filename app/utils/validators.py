"""
Validators
==========

Common validation utilities shared by request schemas and services.
"""

import re
import uuid

from app.core.errors import ValidationError

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,30}$")
_REMINDER_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def validate_username(username: str) -> str:
    """
    Validate username format.

    3 to 30 characters: letters, digits, underscore, dot or dash.

    Raises:
        ValueError: If the username is invalid
    """
    username = username.strip()
    if not _USERNAME_RE.match(username):
        raise ValueError(
            "Username must be 3-30 characters of letters, numbers, '_', '.' or '-'"
        )
    return username


def validate_password(password: str) -> str:
    """
    Validate password strength.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one number

    Raises:
        ValueError: If password is weak
    """
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")

    if not any(c.isalpha() for c in password):
        raise ValueError("Password must contain at least one letter")

    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one number")

    return password


def validate_reminder_time(value: str) -> str:
    """Validate a 24h ``HH:MM`` reminder time."""
    if not _REMINDER_TIME_RE.match(value):
        raise ValueError("Reminder time must be in HH:MM (24h) format")
    return value


def validate_hex_color(value: str) -> str:
    """Validate a ``#rgb`` / ``#rrggbb`` color."""
    if not _HEX_COLOR_RE.match(value):
        raise ValueError("Color must be a hex value like #10B981")
    return value


def validate_uuid(uuid_str: str, field_name: str = "id") -> uuid.UUID:
    """
    Validate UUID format.

    Args:
        uuid_str: UUID string to validate
        field_name: Field name for error message

    Returns:
        Parsed UUID

    Raises:
        ValidationError: If UUID is invalid
    """
    try:
        return uuid.UUID(str(uuid_str))
    except ValueError:
        raise ValidationError(
            message="Invalid UUID format",
            field=field_name,
        )
