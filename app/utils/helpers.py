"""
Helper Functions
================

Common utility functions used across the application.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    """Current time in the server's local timezone (timezone-aware)."""
    return datetime.now().astimezone()


def round_half_up(value: float) -> int:
    """Nearest integer with halves rounded up (12.5 gives 13)."""
    return int(math.floor(value + 0.5))


def start_of_day(moment: datetime) -> datetime:
    """Midnight of ``moment``'s calendar day, in its own timezone."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def day_window(moment: datetime) -> tuple[datetime, datetime]:
    """Half-open ``[midnight, next midnight)`` window containing ``moment``."""
    start = start_of_day(moment)
    return start, start + timedelta(days=1)


def parse_date(date_str: str, default_tz: Optional[timezone] = None) -> datetime:
    """
    Parse an ISO 8601 timestamp.

    A trailing ``Z`` is accepted. Naive values get ``default_tz`` (UTC when
    not given) so the result can always be compared with aware datetimes.
    """
    parsed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz or timezone.utc)
    return parsed
