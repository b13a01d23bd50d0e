"""
Utilities Module
================

Helper functions and utility classes.
"""

from app.utils.helpers import day_window, local_now, parse_date, start_of_day, utc_now

__all__ = ["day_window", "local_now", "parse_date", "start_of_day", "utc_now"]
