"""
Common Schemas
==============

Shared Pydantic schemas used across the application.
"""

from datetime import date
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """
    Request body base.

    Fields are declared in snake_case and also accepted in the camelCase
    form the web client sends (``targetDate``, ``subGoals``).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BaseResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str
    message: str
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: ErrorDetail


def coerce_date(value: Any) -> Any:
    """
    Accept full ISO timestamps where a calendar date is expected.

    ``"2026-03-01T00:00:00.000Z"`` becomes ``"2026-03-01"``; anything else
    is passed through for Pydantic to validate.
    """
    if isinstance(value, str) and len(value) > 10 and value[10] in ("T", " "):
        return value[:10]
    if value == "":
        return None
    return value


def iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None
