"""
Pydantic Schemas
================

Request/response schemas for API validation.
"""

from app.schemas.common import (
    BaseResponse,
    CamelModel,
    ErrorResponse,
)

__all__ = [
    "BaseResponse",
    "CamelModel",
    "ErrorResponse",
]
