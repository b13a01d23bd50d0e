"""
Database Module
===============

Provides database session management and base model.
"""

from app.db.base import Base, JSONType
from app.db.session import get_db, get_session_factory, init_db, close_db

__all__ = ["Base", "JSONType", "get_db", "get_session_factory", "init_db", "close_db"]
