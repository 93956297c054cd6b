"""
Persistence layer: SQLAlchemy schema, sessions and repositories.
"""

from .base import Base, utcnow
from .session import create_db_engine, create_session_factory, init_schema

__all__ = [
    "Base",
    "utcnow",
    "create_db_engine",
    "create_session_factory",
    "init_schema",
]
