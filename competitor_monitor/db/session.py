"""
db/session.py

SQLAlchemy engine and session factory.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..models.config import DatabaseConfig
from .base import Base


def normalize_database_url(url: str) -> str:
    """Point bare PostgreSQL URLs at the psycopg (v3) driver."""
    url = url.strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg://" + url[len("postgresql://"):]
    return url


def _is_in_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def create_db_engine(config: DatabaseConfig) -> Engine:
    database_url = normalize_database_url(config.url)

    if database_url.startswith("sqlite"):
        if _is_in_memory_sqlite(database_url):
            # One shared connection, otherwise every session sees an empty database
            return create_engine(
                database_url,
                echo=config.echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(
            database_url,
            echo=config.echo,
            connect_args={"check_same_thread": False},
        )

    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL and SQLite URLs are supported.")

    return create_engine(
        database_url,
        echo=config.echo,
        pool_pre_ping=True,
        pool_recycle=config.pool_recycle,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=Session,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def init_schema(engine: Engine) -> None:
    """Create any missing tables."""
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(engine)
