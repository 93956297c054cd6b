"""
db/upsert.py

Dialect-aware INSERT ... ON CONFLICT DO NOTHING.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def insert_or_ignore(
    session: Session,
    model: type,
    values: dict[str, Any],
    *,
    conflict_columns: list[str],
    returning: Any | None = None,
) -> Any | None:
    """
    Insert one row unless it conflicts on ``conflict_columns``.

    Returns the ``returning`` column value of the inserted row, or None when
    the row already existed. Without ``returning``, returns True/False.
    """
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect_name == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise RuntimeError(f"insert_or_ignore is not supported on {dialect_name}")

    stmt = stmt.values(**values).on_conflict_do_nothing(index_elements=conflict_columns)

    if returning is not None:
        return session.execute(stmt.returning(returning)).scalar_one_or_none()

    result = session.execute(stmt)
    return result.rowcount == 1
