"""
Store Primitives

Dialect-aware upsert and filtered reads over the analytics table.
PostgreSQL runs in production; SQLite backs the test-suite. Both support
``INSERT ... ON CONFLICT DO UPDATE`` through their SQLAlchemy dialects.
"""

from typing import Any, Dict, Iterable, List, Sequence

import structlog
from sqlalchemy import ColumnElement, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

logger = structlog.get_logger(__name__)

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _dialect_insert(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Upsert not supported for dialect: {dialect}") from None


async def upsert_rows(
    session: AsyncSession,
    model: type[DeclarativeBase],
    rows: List[Dict[str, Any]],
    key: str = "id",
) -> int:
    """
    Insert rows, replacing every non-key column when the key already exists.

    Args:
        session: Open session (the caller commits)
        model: Mapped class of the target table
        rows: Records with identical key sets
        key: Primary key column name

    Returns:
        Number of rows written
    """
    if not rows:
        return 0

    insert = _dialect_insert(session)
    stmt = insert(model).values(rows)
    columns = [c.name for c in model.__table__.columns if c.name != key]
    stmt = stmt.on_conflict_do_update(
        index_elements=[key],
        set_={name: stmt.excluded[name] for name in columns},
    )
    await session.execute(stmt)
    return len(rows)


async def fetch_rows(
    session: AsyncSession,
    model: type[DeclarativeBase],
    columns: Sequence[str],
    clauses: Iterable[ColumnElement[bool]],
) -> List[Dict[str, Any]]:
    """Read the selected columns of every row matching all ``clauses``."""
    table = model.__table__
    query = select(*(table.c[name] for name in columns)).where(*clauses).order_by(table.c.id)
    result = await session.execute(query)
    return [dict(row._mapping) for row in result]
