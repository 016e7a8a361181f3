"""
Schema bootstrap and migrations, run once per process at startup.

``create_all`` only creates missing tables, so columns added after a table
first shipped are brought in by explicit, idempotent migration steps.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Tuple

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncConnection

from .orm import Base

logger = logging.getLogger(__name__)


async def _column_names(conn: AsyncConnection, table: str) -> set[str]:
    return await conn.run_sync(
        lambda sync_conn: {
            c["name"] for c in inspect(sync_conn).get_columns(table)
        }
    )


async def add_attendee_vip(conn: AsyncConnection) -> bool:
    if "vip" in await _column_names(conn, "attendees"):
        return False
    await conn.execute(text(
        "ALTER TABLE attendees "
        "ADD COLUMN vip BOOLEAN NOT NULL DEFAULT FALSE"
    ))
    return True


MIGRATIONS: List[Tuple[str, Callable[[AsyncConnection], Awaitable[bool]]]] = [
    ("add_attendee_vip", add_attendee_vip),
]


async def ensure_schema(conn: AsyncConnection) -> List[str]:
    """Create missing tables, then apply pending migrations.

    Returns the names of the migration steps that changed the schema.
    """
    await conn.run_sync(Base.metadata.create_all)
    applied = []
    for name, step in MIGRATIONS:
        if await step(conn):
            logger.info("applied migration %s", name)
            applied.append(name)
    return applied
