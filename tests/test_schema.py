from sqlalchemy import inspect, text

from movienight.infra.sql import make_async_engine
from movienight.model.registration import (
    AttendeeRecord, ensure_schema, open_store
)

LEGACY_DDL = [
    """
    CREATE TABLE registrations (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      serial TEXT UNIQUE NOT NULL,
      email TEXT NOT NULL,
      checked_in INTEGER DEFAULT 0,
      checked_in_at REAL,
      created_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE attendees (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      registration_id INTEGER NOT NULL,
      first_name TEXT NOT NULL,
      last_name TEXT NOT NULL,
      FOREIGN KEY (registration_id) REFERENCES registrations(id)
    )
    """,
    "INSERT INTO registrations (serial, email, created_at) "
    "VALUES ('MN-2025-0000AAAA', 'old@b.com', 1700000000.0)",
    "INSERT INTO attendees (registration_id, first_name, last_name) "
    "VALUES (1, 'Old', 'Guest')",
]


async def _columns(engine, table):
    async with engine.connect() as conn:
        return await conn.run_sync(
            lambda c: {col["name"] for col in inspect(c).get_columns(table)}
        )


async def test_fresh_database_needs_no_migration(db_url):
    engine, _, _, _ = make_async_engine(db_url)
    try:
        async with engine.begin() as conn:
            assert await ensure_schema(conn) == []
        assert "vip" in await _columns(engine, "attendees")
    finally:
        await engine.dispose()


async def test_legacy_attendees_gain_vip_column_once(db_url):
    engine, sessions, _, gated = make_async_engine(db_url)
    try:
        async with engine.begin() as conn:
            for stmt in LEGACY_DDL:
                await conn.execute(text(stmt))

        async with engine.begin() as conn:
            assert await ensure_schema(conn) == ["add_attendee_vip"]
        async with engine.begin() as conn:
            assert await ensure_schema(conn) == []

        async with open_store(sessions, gated) as store:
            old = await store.find_by_serial("MN-2025-0000AAAA")
            await store.create_registration(
                "MN-2026-0000BBBB", "new@b.com",
                [AttendeeRecord("New", "Guest", vip=True)],
            )
            new = await store.find_by_serial("MN-2026-0000BBBB")
        assert old.names == ["Old Guest"]
        assert not old.has_vip
        assert new.has_vip
    finally:
        await engine.dispose()
