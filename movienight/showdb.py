"""
Dump the Movie Night database: every table with its columns and row count,
then all registrations and attendees.

    python -m movienight.showdb [--database-url URL]
"""
import argparse
import asyncio
import json
import sys
from typing import TextIO

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncConnection

from . import config
from .infra.sql import make_async_engine


def _describe(sync_conn):
    insp = inspect(sync_conn)
    tables = []
    for name in sorted(insp.get_table_names()):
        pk = set(insp.get_pk_constraint(name).get("constrained_columns") or [])
        tables.append((name, [
            (c["name"], str(c["type"]), c["name"] in pk,
             not c.get("nullable", True), c.get("default"))
            for c in insp.get_columns(name)
        ]))
    return tables


async def _rows(conn: AsyncConnection, table: str) -> list[dict]:
    result = await conn.execute(text(f"SELECT * FROM {table} ORDER BY id"))
    return [dict(r) for r in result.mappings().all()]


async def dump(database_url: str, out: TextIO = sys.stdout) -> None:
    engine, _, _, _ = make_async_engine(database_url)
    try:
        async with engine.connect() as conn:
            tables = await conn.run_sync(_describe)

            print("=== DATABASE TABLES ===\n", file=out)
            for name, columns in tables:
                print(f"TABLE: {name}", file=out)
                for col, type_, pk, notnull, default in columns:
                    info = f"  {col} ({type_})"
                    if pk:
                        info += " PRIMARY KEY"
                    if notnull:
                        info += " NOT NULL"
                    if default is not None:
                        info += f" DEFAULT {default}"
                    print(info, file=out)
                count = (await conn.execute(
                    text(f"SELECT COUNT(*) FROM {name}")
                )).scalar_one()
                print(f"  -> {count} rows\n", file=out)

            names = {name for name, _ in tables}
            for table in ("registrations", "attendees"):
                print(f"=== {table.upper()} DATA ===", file=out)
                rows = await _rows(conn, table) if table in names else []
                if not rows:
                    print("  (empty)", file=out)
                for r in rows:
                    print(json.dumps(r, indent=2, default=str), file=out)
                print(file=out)
    finally:
        await engine.dispose()


def main():
    ap = argparse.ArgumentParser(description="Print the database contents")
    ap.add_argument(
        "--database-url", default=config.DATABASE_URL,
        help="defaults to $DATABASE_URL"
    )
    args = ap.parse_args()
    asyncio.run(dump(args.database_url))


if __name__ == "__main__":
    main()
