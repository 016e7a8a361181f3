from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...errors import PersistenceFailure, SerialConflict
from ...helpers import now_ts
from ...infra.sql import Gated
from .orm import Attendee, Registration
from .records import AttendeeRecord, MarkResult, RegistrationRecord

logger = logging.getLogger(__name__)

_SELECT_REGISTRATIONS = """
    SELECT id, serial, email, checked_in, checked_in_at, created_at
    FROM registrations
"""


class RegistrationStore:
    """
    Registrations and their attendees. Every public method is one
    transaction; the session must not have one open when called.
    """

    def __init__(self, *, db: AsyncSession, gated: Gated) -> None:
        self.db = db
        self.gated = gated

    # ---
    # writes
    # ---
    async def insert_registration(self, serial: str, email: str) -> int:
        async with self.gated():
            async with self._begin(serial):
                reg = await self._add_registration(serial, email)
        return reg.id

    async def insert_attendee(
        self, registration_id: int, first_name: str, last_name: str,
        vip: bool = False,
    ) -> None:
        async with self.gated():
            async with self.db.begin():
                self.db.add(Attendee(
                    registration_id=registration_id,
                    first_name=first_name,
                    last_name=last_name,
                    vip=vip,
                ))

    async def create_registration(
        self, serial: str, email: str, attendees: Sequence[AttendeeRecord]
    ) -> RegistrationRecord:
        """Insert a registration and all of its attendees atomically."""
        async with self.gated():
            async with self._begin(serial):
                reg = await self._add_registration(serial, email)
                self.db.add_all([
                    Attendee(
                        registration_id=reg.id,
                        first_name=a.first_name,
                        last_name=a.last_name,
                        vip=a.vip,
                    )
                    for a in attendees
                ])
        return RegistrationRecord(
            id=reg.id,
            serial=reg.serial,
            email=reg.email,
            checked_in=False,
            checked_in_at=None,
            created_at=reg.created_at,
            attendees=list(attendees),
        )

    async def mark_checked_in(
        self, serial: str, now: Optional[float] = None
    ) -> MarkResult:
        """
        Flip ``checked_in`` false -> true with a single conditional UPDATE.
        Of any number of concurrent callers for one serial exactly one sees
        CHECKED_IN. ``checked_in_at`` never precedes ``created_at``.
        """
        now = now_ts() if now is None else now
        async with self.gated():
            async with self.db.begin():
                result = await self.db.execute(text("""
                    UPDATE registrations
                    SET checked_in = :redeemed,
                        checked_in_at = CASE
                            WHEN created_at > :now THEN created_at
                            ELSE :now
                        END
                    WHERE serial = :serial AND checked_in = :pending
                """), {
                    "serial": serial,
                    "now": now,
                    "redeemed": True,
                    "pending": False,
                })
                if result.rowcount == 1:
                    return MarkResult.CHECKED_IN

                row = (await self.db.execute(
                    text("SELECT id FROM registrations WHERE serial = :serial"),
                    {"serial": serial},
                )).first()
        if row is None:
            return MarkResult.NOT_FOUND
        return MarkResult.ALREADY_CHECKED_IN

    async def delete_by_serial(self, serial: str) -> bool:
        # attendees first: they reference the registration row
        async with self.gated():
            async with self.db.begin():
                await self.db.execute(text("""
                    DELETE FROM attendees
                    WHERE registration_id IN (
                        SELECT id FROM registrations WHERE serial = :serial
                    )
                """), {"serial": serial})
                result = await self.db.execute(
                    text("DELETE FROM registrations WHERE serial = :serial"),
                    {"serial": serial},
                )
                deleted = result.rowcount > 0
        return deleted

    # ---
    # reads
    # ---
    async def find_by_serial(
        self, serial: str
    ) -> Optional[RegistrationRecord]:
        async with self.gated():
            async with self.db.begin():
                row = (await self.db.execute(
                    text(_SELECT_REGISTRATIONS + " WHERE serial = :serial"),
                    {"serial": serial},
                )).mappings().first()
                if row is None:
                    return None
                records = await self._with_attendees([row])
        return records[0]

    async def list_all(self) -> List[RegistrationRecord]:
        """Registrations with at least one attendee, newest first."""
        async with self.gated():
            async with self.db.begin():
                rows = (await self.db.execute(text(_SELECT_REGISTRATIONS + """
                    WHERE EXISTS (
                        SELECT 1 FROM attendees
                        WHERE attendees.registration_id = registrations.id
                    )
                    ORDER BY created_at DESC, id DESC
                """))).mappings().all()
                return await self._with_attendees(rows)

    async def count_rows(self) -> Dict[str, int]:
        async with self.gated():
            async with self.db.begin():
                regs = (await self.db.execute(
                    text("SELECT COUNT(*) FROM registrations")
                )).scalar_one()
                atts = (await self.db.execute(
                    text("SELECT COUNT(*) FROM attendees")
                )).scalar_one()
        return {"registrations": int(regs), "attendees": int(atts)}

    # ---
    # internals
    # ---
    @asynccontextmanager
    async def _begin(self, serial: str) -> AsyncIterator[None]:
        try:
            async with self.db.begin():
                yield
        except IntegrityError as e:
            # serial is the only unique column besides the primary keys
            if "serial" in str(e.orig):
                raise SerialConflict(serial) from e
            raise

    async def _add_registration(
        self, serial: str, email: str
    ) -> Registration:
        reg = Registration(
            serial=serial,
            email=email,
            checked_in=False,
            created_at=now_ts(),
        )
        self.db.add(reg)
        await self.db.flush()
        return reg

    async def _with_attendees(self, rows) -> List[RegistrationRecord]:
        if not rows:
            return []
        by_reg: Dict[int, List[AttendeeRecord]] = {r["id"]: [] for r in rows}
        stmt = text("""
            SELECT registration_id, first_name, last_name, vip
            FROM attendees
            WHERE registration_id IN :ids
            ORDER BY id
        """).bindparams(bindparam("ids", expanding=True))
        att_rows = (await self.db.execute(
            stmt, {"ids": list(by_reg)}
        )).mappings().all()
        for a in att_rows:
            by_reg[a["registration_id"]].append(AttendeeRecord(
                first_name=a["first_name"],
                last_name=a["last_name"],
                vip=bool(a["vip"]),
            ))
        return [
            RegistrationRecord(
                id=r["id"],
                serial=r["serial"],
                email=r["email"],
                checked_in=bool(r["checked_in"]),
                checked_in_at=(
                    None if r["checked_in_at"] is None
                    else float(r["checked_in_at"])
                ),
                created_at=float(r["created_at"]),
                attendees=by_reg[r["id"]],
            )
            for r in rows
        ]


@asynccontextmanager
async def open_store(
    sessions: async_sessionmaker, gated: Gated
) -> AsyncIterator[RegistrationStore]:
    """
    One session per unit of work. Driver and pool errors surface as
    PersistenceFailure; SerialConflict passes through untouched.
    """
    try:
        async with sessions() as db:
            yield RegistrationStore(db=db, gated=gated)
    except SQLAlchemyError as e:
        logger.error("store operation failed: %s", e, exc_info=True)
        raise PersistenceFailure() from e
