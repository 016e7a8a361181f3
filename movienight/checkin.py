"""
Door check-in: UNKNOWN -> PENDING -> REDEEMED.

The only transition, PENDING -> REDEEMED, is the store's conditional
UPDATE. Two scanners racing on the same ticket both pass the lookup, but
only one UPDATE matches ``checked_in = false``; the loser re-reads the row
and reports ALREADY_REDEEMED.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from .errors import MalformedPayload
from .helpers import to_iso
from .infra.sql import Gated
from .model.registration import MarkResult, RegistrationRecord, open_store
from .serial import normalize_serial
from .ticket import decode_payload

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    GRANTED = "granted"
    ALREADY_REDEEMED = "already_redeemed"
    UNKNOWN = "unknown"


@dataclass
class CheckInResult:
    outcome: Outcome
    message: str
    serial: Optional[str] = None
    names: List[str] = field(default_factory=list)
    has_vip: bool = False
    checked_in_at: Optional[float] = None

    @property
    def valid(self) -> bool:
        return self.outcome is Outcome.GRANTED


def _unknown(message: str = "Invalid QR code - not found in database"):
    return CheckInResult(outcome=Outcome.UNKNOWN, message=message)


def _already(record: RegistrationRecord) -> CheckInResult:
    return CheckInResult(
        outcome=Outcome.ALREADY_REDEEMED,
        message=f"Already checked in at {to_iso(record.checked_in_at)}",
        serial=record.serial,
        names=record.names,
        has_vip=record.has_vip,
        checked_in_at=record.checked_in_at,
    )


class CheckInService:

    def __init__(
        self, *, sessions: async_sessionmaker, gated: Gated
    ) -> None:
        self.sessions = sessions
        self.gated = gated

    async def check_in(self, serial: str) -> CheckInResult:
        serial = normalize_serial(serial)
        async with open_store(self.sessions, self.gated) as store:
            record = await store.find_by_serial(serial)
            if record is None:
                logger.info("check-in rejected: unknown serial")
                return _unknown()
            if record.checked_in:
                logger.info("check-in rejected: %s already used", serial)
                return _already(record)

            mark = await store.mark_checked_in(serial)
            if mark is not MarkResult.CHECKED_IN:
                # lost the race (or the registration vanished meanwhile)
                record = await store.find_by_serial(serial)
                if record is None:
                    return _unknown()
                logger.info("check-in rejected: %s lost race", serial)
                return _already(record)

        logger.info("check-in granted: %s", serial)
        return CheckInResult(
            outcome=Outcome.GRANTED,
            message="Welcome to Movie Night!",
            serial=record.serial,
            names=record.names,
            has_vip=record.has_vip,
        )

    async def check_in_payload(self, raw: str) -> CheckInResult:
        """Check in from a scanned QR payload; garbage is an invalid
        ticket, not an error."""
        try:
            payload = decode_payload(raw)
        except MalformedPayload as e:
            logger.info("check-in rejected: %s", e.message)
            return _unknown("Invalid QR code")
        return await self.check_in(payload.serial)
