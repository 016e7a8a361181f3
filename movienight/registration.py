from __future__ import annotations

import logging
from typing import Any, Callable, List, Tuple

from sqlalchemy.ext.asyncio import async_sessionmaker

from . import config
from .errors import (
    NotificationFailure, PersistenceFailure, SerialConflict, ValidationError
)
from .helpers import is_valid_email
from .infra.sql import Gated
from .mailer import Notifier
from .model.registration import AttendeeRecord, open_store
from .serial import generate_serial
from .ticket import Ticket, encode_payload

logger = logging.getLogger(__name__)


def validate_registration(
    email: Any, attendees: Any
) -> Tuple[str, List[AttendeeRecord]]:
    """Return the trimmed email and attendees or raise ValidationError."""
    if not isinstance(email, str) or not email.strip() \
            or not isinstance(attendees, list) or not attendees:
        raise ValidationError("Email and at least one attendee required")

    email = email.strip()
    if not is_valid_email(email):
        raise ValidationError("A valid email address is required")

    cleaned = []
    for a in attendees:
        if not isinstance(a, dict):
            raise ValidationError(
                "All attendees must have first and last names"
            )
        first = a.get("firstName")
        last = a.get("lastName")
        if not isinstance(first, str) or not isinstance(last, str) \
                or not first.strip() or not last.strip():
            raise ValidationError(
                "All attendees must have first and last names"
            )
        cleaned.append(AttendeeRecord(
            first_name=first.strip(),
            last_name=last.strip(),
            vip=a.get("vip") is True,
        ))
    return email, cleaned


class RegistrationService:

    def __init__(
        self,
        *,
        sessions: async_sessionmaker,
        gated: Gated,
        notifier: Notifier,
        serials: Callable[[], str] = generate_serial,
        max_attempts: int = config.SERIAL_MAX_ATTEMPTS,
    ) -> None:
        self.sessions = sessions
        self.gated = gated
        self.notifier = notifier
        self.serials = serials
        self.max_attempts = max(1, max_attempts)

    async def register(self, email: Any, attendees: Any) -> Ticket:
        email, cleaned = validate_registration(email, attendees)

        record = None
        for attempt in range(1, self.max_attempts + 1):
            serial = self.serials()
            try:
                async with open_store(self.sessions, self.gated) as store:
                    record = await store.create_registration(
                        serial, email, cleaned
                    )
                break
            except SerialConflict:
                logger.warning(
                    "serial collision on %s (attempt %d/%d)",
                    serial, attempt, self.max_attempts,
                )
        if record is None:
            raise PersistenceFailure("Could not allocate a unique serial")

        logger.info(
            "registered %s with %d attendee(s)",
            record.serial, len(record.attendees),
        )
        ticket = Ticket(
            serial=record.serial,
            email=record.email,
            payload=encode_payload(record.serial, record.attendees),
            attendees=record.attendees,
        )
        ticket.email_sent = await self._notify(ticket)
        return ticket

    async def _notify(self, ticket: Ticket) -> bool:
        # best effort: the registration is already committed
        if not self.notifier.enabled:
            return False
        try:
            await self.notifier.send_ticket(ticket)
        except NotificationFailure as e:
            logger.warning(
                "email for %s failed (registration still saved): %s",
                ticket.serial, e.message,
            )
            return False
        except Exception:
            logger.error(
                "email for %s crashed (registration still saved)",
                ticket.serial, exc_info=True,
            )
            return False
        return True
