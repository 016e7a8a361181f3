from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from sqlalchemy.ext.asyncio import async_sessionmaker

from .errors import NotFound
from .infra.sql import Gated
from .model.registration import RegistrationRecord, open_store

logger = logging.getLogger(__name__)


@dataclass
class AttendeeListing:
    entries: List[RegistrationRecord]

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def checked_in_count(self) -> int:
        return sum(1 for e in self.entries if e.checked_in)


class ListingService:
    """Operator dashboard: read-only listing plus wholesale deletion."""

    def __init__(
        self, *, sessions: async_sessionmaker, gated: Gated
    ) -> None:
        self.sessions = sessions
        self.gated = gated

    async def list_attendees(self) -> AttendeeListing:
        async with open_store(self.sessions, self.gated) as store:
            return AttendeeListing(entries=await store.list_all())

    async def delete(self, serial: str) -> None:
        async with open_store(self.sessions, self.gated) as store:
            deleted = await store.delete_by_serial(serial)
        if not deleted:
            raise NotFound()
        logger.info("deleted registration %s", serial)
