from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class AttendeeRecord:
    first_name: str
    last_name: str
    vip: bool = False

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class RegistrationRecord:
    id: int
    serial: str
    email: str
    checked_in: bool
    checked_in_at: Optional[float]
    created_at: float
    attendees: List[AttendeeRecord] = field(default_factory=list)

    @property
    def names(self) -> List[str]:
        return [a.display_name for a in self.attendees]

    @property
    def has_vip(self) -> bool:
        return any(a.vip for a in self.attendees)


class MarkResult(str, Enum):
    CHECKED_IN = "checked_in"
    ALREADY_CHECKED_IN = "already_checked_in"
    NOT_FOUND = "not_found"
