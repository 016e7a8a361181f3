from ._schema import ensure_schema, MIGRATIONS
from .orm import Base, Registration, Attendee
from .records import AttendeeRecord, RegistrationRecord, MarkResult
from .store import RegistrationStore, open_store


__all__ = [
    "ensure_schema", "MIGRATIONS",
    "Base", "Registration", "Attendee",
    "AttendeeRecord", "RegistrationRecord", "MarkResult",
    "RegistrationStore", "open_store",
]
