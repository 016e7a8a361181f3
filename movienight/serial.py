import re
import secrets
from datetime import datetime
from typing import Optional

from . import config

SERIAL_RE = re.compile(r"^[A-Z]+-\d{4}-[0-9A-F]{8}$")


def generate_serial(
    prefix: str = config.SERIAL_PREFIX, year: Optional[int] = None
) -> str:
    """
    Return a fresh ticket serial, e.g. ``MN-2026-1F0A9C3E``.

    The random part is 4 bytes from the OS CSPRNG. Uniqueness is enforced by
    the store; callers regenerate on conflict.
    """
    if year is None:
        year = datetime.now().year
    return f"{prefix}-{year}-{secrets.token_hex(4).upper()}"


def normalize_serial(raw: str) -> str:
    # manual entry at the door: stray whitespace, lower case
    return raw.strip().upper()
