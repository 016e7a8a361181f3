import hmac
import time
from datetime import datetime, timezone
from typing import Optional


def now_ts() -> float:
    """Epoch seconds; the store keeps every timestamp in this form."""
    return time.time()


def to_iso(ts: Optional[float]) -> Optional[str]:
    # store -> HTTP boundary, always UTC
    if ts is None:
        return None
    return datetime.fromtimestamp(float(ts), tz=timezone.utc).isoformat()


def is_valid_email(email: Optional[str]) -> bool:
    # loose on purpose: the mail provider does the real check
    if not email:
        return False
    email = email.strip()
    local, at, domain = email.partition("@")
    return bool(at and local and domain) and not any(
        c.isspace() for c in email
    )


def ct_equal(entered: str, expected: str) -> bool:
    """Compare the door passphrase without leaking its length by timing."""
    return hmac.compare_digest(entered.encode(), expected.encode())
