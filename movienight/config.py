import os


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


# ----------------------------
# Store
# ----------------------------
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./movienight.db")
DB_POOL_SIZE = _env_int("DB_POOL_SIZE", 10)
DB_MAX_OVERFLOW = _env_int("DB_MAX_OVERFLOW", 10)
DB_POOL_TIMEOUT = _env_int("DB_POOL_TIMEOUT", 30)
# None -> derived from the pool size (postgres) or 10 (sqlite)
DB_GATE_LIMIT = (
    int(os.environ["DB_GATE_LIMIT"]) if os.getenv("DB_GATE_LIMIT") else None
)

# ----------------------------
# Tickets
# ----------------------------
SERIAL_PREFIX = os.environ.get("SERIAL_PREFIX", "MN")
SERIAL_MAX_ATTEMPTS = _env_int("SERIAL_MAX_ATTEMPTS", 5)

# ----------------------------
# Email (Resend HTTP API)
# ----------------------------
RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
RESEND_API_URL = os.environ.get(
    "RESEND_API_URL", "https://api.resend.com/emails"
)
SENDER_NAME = os.environ.get("SENDER_NAME", "Movie Night")
SENDER_ADDRESS = os.environ.get("SENDER_ADDRESS", "onboarding@resend.dev")
REPLY_TO = os.environ.get("REPLY_TO", "")
MAIL_TIMEOUT = float(os.environ.get("MAIL_TIMEOUT", "5.0"))

# ----------------------------
# Web
# ----------------------------
GATE_PASSPHRASE = os.environ.get("GATE_PASSPHRASE", "movienight")
SESSION_SECRET = os.environ.get("SESSION_SECRET", "dev-secret-change-me")
STATIC_DIR = os.environ.get("STATIC_DIR", "")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
