import logging
import sys

from .. import config

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = config.LOG_LEVEL) -> None:
    """Attach a stdout handler to the root logger (once per process)."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(getattr(h, "_movienight", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        handler._movienight = True
        root.addHandler(handler)

    # silence noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
