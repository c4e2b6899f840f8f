"""Logging configuration.

Configures the root logger once for the whole application. Modules obtain
their own logger with ``logging.getLogger(__name__)``.
"""

import logging
import sys

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Attach a stream handler to the root logger.

    Calling this more than once is a no-op, so both the ASGI app and the
    command-line entry point can call it safely.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG".
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # SQLAlchemy echoes every statement at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
