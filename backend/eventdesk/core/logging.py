"""Logging configuration for the service."""
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure the package logger with a single stdout handler."""
    logger = logging.getLogger("eventdesk")
    if any(getattr(h, "_eventdesk", False) for h in logger.handlers):
        logger.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._eventdesk = True  # type: ignore[attr-defined]

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    # SQL echo stays off; raise to INFO locally to see queries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger.info("Logging initialized (level=%s)", level)
