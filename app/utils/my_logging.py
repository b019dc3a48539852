# app/utils/my_logging.py
"""Logging configuration shared by the API process and the Celery worker"""
import logging
import sys
from app.config.settings import get_settings

NOISY_LOGGERS = [
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "httpx",
    "celery",
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
]


def setup_logging(verbose=True):
    """
    Configure root logging to stdout.

    verbose=False keeps the app at WARNING and mutes third-party loggers
    below ERROR (used by scripts and quiet test runs).
    """
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    if not verbose:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.ERROR)

    # Booking admission decisions are always worth keeping
    logging.getLogger("app.services.appointment").setLevel(min(level, logging.INFO))
