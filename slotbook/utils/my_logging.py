# slotbook/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from slotbook.config.settings import get_settings

# Per-slot and per-conflict decisions are logged here
ENGINE_LOGGER = "slotbook.scheduling"


def _level(name: str, default: int = logging.INFO) -> int:
    return getattr(logging, (name or "").upper(), default)


def setup_logging(verbose=True):
    """Configure application logging.

    The scheduling engine gets its own level so slot-by-slot decisions can
    be traced without turning on DEBUG for SQLAlchemy and the HTTP layer.
    """
    settings = get_settings()

    if verbose:
        level = _level(settings.LOG_LEVEL)
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    logging.getLogger(ENGINE_LOGGER).setLevel(_level(settings.SCHEDULING_LOG_LEVEL, level))

    if not verbose:
        # Silence noisy loggers
        for name in ("sqlalchemy", "alembic", "uvicorn", "uvicorn.error", "uvicorn.access"):
            logger = logging.getLogger(name)
            logger.setLevel(logging.ERROR)
            logger.propagate = False
