"""Logging setup for scripts and embedding applications."""
import logging
from typing import Optional

from app.settings import settings
from oversight.core.config import get_settings


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once, from settings unless overridden.

    ``OVERSIGHT_DEBUG`` forces DEBUG when no explicit level is passed.
    """
    if level is None and get_settings().debug:
        level = "DEBUG"
    resolved = (level or settings.LOG_LEVEL).upper()
    numeric_level = logging.getLevelName(resolved)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(settings.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
    root.setLevel(numeric_level)

    # SQLAlchemy engine logging is controlled by DATABASE_ECHO
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DATABASE_ECHO else logging.WARNING
    )
