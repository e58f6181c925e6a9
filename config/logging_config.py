"""
Logging setup for applications embedding the catalog.

Library modules only create module loggers; the embedding application
calls configure_logging() once at startup.
"""

import logging
from typing import Optional

from config.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger with the catalog format and level."""
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
