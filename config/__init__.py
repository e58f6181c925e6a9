"""
Config Package - Application configuration and database setup.
"""

from config.settings import Settings, get_settings
from config.database import (
    SessionLocal,
    Base,
    engine,
    init_db,
    build_engine,
    build_session_factory,
)
from config.logging_config import configure_logging

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Database
    "SessionLocal",
    "Base",
    "engine",
    "init_db",
    "build_engine",
    "build_session_factory",
    # Logging
    "configure_logging",
]
