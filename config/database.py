"""
Database setup - engine, session factory and declarative base.

SQLite is the default backend. Foreign keys are switched on for every
connection so the ON DELETE rules declared on the tables back up the
explicit propagation done by the integrity service.
"""

from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import Settings, get_settings

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(settings: Optional[Settings] = None) -> Engine:
    """
    Create an engine for the configured database.

    In-memory SQLite databases share one connection across threads,
    otherwise every session would see its own empty database.
    """
    settings = settings or get_settings()
    kwargs = {"echo": settings.sql_echo}

    if settings.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in settings.database_url or settings.database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool

    engine = create_engine(settings.database_url, **kwargs)

    if settings.is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all catalog tables if they do not exist yet."""
    # Import entities so their tables are registered on Base.metadata
    import models.entities  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


engine = build_engine()
SessionLocal = build_session_factory(engine)

