import pytest

from config.database import build_engine, build_session_factory, init_db
from config.settings import Settings
from services import CatalogService


@pytest.fixture
def settings():
    # In-memory database shared through a StaticPool connection
    return Settings(database_url="sqlite://")


@pytest.fixture
def engine(settings):
    engine = build_engine(settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    """A raw session for repository-level tests."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def catalog(session_factory, settings):
    return CatalogService(session_factory, settings)


@pytest.fixture
def file_catalog(tmp_path):
    """A catalog backed by a SQLite file, for restart and threading tests."""
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'catalog.db'}")
    catalog = CatalogService.open(settings)
    yield catalog
    catalog.close()
