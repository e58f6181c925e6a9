import logging

from sqlalchemy import delete, text
from sqlalchemy.pool import StaticPool

from config import configure_logging
from config.database import build_engine
from config.settings import Settings, get_settings
from models.entities import Category, Recipe


def test_defaults():
    settings = Settings()

    assert settings.min_serving == 1
    assert settings.max_serving == 100
    assert settings.min_time == 1
    assert settings.max_time == 600
    assert settings.max_name_length == 200
    assert settings.max_quantity_length == 100
    assert settings.verify_integrity is True
    assert settings.is_sqlite


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RECIPES_MAX_SERVING", "12")
    monkeypatch.setenv("RECIPES_VERIFY_INTEGRITY", "false")

    settings = Settings()

    assert settings.max_serving == 12
    assert settings.verify_integrity is False


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


def test_in_memory_engine_shares_one_connection(engine):
    assert isinstance(engine.pool, StaticPool)


def test_file_engine_uses_a_regular_pool(tmp_path):
    engine = build_engine(Settings(database_url=f"sqlite:///{tmp_path / 'x.db'}"))
    try:
        assert not isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()


def test_foreign_keys_are_enforced(engine):
    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1


def test_on_delete_backs_up_category_nullify(db):
    italian = Category(Name="Italian")
    db.add(italian)
    db.flush()
    pizza = Recipe(Name="Pizza", CategoryId=italian.CategoryId)
    db.add(pizza)
    db.flush()

    db.execute(delete(Category).where(Category.CategoryId == italian.CategoryId))
    db.expire_all()

    assert db.get(Recipe, pizza.RecipeId).CategoryId is None
    assert db.execute(text('SELECT COUNT(*) FROM "Categories"')).scalar() == 0


def test_configure_logging_quiets_sqlalchemy():
    configure_logging("debug")

    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
