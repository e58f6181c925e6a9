from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Catalog settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///recipes.db"
    sql_echo: bool = False

    # Validation ranges (match the recipe form steppers)
    min_serving: int = 1
    max_serving: int = 100
    min_time: int = 1
    max_time: int = 600
    max_name_length: int = 200
    max_quantity_length: int = 100

    # Run the post-mutation invariant audit inside every write transaction
    verify_integrity: bool = True

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="RECIPES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
