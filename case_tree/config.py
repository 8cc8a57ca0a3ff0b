"""Application configuration using Pydantic Settings."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CASE_TREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./case_tree.db"
    echo_sql: bool = False
    # Applied to non-SQLite engines only, e.g. "REPEATABLE READ" or "SERIALIZABLE"
    isolation_level: str | None = None
    # Seconds a SQLite writer waits for the database lock
    sqlite_busy_timeout: float = 30.0

    # Tree limits (root folders are level 0)
    max_folder_depth: int = 32

    # Audit
    default_actor: str = "system"

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
