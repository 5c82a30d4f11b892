# flashcart/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - JWT_SECRET (HS256 secret shared with the auth service that issues tokens)

    Optional:
      - DATABASE_URL (defaults to a local SQLite file)
      - DB_SSLMODE (appended to Postgres URLs, e.g. "require")
      - LOG_LEVEL
    """

    PROJECT_NAME: str = "Flashcart Core"
    API_V1_STR: str = "/api/v1"

    # DB config
    DATABASE_URL: str = "sqlite:///./flashcart.db"
    DB_ECHO: bool = False
    DB_SSLMODE: str | None = None
    SQLITE_BUSY_TIMEOUT: float = 30.0

    # JWT verification (backend-side)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    RECENT_TRANSACTIONS_LIMIT: int = 10

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
