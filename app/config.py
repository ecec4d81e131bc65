"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. The .env file is gitignored; secrets never live in source code.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from app.config import settings
    print(settings.DATABASE_URL)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Due Ledger API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign session JWTs
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Due Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for single-user deployments; any async SQLAlchemy URL works
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/ledger.db"

    # --- Authentication ---
    # REQUIRED: No default — forces the operator to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    # One session lasts 30 days, then the passkey must be entered again
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # Passkey stored on first bootstrap of the ledger settings row
    DEFAULT_PASSKEY: str = "1234"

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:5173"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
