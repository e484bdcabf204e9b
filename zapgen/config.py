"""
Application Configuration using Pydantic Settings

Loads configuration from environment variables with sensible defaults.
"""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ========================================================================
    # Database Settings
    # ========================================================================
    # Path of the SQLite file holding imported metadata and user sessions.
    # ":memory:" keeps everything in-process (useful for previews).
    DATABASE_PATH: str = "zapgen.sqlite"
    SCHEMA_FILE: str = str(PACKAGE_DIR / "db" / "schema.sql")
    ZAP_VERSION: str = "0.1.0"

    # The sqlite3 driver is synchronous; it runs on a dedicated thread executor.
    # One worker keeps every statement on the connection's owning thread.
    DB_EXECUTOR_MAX_WORKERS: int = 1

    # ========================================================================
    # Generation Settings
    # ========================================================================
    ZCL_METAFILE: str = ""
    TEMPLATE_METAFILE: str = ""
    OUTPUT_DIR: str = "generated"
    DISABLE_DEPRECATION_WARNINGS: bool = False

    # ========================================================================
    # Application Settings
    # ========================================================================
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 9070
    APP_DEBUG: bool = True
    APP_RELOAD: bool = False

    # ========================================================================
    # Logging Settings
    # ========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, v):
        return str(v or "INFO").strip().upper()


# Create global settings instance
settings = Settings()
