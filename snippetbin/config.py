"""
snippetbin — Application Configuration
========================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads SNIPPETBIN_* environment variables (or a .env
       file), validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by the app factory, the CLI and the test suite.
When:  Loaded once at module import time.

Every field has a default that reproduces the stock service: a SQLite file
named snippetbin.db in the working directory, listening on 127.0.0.1:8080.
Nothing needs to be set in the environment to run it.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # What: Path of the SQLite file, relative to the process working directory
    database_path: str = Field(
        default="./snippetbin.db",
        description="Location of the SQLite database file",
    )

    # What: Seconds a connection waits on a locked database before failing
    # SQLite serializes writers; concurrent requests queue on this lock
    db_busy_timeout: float = Field(default=5.0, ge=0, le=300)

    # What: Echo every SQL statement through the sqlalchemy.engine logger
    echo_sql: bool = Field(default=False)

    # ── Server ────────────────────────────────────────────────────────────
    # Format: host:port (the --addr command-line flag overrides this)
    addr: str = Field(default="127.0.0.1:8080")

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_prefix": "SNIPPETBIN_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance, imported throughout the application
settings = Settings()
