"""Configuration settings for Transcript Mirror.

This module provides Pydantic Settings for configuration management.
Settings are loaded from environment variables with the TRANSCRIPT_MIRROR_
prefix. Every field has a default derived from the user's home directory,
so an empty environment yields the standard install locations.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from transcript_mirror.constants import (
    DATABASE_PATH,
    DEFAULT_BUSY_TIMEOUT_MS,
    SOURCE_PATH,
)


class MirrorSettings(BaseSettings):
    """Configuration settings for the transcript mirror.

    Attributes:
        source_path: transcription_history.json written by the recording app
        database_path: SQLite mirror database owned by this package
        busy_timeout_ms: Lock wait before a statement fails with "database is locked"
        log_level: Logging level
    """

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIPT_MIRROR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Allow extra env vars without error
    )

    source_path: Path = Field(
        default=SOURCE_PATH,
        description="Path to the recording app's transcription history JSON",
    )
    database_path: Path = Field(
        default=DATABASE_PATH,
        description="Path to the SQLite mirror database",
    )
    busy_timeout_ms: int = Field(
        default=DEFAULT_BUSY_TIMEOUT_MS,
        gt=0,
        description="SQLite busy timeout in milliseconds",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    def get_source_path(self) -> Path:
        """Get the source document path, expanding user home."""
        return self.source_path.expanduser()

    def get_database_path(self) -> Path:
        """Get the database path, expanding user home."""
        return self.database_path.expanduser()
