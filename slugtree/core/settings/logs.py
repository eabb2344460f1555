"""Logging configuration settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Logging configuration applied by ``setup_logging()``.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=DEBUG, LOG_JSON=false, LOG_FILE_PATH=logs/slugtree.jsonl
    """

    service_name: str = Field(
        default="slugtree",
        description="Static 'service' field of JSON records",
    )
    level: LogLevel = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(
        default=True,
        validation_alias=AliasChoices("json_logs", "log_json"),
        description="JSON Lines on the console instead of plain text",
    )

    # Outputs
    console_enabled: bool = Field(default=True, description="Log to stderr")
    file_path: Path | None = Field(
        default=None,
        description="Rotating JSON Lines log file; unset disables file logging",
    )
    file_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="File size in bytes that triggers rotation",
    )
    file_backup_count: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Rotated files kept",
    )

    include_context: bool = Field(
        default=True,
        description="Copy set_log_context() fields onto every record",
    )

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Arguments for ``configure_logging()``."""
        return {
            "service_name": self.service_name,
            "log_level": self.level,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "file_path": str(self.file_path) if self.file_path else None,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "include_context": self.include_context,
        }

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        env_ignore_empty=True,
    )
