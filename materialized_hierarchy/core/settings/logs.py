"""Logging configuration settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_logging_yaml_source

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Structured logging configuration.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=DEBUG, LOG_JSON=false, LOG_FILE_PATH=logs/hierarchy.jsonl
    """

    # ──────────────────────────────────────────────────────────────
    # Basic configuration
    # ──────────────────────────────────────────────────────────────

    service_name: str = Field(
        default="materialized-hierarchy",
        description="Service name to include in log records (static field in JSON)",
    )

    level: LogLevel = Field(
        default="INFO",
        description="Root logger level (DEBUG|INFO|WARNING|ERROR|CRITICAL)",
    )

    json_logs: bool = Field(
        default=True,
        validation_alias=AliasChoices("json_logs", "LOG_JSON"),
        description="Enable JSON Lines (JSONL) formatted structured logs",
    )

    # ──────────────────────────────────────────────────────────────
    # Per-handler log levels
    # ──────────────────────────────────────────────────────────────

    console_level: LogLevel | None = Field(
        default=None,
        description="Console handler log level. If None, uses root level.",
    )

    file_level: LogLevel | None = Field(
        default=None,
        description="File handler log level. If None, uses root level.",
    )

    # ──────────────────────────────────────────────────────────────
    # File logging / rotation
    # ──────────────────────────────────────────────────────────────

    file_path: Path | None = Field(
        default=None,
        description="Path to log file. None disables file logging.",
    )

    file_max_bytes: int = Field(
        default=10_485_760,  # 10 MiB
        ge=1024,
        le=1_073_741_824,
        description="Maximum log file size in bytes before rotation.",
    )

    file_backup_count: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Number of rotated log files to keep.",
    )

    # ──────────────────────────────────────────────────────────────
    # Console and context
    # ──────────────────────────────────────────────────────────────

    console_enabled: bool = Field(
        default=True,
        description="Enable console/stderr logging",
    )

    include_context: bool = Field(
        default=True,
        description="Inject contextvars-based log context into every record",
    )

    capture_warnings: bool = Field(
        default=True,
        description="Forward Python warnings to the logging system",
    )

    @field_validator("level", "console_level", "file_level", mode="before")
    @classmethod
    def normalize_level(cls, v: str | None) -> str | None:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @property
    def level_int(self) -> int:
        """Get numeric root log level."""
        import logging

        return getattr(logging, self.level, logging.INFO)

    @property
    def effective_console_level(self) -> LogLevel:
        """Console level, falling back to the root level."""
        return self.console_level or self.level

    @property
    def effective_file_level(self) -> LogLevel:
        """File level, falling back to the root level."""
        return self.file_level or self.level

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Return kwargs suitable for configure_logging(...).

        Returns:
            Dictionary with all logging configuration parameters.
        """
        return {
            "service_name": self.service_name,
            "log_level": self.level,
            "json_logs": self.json_logs,
            "console_level": self.effective_console_level,
            "file_level": self.effective_file_level,
            "file_path": str(self.file_path) if self.file_path else None,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "console_enabled": self.console_enabled,
            "include_context": self.include_context,
            "capture_warnings": self.capture_warnings,
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

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_logging_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
