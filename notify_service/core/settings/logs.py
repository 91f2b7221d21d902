"""Logging configuration settings.

Environment variables use LOG_ prefix.
Example: LOG_LEVEL=DEBUG, LOG_JSON=false, LOG_FILE_ENABLED=true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    service_name: str = Field(
        default="notify-service",
        description="Service name to include in log records (static field in JSON)",
    )
    level: LogLevel = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(
        default=True,
        alias="json",
        description="Enable JSON Lines (JSONL) formatted structured logs",
    )
    console_enabled: bool = Field(default=True, description="Enable console/stdout logging")
    file_enabled: bool = Field(default=False, description="Enable rotating file logging")
    file_path: Path = Field(
        default=Path("logs/notify-service.log.jsonl"),
        description="Path to log file when file logging is enabled",
    )
    file_max_bytes: int = Field(
        default=10_485_760,  # 10 MiB
        ge=1024,
        description="Maximum log file size in bytes before rotation",
    )
    file_backup_count: int = Field(default=5, ge=0, le=100, description="Rotated files to keep")
    include_context: bool = Field(
        default=True,
        description="Inject contextvars log context (request_id, tenant_id) into records",
    )
    include_uvicorn: bool = Field(default=True, description="Route uvicorn loggers through our handlers")

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

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Return kwargs suitable for configure_logging(...)."""
        return {
            "service_name": self.service_name,
            "log_level": self.level,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "file_path": str(self.file_path) if self.file_enabled else None,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "include_context": self.include_context,
            "include_uvicorn": self.include_uvicorn,
        }
