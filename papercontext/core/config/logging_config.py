"""Logging configuration models and loguru sink setup for papercontext."""

import sys
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, field_validator

VALID_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def _validate_level(v: str, label: str) -> str:
    if v.upper() not in VALID_LEVELS:
        raise ValueError(
            f"Invalid {label} '{v}'. Must be one of: {', '.join(sorted(VALID_LEVELS))}"
        )
    return v.upper()


class FileLoggingConfig(BaseModel):
    """Configuration for file-based logging."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(default="papercontext.log", description="Path to log file")
    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    rotation: str = Field(default="10 MB", description="Log rotation size (e.g., '10 MB', '1 week')")
    retention: str = Field(default="1 week", description="Log retention period (e.g., '1 week', '30 days')")
    format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        description="Log message format",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        return _validate_level(v, "log level")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate log file path."""
        if not v.strip():
            raise ValueError("Log file path cannot be empty")
        return v


class LoggingConfig(BaseModel):
    """Top-level logging configuration."""

    file: FileLoggingConfig = Field(default_factory=FileLoggingConfig)
    console_level: str = Field(default="WARNING", description="Console logging level (DEBUG, INFO, WARNING, ERROR)")

    @field_validator("console_level")
    @classmethod
    def validate_console_level(cls, v: str) -> str:
        """Validate console logging level."""
        return _validate_level(v, "console log level")

    def is_enabled(self) -> bool:
        """Check if file logging is enabled."""
        return self.file.enabled


def setup_logging(verbose: bool = False, config: LoggingConfig | None = None) -> list[int]:
    """Install loguru sinks for the library.

    Replaces any existing sinks with a stderr sink (DEBUG when ``verbose``,
    otherwise the configured console level) and, when enabled, a rotating
    file sink.

    Returns:
        Handler ids of the installed sinks
    """
    config = config or LoggingConfig()
    logger.remove()

    handler_ids: list[int] = []
    console_level = "DEBUG" if verbose else config.console_level
    handler_ids.append(
        logger.add(
            sys.stderr,
            level=console_level,
            format="<level>{level: <8}</level> | {name}:{line} - {message}",
        )
    )

    if config.file.enabled:
        Path(config.file.path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        file_kwargs: dict[str, Any] = {
            "level": config.file.level,
            "rotation": config.file.rotation,
            "retention": config.file.retention,
            "format": config.file.format,
            "enqueue": False,
        }
        handler_ids.append(logger.add(config.file.path, **file_kwargs))

    return handler_ids
