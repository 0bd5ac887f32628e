"""Application-level configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator

from appsys.config.base import BaseConfig
from appsys.config.database import DatabaseConfig
from appsys.config.migration import MigrationSettings


class AppConfig(BaseConfig):
    """Top-level runtime configuration."""

    logging_level: str = Field("INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")
    log_file: Path | None = Field(None, description="Optional rotating log file")
    databases: dict[str, DatabaseConfig] = Field(
        default_factory=dict,
        description="Named database connections (legacy sources and the target store)",
    )
    target_connection: str = Field("target", description="Name of the target store connection")
    migration: MigrationSettings = Field(
        default_factory=MigrationSettings,
        description="Legacy application migration defaults",
    )

    @model_validator(mode="after")
    def _validate_logging_level(self) -> "AppConfig":
        if self.logging_level.upper() not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown logging level '{self.logging_level}'.")
        return self

    def database(self, name: str) -> DatabaseConfig:
        """Return the named connection or raise :class:`KeyError`."""

        try:
            return self.databases[name]
        except KeyError:
            raise KeyError(f"Database connection '{name}' is not configured") from None


__all__ = ["AppConfig"]
