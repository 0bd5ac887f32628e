"""Configuration models for the legacy application migration."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field

from .base import BaseConfig


class MigrationSettings(BaseConfig):
    """Defaults for ``appsys migrate applications``; CLI options take precedence."""

    legacy_connection: str = Field("legacy_mysql", description="Name of the legacy connection in [databases]")
    chunk_size: int = Field(200, ge=1, description="Number of legacy tasks fetched per chunk")
    skip_payments: bool = Field(False, description="Do not import legacy finance transactions")
    report_dir: Path | None = Field(
        None,
        description="Directory receiving a JSON run report after each migration",
    )


__all__ = ["MigrationSettings"]
