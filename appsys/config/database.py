"""Database connection configuration models."""

from __future__ import annotations

from pydantic import Field

from appsys.config.base import BaseConfig
from appsys.config.utils import resolve_env_reference


class DatabaseConfig(BaseConfig):
    """A named SQLAlchemy connection."""

    url: str = Field(..., description="SQLAlchemy URL, can use 'env:VAR_NAME' format")
    echo: bool = Field(False, description="Log every SQL statement (debugging only)")
    pool_pre_ping: bool = Field(True, description="Check connections before handing them out")

    @property
    def resolved_url(self) -> str:
        """Return the URL with any ``env:VAR`` reference expanded."""

        resolved = resolve_env_reference(self.url)
        if resolved is None:
            raise EnvironmentError(f"Database URL {self.url!r} did not resolve")
        return resolved


__all__ = ["DatabaseConfig"]
