"""Configuration namespace for appsys."""

from __future__ import annotations

from .app import AppConfig
from .base import BaseConfig, load_config
from .database import DatabaseConfig
from .migration import MigrationSettings
from .utils import resolve_env_reference

__all__ = [
    "BaseConfig",
    "AppConfig",
    "load_config",
    "DatabaseConfig",
    "MigrationSettings",
    "resolve_env_reference",
]
