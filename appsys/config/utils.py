"""Helper utilities for configuration handling."""

from __future__ import annotations

import os

_ENV_PREFIX = "env:"


def resolve_env_reference(value: str | None, *, required: bool = True) -> str | None:
    """Resolve values of the form ``"env:VAR_NAME"`` against ``os.environ``.

    Plain strings and ``None`` are returned unchanged. A missing or empty
    variable raises :class:`EnvironmentError` unless ``required`` is ``False``.
    """

    if value is None or not value.startswith(_ENV_PREFIX):
        return value

    var_name = value.split(":", 1)[1]
    resolved = os.getenv(var_name)
    if resolved:
        return resolved
    if required:
        raise EnvironmentError(f"Environment variable '{var_name}' is not set or empty")
    return None


__all__ = ["resolve_env_reference"]
