"""Exceptions raised by the migration pipeline."""

from __future__ import annotations


class MigrationAbort(RuntimeError):
    """A precondition of the whole run is violated; the batch must stop."""


class MissingLegacyTableError(MigrationAbort):
    """A required legacy table does not exist."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Required legacy table [{table}] does not exist.")
        self.table = table


class BootstrapError(MigrationAbort):
    """The target store lacks records the migration needs to bootstrap."""


class ConnectionNotConfiguredError(MigrationAbort):
    """A named database connection is missing from the configuration."""


__all__ = [
    "BootstrapError",
    "ConnectionNotConfiguredError",
    "MigrationAbort",
    "MissingLegacyTableError",
]
