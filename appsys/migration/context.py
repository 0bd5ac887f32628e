"""Per-run mutable state shared by the resolvers and the schema synchronizer."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

DRY_RUN_ID_BASE = 900_000


@dataclass(slots=True)
class MigrationContext:
    """Resolver caches scoped to a single pipeline run.

    Dry-run placeholder ids come from one counter per entity kind, so ids of
    different kinds may coincide and must be treated as opaque.
    """

    dry_run: bool = False
    application_types: dict[str, int] = field(default_factory=dict)
    application_statuses: dict[str, int] = field(default_factory=dict)
    services: dict[str, int] = field(default_factory=dict)
    service_stages: dict[tuple[int, str], int] = field(default_factory=dict)
    client_users: dict[int, int] = field(default_factory=dict)
    staff_users: dict[int, int] = field(default_factory=dict)
    synced_application_types: set[int] = field(default_factory=set)
    field_names: dict[int, str] = field(default_factory=dict)
    service_owner_id: int | None = None
    _placeholders: dict[str, int] = field(default_factory=lambda: defaultdict(lambda: DRY_RUN_ID_BASE))

    def next_placeholder_id(self, kind: str) -> int:
        value = self._placeholders[kind]
        self._placeholders[kind] = value + 1
        return value


__all__ = ["DRY_RUN_ID_BASE", "MigrationContext"]
