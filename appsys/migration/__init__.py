"""Legacy task data migration pipeline."""

from .catalog import FieldOption, LegacyCatalog
from .context import MigrationContext
from .driver import BatchDriver, MigrationOptions, MigrationReport, MigrationStats
from .payments import PaymentImporter
from .resolvers import ReferenceResolver
from .schema_sync import SchemaSynchronizer, plan_field_names
from .tasks import OutcomeKind, TaskMigrator, TaskOutcome

__all__ = [
    "BatchDriver",
    "FieldOption",
    "LegacyCatalog",
    "MigrationContext",
    "MigrationOptions",
    "MigrationReport",
    "MigrationStats",
    "OutcomeKind",
    "PaymentImporter",
    "ReferenceResolver",
    "SchemaSynchronizer",
    "TaskMigrator",
    "TaskOutcome",
    "plan_field_names",
]
