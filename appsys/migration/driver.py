"""Chunked batch driver that migrates legacy tasks and aggregates the outcome."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

import polars as pl
from loguru import logger

from appsys.store.legacy import LegacyStore
from appsys.store.target import TargetStore

from .catalog import LegacyCatalog
from .context import MigrationContext
from .schema_sync import plan_field_names
from .tasks import MISSING_LIST, MISSING_SPACE, OutcomeKind, TaskMigrator, TaskOutcome

COUNTER_ORDER: tuple[str, ...] = (
    "seen",
    "created",
    "skipped",
    "payment_rows",
    "missing_dynamic",
    "missing_list",
    "missing_space",
    "errors",
)


@dataclass(slots=True)
class MigrationOptions:
    """Runtime switches of one migration run."""

    chunk_size: int = 200
    limit: int | None = None
    list_id: str | None = None
    task_id: int | None = None
    dry_run: bool = False
    skip_payments: bool = False
    legacy_connection: str = "legacy_mysql"

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")


@dataclass(slots=True)
class MigrationStats:
    seen: int = 0
    created: int = 0
    skipped: int = 0
    payment_rows: int = 0
    missing_dynamic: int = 0
    missing_list: int = 0
    missing_space: int = 0
    errors: int = 0

    def record(self, outcome: TaskOutcome) -> None:
        self.seen += 1
        if outcome.missing_dynamic:
            self.missing_dynamic += 1
        self.payment_rows += outcome.payment_rows

        if outcome.kind is OutcomeKind.CREATED:
            self.created += 1
        elif outcome.kind is OutcomeKind.FAILED:
            self.errors += 1
        else:
            self.skipped += 1
            if outcome.reason == MISSING_LIST:
                self.missing_list += 1
            elif outcome.reason == MISSING_SPACE:
                self.missing_space += 1

    def as_ordered_dict(self) -> dict[str, int]:
        values = asdict(self)
        return {key: values[key] for key in COUNTER_ORDER}


@dataclass(slots=True)
class TaskFailure:
    task_id: int
    error: str


@dataclass(slots=True)
class MigrationReport:
    legacy_connection: str
    dry_run: bool
    started_at: datetime
    finished_at: datetime | None = None
    dynamic_tables: int = 0
    stats: MigrationStats = field(default_factory=MigrationStats)
    failures: list[TaskFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "legacy_connection": self.legacy_connection,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "dynamic_tables": self.dynamic_tables,
            "stats": self.stats.as_ordered_dict(),
            "failures": [asdict(failure) for failure in self.failures],
        }

    def metrics_frame(self) -> pl.DataFrame:
        counters = self.stats.as_ordered_dict()
        return pl.DataFrame(
            {
                "Metric": list(counters.keys()),
                "Count": list(counters.values()),
            }
        )


class BatchDriver:
    """Stream legacy tasks in chunks through the task migrator."""

    def __init__(self, legacy: LegacyStore, target: TargetStore, options: MigrationOptions) -> None:
        self.legacy = legacy
        self.target = target
        self.options = options

    def run(self) -> MigrationReport:
        options = self.options
        report = MigrationReport(
            legacy_connection=options.legacy_connection,
            dry_run=options.dry_run,
            started_at=datetime.now(timezone.utc),
        )

        self.legacy.ensure_tables()
        catalog = LegacyCatalog.load(self.legacy)
        report.dynamic_tables = len(catalog.dynamic_tables)

        context = MigrationContext(dry_run=options.dry_run)
        context.field_names = plan_field_names(
            row for rows in catalog.fields_by_space.values() for row in rows
        )
        migrator = TaskMigrator(
            catalog,
            self.legacy,
            self.target,
            context,
            skip_payments=options.skip_payments,
        )

        if options.dry_run:
            logger.info("Dry run enabled; the target database will not be modified")

        chunks = self.legacy.iter_task_chunks(
            options.chunk_size,
            limit=options.limit,
            list_id=options.list_id,
            task_id=options.task_id,
        )
        for chunk in chunks:
            for task in chunk:
                outcome = migrator.migrate(task)
                report.stats.record(outcome)
                self._log_outcome(outcome)
                if outcome.kind is OutcomeKind.FAILED:
                    report.failures.append(TaskFailure(outcome.task_id, outcome.error or "unknown error"))
            logger.info(
                "Processed {} tasks so far ({} created, {} skipped, {} errors)",
                report.stats.seen,
                report.stats.created,
                report.stats.skipped,
                report.stats.errors,
            )

        report.finished_at = datetime.now(timezone.utc)
        return report

    @staticmethod
    def _log_outcome(outcome: TaskOutcome) -> None:
        if outcome.kind is OutcomeKind.SKIPPED_MISSING_REFERENCE:
            if outcome.reason == MISSING_LIST:
                logger.warning("Skipping task {}: missing list {}.", outcome.task_id, outcome.reference)
            else:
                logger.warning(
                    "Skipping task {}: missing dynamic table for space {}.", outcome.task_id, outcome.reference
                )
        elif outcome.kind is OutcomeKind.SKIPPED_DUPLICATE:
            logger.debug("Task {} already migrated as {}", outcome.task_id, outcome.application_number)
        elif outcome.kind is OutcomeKind.FAILED:
            logger.error("Task {} failed: {}", outcome.task_id, outcome.error)


__all__ = [
    "BatchDriver",
    "COUNTER_ORDER",
    "MigrationOptions",
    "MigrationReport",
    "MigrationStats",
    "TaskFailure",
]
