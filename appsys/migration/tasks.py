"""Migration of a single legacy task into an application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError

from appsys.errors import MigrationAbort
from appsys.store.legacy import LegacyStore
from appsys.store.models import Application, ApplicationTimeline
from appsys.store.target import TargetStore

from .catalog import LegacyCatalog, LegacyRow, legacy_key
from .context import MigrationContext
from .normalize import (
    build_form_data,
    generate_application_number,
    map_priority,
    nullable_string,
    parse_csv_ids,
    parse_datetime,
)
from .payments import PaymentImporter
from .resolvers import UNKNOWN_STAGE, ReferenceResolver
from .schema_sync import SchemaSynchronizer

MISSING_LIST = "missing_list"
MISSING_SPACE = "missing_space"


class OutcomeKind(str, Enum):
    CREATED = "created"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    SKIPPED_MISSING_REFERENCE = "skipped_missing_reference"
    FAILED = "failed"


@dataclass(slots=True)
class TaskOutcome:
    """Terminal state of one task plus the side counters it produced."""

    task_id: int
    kind: OutcomeKind
    reason: str | None = None
    reference: str | None = None
    error: str | None = None
    application_number: str | None = None
    payment_rows: int = 0
    missing_dynamic: bool = False

    @property
    def skipped(self) -> bool:
        return self.kind in (OutcomeKind.SKIPPED_DUPLICATE, OutcomeKind.SKIPPED_MISSING_REFERENCE)


@dataclass(slots=True)
class _ResolvedTask:
    application_type_id: int
    application_status_id: int
    service_id: int
    service_stage_id: int
    assignee_id: int | None
    client_id: int
    application_number: str
    references: dict[str, Any] = field(default_factory=dict)


class TaskMigrator:
    """Turn legacy task rows into applications, one isolated unit per task."""

    def __init__(
        self,
        catalog: LegacyCatalog,
        legacy: LegacyStore,
        target: TargetStore,
        context: MigrationContext,
        *,
        skip_payments: bool = False,
    ) -> None:
        self.catalog = catalog
        self.legacy = legacy
        self.target = target
        self.context = context
        self.skip_payments = skip_payments
        self.resolver = ReferenceResolver(context, legacy, target)
        self.schema = SchemaSynchronizer(context, target)
        self.payments = PaymentImporter(legacy, target)

    def migrate(self, task: LegacyRow) -> TaskOutcome:
        legacy_task_id = int(task["task_id"])
        legacy_list_id = legacy_key(task.get("task_list_id"))

        list_row = self.catalog.lists.get(legacy_list_id)
        if list_row is None:
            return TaskOutcome(
                legacy_task_id, OutcomeKind.SKIPPED_MISSING_REFERENCE, reason=MISSING_LIST, reference=legacy_list_id
            )

        legacy_space_id = legacy_key(list_row.get("list_space_id"))
        dynamic_table = self.catalog.dynamic_table_for_space(legacy_space_id)
        if dynamic_table is None:
            return TaskOutcome(
                legacy_task_id, OutcomeKind.SKIPPED_MISSING_REFERENCE, reason=MISSING_SPACE, reference=legacy_space_id
            )

        outcome = TaskOutcome(legacy_task_id, OutcomeKind.CREATED)
        try:
            dynamic_row = dynamic_table.row_for_task(legacy_task_id)
            outcome.missing_dynamic = dynamic_row is None
            form_data = build_form_data(dynamic_row) if dynamic_row is not None else {}

            resolved = self._resolve(task, list_row, legacy_list_id, legacy_space_id, dynamic_table.name)
            outcome.application_number = resolved.application_number

            if self.target.exists(Application, application_number=resolved.application_number):
                outcome.kind = OutcomeKind.SKIPPED_DUPLICATE
                return outcome
            if self.context.dry_run:
                return outcome

            application = self._create_application(task, form_data, resolved)
            if application is None:
                outcome.kind = OutcomeKind.SKIPPED_DUPLICATE
                return outcome

            if not self.skip_payments:
                outcome.payment_rows = self.payments.import_for(application, legacy_task_id)
        except MigrationAbort:
            raise
        except Exception as exc:
            logger.opt(exception=exc).debug("Task {} raised during migration", legacy_task_id)
            outcome.kind = OutcomeKind.FAILED
            outcome.error = str(exc) or exc.__class__.__name__
        return outcome

    # ------------------------------------------------------------------
    def _resolve(
        self,
        task: LegacyRow,
        list_row: LegacyRow,
        legacy_list_id: str,
        legacy_space_id: str,
        dynamic_table: str,
    ) -> _ResolvedTask:
        list_name = str(list_row.get("list_name") or "")
        legacy_status_id = legacy_key(task.get("task_status_id"))
        status_row = self.catalog.statuses.get(legacy_status_id)

        application_type_id = self.resolver.application_type_id(list_name, legacy_list_id)
        self.schema.sync(
            application_type_id,
            legacy_space_id,
            self.catalog.fields_by_space.get(legacy_space_id, []),
            self.catalog.options_by_field,
        )
        application_status_id = self.resolver.application_status_id(legacy_status_id, status_row)
        service_id = self.resolver.service_id(
            nullable_string(list_name) or f"Legacy List {legacy_list_id}",
            legacy_space_id,
        )
        stage_name = nullable_string((status_row or {}).get("status_name")) or UNKNOWN_STAGE
        service_stage_id = self.resolver.service_stage_id(service_id, stage_name)

        assignee_id = self.resolver.assignee_user_id(task.get("task_assign_to"))
        client_id = self.resolver.client_user_id(task.get("task_contact"), task.get("task_name") or "Legacy Client")

        return _ResolvedTask(
            application_type_id=application_type_id,
            application_status_id=application_status_id,
            service_id=service_id,
            service_stage_id=service_stage_id,
            assignee_id=assignee_id,
            client_id=client_id,
            application_number=generate_application_number(list_name or "legacy-application", int(task["task_id"])),
            references={
                "task_id": int(task["task_id"]),
                "list_id": legacy_list_id,
                "status_id": legacy_status_id,
                "space_id": legacy_space_id,
                "dynamic_table": dynamic_table,
            },
        )

    def _create_application(
        self,
        task: LegacyRow,
        form_data: dict[str, Any],
        resolved: _ResolvedTask,
    ) -> Application | None:
        application = Application(
            application_number=resolved.application_number,
            user_id=resolved.client_id,
            application_type_id=resolved.application_type_id,
            application_status_id=resolved.application_status_id,
            assigned_to=resolved.assignee_id,
            custom_fields={**form_data, "__legacy": resolved.references},
            client_notes=nullable_string(task.get("note")),
            staff_notes=nullable_string(task.get("remarks")),
            priority=map_priority(task.get("task_priority")),
            tags=parse_csv_ids(task.get("task_tag")),
            submitted_at=parse_datetime(task.get("task_date_created")),
            due_date=parse_datetime(task.get("task_due_date")),
            service_id=resolved.service_id,
            service_stage_id=resolved.service_stage_id,
            service_position=0,
            position=0,
        )
        try:
            with self.target.unit_of_work() as session:
                session.add(application)
                session.flush()
                session.add(
                    ApplicationTimeline(
                        application_id=application.id,
                        user_id=resolved.assignee_id,
                        action="migrated",
                        description="Migrated from legacy task data.",
                        metadata_={
                            "legacy_task_id": resolved.references["task_id"],
                            "legacy_dynamic_table": resolved.references["dynamic_table"],
                        },
                        created_at=datetime.now(),
                    )
                )
        except IntegrityError:
            if self.target.exists(Application, application_number=resolved.application_number):
                logger.debug("Application {} was created concurrently", resolved.application_number)
                return None
            raise
        return application


__all__ = ["MISSING_LIST", "MISSING_SPACE", "OutcomeKind", "TaskMigrator", "TaskOutcome"]
