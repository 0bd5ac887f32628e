"""Synchronize legacy per-space field definitions into target form fields."""

from __future__ import annotations

from typing import Iterable, Mapping

from loguru import logger

from appsys.store.models import ApplicationType, ApplicationTypeFormField, FormField, FormFieldOption
from appsys.store.target import TargetStore

from .catalog import FieldOption, LegacyRow, legacy_int
from .context import MigrationContext
from .normalize import headline, normalize_field_key, nullable_string, resolve_unique_name

CHOICE_FIELD_TYPES: frozenset[str] = frozenset({"select", "radio", "checkbox"})

LEGACY_FIELD_TYPES: dict[str, str] = {
    "dropdown": "select",
    "select": "select",
    "textarea": "textarea",
    "date": "date",
    "email": "email",
    "number": "number",
    "numeric": "number",
    "file": "file",
    "checkbox": "checkbox",
    "radio": "radio",
}


def map_field_type(legacy_type: str | None) -> str:
    return LEGACY_FIELD_TYPES.get((legacy_type or "").strip().lower(), "text")


def is_required(field_row: Mapping[str, object]) -> bool:
    """Legacy fields assigned to a role are the ones staff had to fill in."""

    return nullable_string(field_row.get("field_assign_to")) is not None


def plan_field_names(field_rows: Iterable[LegacyRow]) -> dict[int, str]:
    """Assign every legacy field a globally unique target field name.

    Rows are consumed in the given order (space, display order, id), so the
    first field to claim ``notes`` keeps it and later ones become ``notes_1``,
    ``notes_2``... The result depends only on the legacy catalog, which keeps
    names stable across re-runs and filtered runs.
    """

    used: frozenset[str] = frozenset()
    plan: dict[int, str] = {}
    for row in field_rows:
        field_id = int(row["field_id"])
        if field_id in plan:
            continue
        name, used = resolve_unique_name(normalize_field_key(row.get("field_col_name")), used)
        plan[field_id] = name
    return plan


class SchemaSynchronizer:
    """Ensure an application type carries the form fields of its legacy space."""

    def __init__(self, context: MigrationContext, target: TargetStore | None) -> None:
        self.context = context
        self.target = target

    def sync(
        self,
        application_type_id: int,
        legacy_space_id: str,
        field_rows: list[LegacyRow],
        options_by_field: Mapping[int, list[FieldOption]],
    ) -> int:
        """Attach the space's fields to the type; returns the number of fields attached."""

        synced = self.context.synced_application_types
        if self.context.dry_run or not legacy_space_id or application_type_id in synced:
            return 0
        if not field_rows:
            synced.add(application_type_id)
            return 0

        if self.target is None:
            raise RuntimeError("A target store is required outside dry-run mode")
        if self.target.find(ApplicationType, id=application_type_id) is None:
            logger.warning("Application type {} vanished before its fields could be synced", application_type_id)
            return 0

        used_in_pass: frozenset[str] = frozenset()
        attached = 0
        for index, row in enumerate(field_rows):
            field_id = int(row["field_id"])
            planned = self.context.field_names.get(field_id) or normalize_field_key(row.get("field_col_name"))
            name, used_in_pass = resolve_unique_name(planned, used_in_pass)

            field_type = map_field_type(row.get("field_type"))
            form_field = self.target.first_or_create(
                FormField,
                {"name": name},
                {
                    "label": nullable_string(row.get("field_name")) or headline(name),
                    "type": field_type,
                    "placeholder": None,
                    "help_text": None,
                    "validation_rules": None,
                    "is_active": True,
                },
            )

            order = legacy_int(row.get("field_order"))
            self.target.update_or_create(
                ApplicationTypeFormField,
                {"application_type_id": application_type_id, "form_field_id": form_field.id},
                {
                    "is_required": is_required(row),
                    "display_order": order if order is not None else index + 1,
                    "section": None,
                },
            )
            attached += 1

            if field_type in CHOICE_FIELD_TYPES:
                for option in options_by_field.get(field_id, []):
                    self.target.update_or_create(
                        FormFieldOption,
                        {"form_field_id": form_field.id, "value": option.value},
                        {"label": option.label, "display_order": option.display_order},
                    )

        synced.add(application_type_id)
        logger.debug(
            "Synced {} form fields for application type {} from space {}",
            attached,
            application_type_id,
            legacy_space_id,
        )
        return attached


__all__ = [
    "CHOICE_FIELD_TYPES",
    "SchemaSynchronizer",
    "is_required",
    "map_field_type",
    "plan_field_names",
]
