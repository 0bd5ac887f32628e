"""In-memory snapshot of the small legacy lookup tables."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import polars as pl
from loguru import logger
from sqlalchemy import select

from appsys.store.legacy import OPTION_TABLE, DynamicTable, LegacyStore

LegacyRow = dict[str, Any]


@dataclass(slots=True, frozen=True)
class FieldOption:
    """One legacy child option of a choice field."""

    label: str
    value: str
    display_order: int


@dataclass(slots=True)
class LegacyCatalog:
    """Lookup maps loaded once per run, keyed by stringified legacy ids."""

    spaces: dict[str, str] = field(default_factory=dict)
    lists: dict[str, LegacyRow] = field(default_factory=dict)
    statuses: dict[str, LegacyRow] = field(default_factory=dict)
    fields_by_space: dict[str, list[LegacyRow]] = field(default_factory=dict)
    options_by_field: dict[int, list[FieldOption]] = field(default_factory=dict)
    dynamic_tables: dict[str, DynamicTable] = field(default_factory=dict)

    @classmethod
    def load(cls, store: LegacyStore) -> "LegacyCatalog":
        catalog = cls(
            spaces=_load_spaces(store),
            lists=_load_keyed(store, "list", "list_id", ("list_id", "list_name", "list_space_id")),
            statuses=_load_keyed(store, "status", "status_id", ("status_id", "status_name", "status_list_id")),
            fields_by_space=_load_fields(store),
            options_by_field=_load_options(store),
        )
        catalog.dynamic_tables = store.dynamic_tables(catalog.spaces.values())
        logger.info(
            "Loaded legacy catalog: {} spaces, {} lists, {} statuses, {} fields, {} dynamic tables",
            len(catalog.spaces),
            len(catalog.lists),
            len(catalog.statuses),
            sum(len(rows) for rows in catalog.fields_by_space.values()),
            len(catalog.dynamic_tables),
        )
        return catalog

    def dynamic_table_for_space(self, space_id: str) -> DynamicTable | None:
        table_name = self.spaces.get(space_id)
        if not table_name:
            return None
        return self.dynamic_tables.get(table_name)


def legacy_key(value: Any) -> str:
    """Stringify a legacy id the way lookup maps are keyed (``3.0`` -> ``"3"``)."""

    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def legacy_int(value: Any) -> int | None:
    """Parse a legacy numeric id or order column; blanks and junk give ``None``."""

    key = legacy_key(value)
    return int(key) if key.isdigit() else None


def _rows(store: LegacyStore, table_name: str, columns: tuple[str, ...]) -> pl.DataFrame:
    table = store.table(table_name)
    return store.read_frame(select(*(table.c[name] for name in columns)))


def _load_spaces(store: LegacyStore) -> dict[str, str]:
    frame = _rows(store, "space", ("space_id", "space_db_table"))
    return {
        legacy_key(row["space_id"]): (row["space_db_table"] or "").strip()
        for row in frame.iter_rows(named=True)
    }


def _load_keyed(
    store: LegacyStore,
    table_name: str,
    key_column: str,
    columns: tuple[str, ...],
) -> dict[str, LegacyRow]:
    frame = _rows(store, table_name, columns)
    return {legacy_key(row[key_column]): row for row in frame.iter_rows(named=True)}


def _load_fields(store: LegacyStore) -> dict[str, list[LegacyRow]]:
    columns = (
        "field_id",
        "field_order",
        "field_space_id",
        "field_type",
        "field_name",
        "field_col_name",
        "field_assign_to",
    )
    frame = _rows(store, "field", columns)
    if frame.is_empty():
        return {}
    frame = frame.sort(["field_space_id", "field_order", "field_id"], nulls_last=True)

    grouped: dict[str, list[LegacyRow]] = defaultdict(list)
    for row in frame.iter_rows(named=True):
        grouped[legacy_key(row["field_space_id"])].append(row)
    return dict(grouped)


def _load_options(store: LegacyStore) -> dict[int, list[FieldOption]]:
    if not store.has_table(OPTION_TABLE):
        logger.info("Legacy table [{}] not found; choice fields will have no options", OPTION_TABLE)
        return {}

    frame = _rows(store, OPTION_TABLE, ("child_id", "child_order", "child_name", "child_field_id"))
    if frame.is_empty():
        return {}
    frame = frame.sort(["child_field_id", "child_order", "child_id"], nulls_last=True)

    grouped: dict[int, list[FieldOption]] = defaultdict(list)
    orphaned = 0
    for row in frame.iter_rows(named=True):
        field_id = legacy_int(row["child_field_id"])
        if field_id is None:
            orphaned += 1
            continue
        grouped[field_id].append(
            FieldOption(
                label=str(row["child_name"] or "").strip(),
                value=legacy_key(row["child_id"]),
                display_order=legacy_int(row["child_order"]) or 0,
            )
        )
    if orphaned:
        logger.warning("Ignoring {} legacy options without a field id", orphaned)
    return dict(grouped)


__all__ = ["FieldOption", "LegacyCatalog", "LegacyRow", "legacy_int", "legacy_key"]
