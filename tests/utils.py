"""Builders for legacy and target SQLite databases used across the test suite."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

from loguru import logger
from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, insert, inspect
from sqlalchemy.engine import Engine

PERMITS_TABLE = "space_permits"


@contextmanager
def logger_to_stderr(level: str = "INFO") -> Iterator[None]:
    """Temporarily route Loguru output to stderr for assertion."""

    handler_id = logger.add(sys.stderr, level=level)
    try:
        yield
    finally:
        logger.remove(handler_id)


def sqlite_url(path: Path) -> str:
    return f"sqlite:///{path}"


def legacy_metadata(*, with_children: bool = True, with_finance: bool = True) -> MetaData:
    """Declare the legacy schema with the columns the migration reads."""

    metadata = MetaData()
    Table(
        "task",
        metadata,
        Column("task_id", Integer, primary_key=True),
        Column("task_list_id", Integer),
        Column("task_status_id", Integer),
        Column("task_assign_to", String(255)),
        Column("task_contact", String(32)),
        Column("task_name", String(255)),
        Column("note", Text),
        Column("remarks", Text),
        Column("task_priority", String(32)),
        Column("task_tag", String(255)),
        Column("task_date_created", String(32)),
        Column("task_due_date", String(32)),
    )
    Table(
        "list",
        metadata,
        Column("list_id", Integer, primary_key=True),
        Column("list_name", String(255)),
        Column("list_space_id", Integer),
    )
    Table(
        "space",
        metadata,
        Column("space_id", Integer, primary_key=True),
        Column("space_db_table", String(255)),
    )
    Table(
        "status",
        metadata,
        Column("status_id", Integer, primary_key=True),
        Column("status_name", String(255)),
        Column("status_list_id", Integer),
    )
    Table(
        "field",
        metadata,
        Column("field_id", Integer, primary_key=True),
        Column("field_order", Integer),
        Column("field_space_id", Integer),
        Column("field_type", String(32)),
        Column("field_name", String(255)),
        Column("field_col_name", String(255)),
        Column("field_assign_to", String(255)),
    )
    Table(
        "contact",
        metadata,
        Column("contact_id", Integer, primary_key=True),
        Column("contact_fname", String(255)),
        Column("contact_mname", String(255)),
        Column("contact_lname", String(255)),
        Column("contact_email", String(255)),
        Column("contact_cpnum", String(64)),
    )
    Table(
        "user",
        metadata,
        Column("user_id", Integer, primary_key=True),
        Column("fname", String(255)),
        Column("mname", String(255)),
        Column("lname", String(255)),
        Column("email", String(255)),
        Column("contact_number", String(64)),
    )
    if with_children:
        Table(
            "child",
            metadata,
            Column("child_id", Integer, primary_key=True),
            Column("child_order", Integer),
            Column("child_name", String(255)),
            Column("child_field_id", Integer),
        )
    if with_finance:
        Table(
            "finance_transaction",
            metadata,
            Column("val_id", Integer, primary_key=True),
            Column("val_assign_to", String(32)),
            Column("val_amount", String(32)),
            Column("val_method", String(64)),
            Column("val_date", String(32)),
            Column("val_note", Text),
        )
    Table(
        PERMITS_TABLE,
        metadata,
        Column("id", Integer, primary_key=True),
        Column("task_id", Integer),
        Column("permit_type", String(255)),
        Column("notes", Text),
    )
    return metadata


def insert_rows(engine: Engine, table_name: str, rows: Iterable[dict[str, Any]]) -> None:
    rows = list(rows)
    if not rows:
        return
    columns = list(dict.fromkeys(key for row in rows for key in row))
    rows = [{column: row.get(column) for column in columns} for row in rows]
    table = Table(table_name, MetaData(), autoload_with=engine)
    with engine.begin() as conn:
        conn.execute(insert(table), rows)


def seed_legacy(engine: Engine) -> None:
    """Two migratable tasks, one with a dangling list and one with a space lacking a table."""

    existing = set(inspect(engine).get_table_names())
    insert_rows(
        engine,
        "space",
        [
            {"space_id": 1, "space_db_table": PERMITS_TABLE},
            {"space_id": 2, "space_db_table": "space_archived"},
        ],
    )
    insert_rows(
        engine,
        "list",
        [
            {"list_id": 10, "list_name": "Business Permit", "list_space_id": 1},
            {"list_id": 20, "list_name": "Archived", "list_space_id": 2},
        ],
    )
    insert_rows(
        engine,
        "status",
        [
            {"status_id": 100, "status_name": "Pending", "status_list_id": 10},
            {"status_id": 101, "status_name": "  ", "status_list_id": 10},
        ],
    )
    insert_rows(
        engine,
        "field",
        [
            {
                "field_id": 1,
                "field_order": 1,
                "field_space_id": 1,
                "field_type": "Dropdown",
                "field_name": "Permit Type",
                "field_col_name": "permit_type",
                "field_assign_to": "admin",
            },
            {
                "field_id": 2,
                "field_order": 2,
                "field_space_id": 1,
                "field_type": "textarea",
                "field_name": "Notes",
                "field_col_name": "Notes",
                "field_assign_to": None,
            },
            {
                "field_id": 3,
                "field_order": 3,
                "field_space_id": 1,
                "field_type": "text",
                "field_name": None,
                "field_col_name": "notes-",
                "field_assign_to": "",
            },
        ],
    )
    if "child" in existing:
        insert_rows(
            engine,
            "child",
            [
                {"child_id": 1001, "child_order": 2, "child_name": "Renewal", "child_field_id": 1},
                {"child_id": 1000, "child_order": 1, "child_name": "New", "child_field_id": 1},
            ],
        )
    insert_rows(
        engine,
        "contact",
        [
            {
                "contact_id": 500,
                "contact_fname": "Juan",
                "contact_mname": "",
                "contact_lname": "Dela Cruz",
                "contact_email": "juan@example.com",
                "contact_cpnum": "09171234567",
            },
            {
                "contact_id": 501,
                "contact_fname": "Maria",
                "contact_mname": None,
                "contact_lname": "Santos",
                "contact_email": "",
                "contact_cpnum": "utf8",
            },
        ],
    )
    insert_rows(
        engine,
        "user",
        [
            {
                "user_id": 7,
                "fname": "Ana",
                "mname": None,
                "lname": "Reyes",
                "email": "ana@example.com",
                "contact_number": "0920",
            }
        ],
    )
    insert_rows(
        engine,
        "task",
        [
            {
                "task_id": 1,
                "task_list_id": 10,
                "task_status_id": 100,
                "task_assign_to": "7,8",
                "task_contact": "500",
                "task_name": "Juan permit",
                "note": "Client note",
                "remarks": "utf8",
                "task_priority": "A - urgent",
                "task_tag": "5, 7,7,x,9",
                "task_date_created": "2024-01-02 10:00:00",
                "task_due_date": "0000-00-00",
            },
            {
                "task_id": 2,
                "task_list_id": 10,
                "task_status_id": 101,
                "task_assign_to": "",
                "task_contact": "501",
                "task_name": "Maria permit",
                "note": None,
                "remarks": "Call back",
                "task_priority": "b",
                "task_tag": None,
                "task_date_created": "2024-03-05",
                "task_due_date": "2024-04-01",
            },
            {"task_id": 3, "task_list_id": 99, "task_status_id": 100, "task_contact": "500", "task_name": "Orphan"},
            {"task_id": 4, "task_list_id": 20, "task_status_id": 100, "task_contact": "500", "task_name": "Archived"},
        ],
    )
    insert_rows(
        engine,
        PERMITS_TABLE,
        [{"id": 1, "task_id": 1, "permit_type": "1000", "notes": "  Needs renewal  "}],
    )
    if "finance_transaction" in existing:
        insert_rows(
            engine,
            "finance_transaction",
            [
                {"val_id": 1, "val_assign_to": "1", "val_amount": "150.50", "val_method": "cash",
                 "val_date": "2024-02-01", "val_note": "First"},
                {"val_id": 2, "val_assign_to": "1", "val_amount": "-20", "val_date": "garbage"},
                {"val_id": 3, "val_assign_to": "1", "val_amount": "abc", "val_method": "gcash", "val_note": ""},
                {"val_id": 4, "val_assign_to": "2", "val_amount": "99", "val_method": "bank",
                 "val_date": "2024-03-06"},
            ],
        )


def build_legacy_database(path: Path, *, with_children: bool = True, with_finance: bool = True) -> Engine:
    engine = create_engine(sqlite_url(path))
    metadata = legacy_metadata(with_children=with_children, with_finance=with_finance)
    metadata.create_all(engine)
    return engine


__all__ = [
    "PERMITS_TABLE",
    "build_legacy_database",
    "insert_rows",
    "legacy_metadata",
    "logger_to_stderr",
    "seed_legacy",
    "sqlite_url",
]
