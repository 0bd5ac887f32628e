"""Read-only access to the legacy task-tracking database."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

import polars as pl
from loguru import logger
from sqlalchemy import MetaData, Table, create_engine, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.sql import Select

from appsys.errors import MissingLegacyTableError

REQUIRED_TABLES: tuple[str, ...] = ("task", "list", "space", "status", "contact", "user", "field")
OPTION_TABLE = "child"
FINANCE_TABLE = "finance_transaction"


@dataclass(slots=True)
class DynamicTable:
    """A per-space table of custom values keyed by ``task_id``."""

    name: str
    columns: tuple[str, ...]
    store: "LegacyStore" = field(repr=False)

    def row_for_task(self, task_id: int) -> dict[str, Any] | None:
        return self.store.first(self.name, "task_id", task_id)


class LegacyStore:
    """Thin SQLAlchemy wrapper exposing the queries the migration needs."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._metadata = MetaData()
        self._inspector = inspect(engine)
        self._tables: dict[str, Table] = {}

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False, pool_pre_ping: bool = True) -> "LegacyStore":
        return cls(create_engine(url, echo=echo, pool_pre_ping=pool_pre_ping))

    # ------------------------------------------------------------------
    # Schema introspection
    def has_table(self, name: str) -> bool:
        return bool(name) and self._inspector.has_table(name)

    def column_names(self, name: str) -> list[str]:
        return [column["name"] for column in self._inspector.get_columns(name)]

    def ensure_tables(self, names: Iterable[str] = REQUIRED_TABLES) -> None:
        for name in names:
            if not self.has_table(name):
                raise MissingLegacyTableError(name)

    def table(self, name: str) -> Table:
        table = self._tables.get(name)
        if table is None:
            table = Table(name, self._metadata, autoload_with=self.engine)
            self._tables[name] = table
        return table

    def dynamic_tables(self, names: Iterable[str]) -> dict[str, DynamicTable]:
        """Discover the dynamic tables that actually exist, keyed by name."""

        discovered: dict[str, DynamicTable] = {}
        for name in dict.fromkeys(names):
            if not self.has_table(name):
                if name:
                    logger.warning("Dynamic table {} does not exist; its tasks will be skipped", name)
                continue
            discovered[name] = DynamicTable(name=name, columns=tuple(self.column_names(name)), store=self)
        return discovered

    # ------------------------------------------------------------------
    # Queries
    def read_frame(self, statement: Select) -> pl.DataFrame:
        with self.engine.connect() as conn:
            return pl.read_database(statement, connection=conn, infer_schema_length=None)

    def first(self, table_name: str, column: str, value: Any) -> dict[str, Any] | None:
        table = self.table(table_name)
        statement = select(table).where(table.c[column] == value).limit(1)
        with self.engine.connect() as conn:
            row = conn.execute(statement).mappings().first()
        return dict(row) if row is not None else None

    def iter_task_chunks(
        self,
        chunk_size: int,
        *,
        limit: int | None = None,
        list_id: str | None = None,
        task_id: int | None = None,
    ) -> Iterator[list[dict[str, Any]]]:
        """Yield task rows ordered by ``task_id`` in keyset-paginated chunks."""

        task = self.table("task")
        remaining = limit if limit and limit > 0 else None
        last_id: Any = None

        while True:
            size = chunk_size if remaining is None else min(chunk_size, remaining)
            if size <= 0:
                return

            statement = select(task).order_by(task.c.task_id).limit(size)
            if task_id is not None:
                statement = statement.where(task.c.task_id == task_id)
            if list_id is not None:
                statement = statement.where(task.c.task_list_id == list_id)
            if last_id is not None:
                statement = statement.where(task.c.task_id > last_id)

            with self.engine.connect() as conn:
                rows = [dict(row) for row in conn.execute(statement).mappings()]
            if not rows:
                return

            logger.debug("Fetched {} legacy tasks after task_id={}", len(rows), last_id)
            yield rows

            last_id = rows[-1]["task_id"]
            if remaining is not None:
                remaining -= len(rows)
            if len(rows) < size:
                return

    def finance_rows(self, legacy_task_id: int) -> list[dict[str, Any]]:
        if not self.has_table(FINANCE_TABLE):
            return []
        finance = self.table(FINANCE_TABLE)
        statement = (
            select(finance)
            .where(finance.c.val_assign_to == str(legacy_task_id))
            .order_by(finance.c.val_id)
        )
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(statement).mappings()]


__all__ = [
    "DynamicTable",
    "FINANCE_TABLE",
    "LegacyStore",
    "OPTION_TABLE",
    "REQUIRED_TABLES",
]
