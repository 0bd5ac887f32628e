"""Write access to the normalized target store."""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, TypeVar

from loguru import logger
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

ModelT = TypeVar("ModelT", bound=Base)


def _json_serializer(value: Any) -> str:
    # Legacy DATE and DECIMAL columns reach JSON payloads as date and Decimal objects.
    return json.dumps(value, ensure_ascii=False, default=str)


class TargetStore:
    """Owns the SQLAlchemy session used by one migration run.

    Helpers commit immediately so ids handed out to caches stay valid even when
    a later step of the same task rolls back.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        self.session: Session = self._session_factory()

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False, pool_pre_ping: bool = True) -> "TargetStore":
        return cls(
            create_engine(url, echo=echo, pool_pre_ping=pool_pre_ping, json_serializer=_json_serializer)
        )

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.info("Target schema ensured ({} tables)", len(Base.metadata.tables))

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # Lookups
    def find(self, model: type[ModelT], **lookup: Any) -> ModelT | None:
        return self.session.scalars(select(model).filter_by(**lookup).limit(1)).first()

    def exists(self, model: type[ModelT], **lookup: Any) -> bool:
        return self.find(model, **lookup) is not None

    def lowest_id(self, model: type[ModelT]) -> ModelT | None:
        return self.session.scalars(select(model).order_by(model.id).limit(1)).first()  # type: ignore[attr-defined]

    def count(self, model: type[ModelT], **lookup: Any) -> int:
        statement = select(func.count()).select_from(model).filter_by(**lookup)
        return int(self.session.scalar(statement) or 0)

    # ------------------------------------------------------------------
    # Writes
    def first_or_create(
        self,
        model: type[ModelT],
        lookup: dict[str, Any],
        defaults: dict[str, Any] | None = None,
    ) -> ModelT:
        instance = self.find(model, **lookup)
        if instance is not None:
            return instance

        instance = model(**lookup, **(defaults or {}))
        self.session.add(instance)
        try:
            self.session.commit()
        except IntegrityError:
            # another writer created the same unique key first
            self.session.rollback()
            existing = self.find(model, **lookup)
            if existing is None:
                raise
            logger.debug("Reusing concurrently created {} {}", model.__name__, lookup)
            return existing
        return instance

    def update_or_create(
        self,
        model: type[ModelT],
        lookup: dict[str, Any],
        values: dict[str, Any],
    ) -> ModelT:
        instance = self.find(model, **lookup)
        if instance is None:
            instance = model(**lookup, **values)
            self.session.add(instance)
        else:
            for key, value in values.items():
                setattr(instance, key, value)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self.find(model, **lookup)
            if existing is None:
                raise
            for key, value in values.items():
                setattr(existing, key, value)
            self.session.commit()
            return existing
        return instance

    @contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        """Commit everything added inside the block at once, or nothing."""

        try:
            yield self.session
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise


__all__ = ["TargetStore"]
