from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, func, inspect, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hirelane.config import Settings
from hirelane.db.base import Base
from hirelane.db.migrations import upgrade_schema
from hirelane.db.models import (
    APPEND_ONLY_TABLES,
    ENUMERATED_FIELDS,
    IMMUTABLE_FIELDS,
    TABLES,
)
from hirelane.errors import NotFound, StorageUnavailable, ValidationError

logger = logging.getLogger(__name__)

IN_MEMORY_URL = "sqlite://"


def _model_for(table: str) -> type[Base]:
    try:
        return TABLES[table]
    except KeyError:
        raise ValidationError(f"unknown table '{table}'") from None


def _validate_values(table: str, values: Mapping[str, Any]) -> None:
    model = _model_for(table)
    columns = {attr.key for attr in inspect(model).column_attrs}
    unknown = sorted(set(values) - columns)
    if unknown:
        raise ValidationError(f"unknown fields for {table}: {', '.join(unknown)}")

    for field, allowed in ENUMERATED_FIELDS.get(table, {}).items():
        if field not in values or values[field] is None:
            continue
        if values[field] not in allowed:
            raise ValidationError(f"{table}.{field} must be one of {list(allowed)}, got {values[field]!r}")


def _unicode_lower(value: str | None) -> str | None:
    return value.lower() if isinstance(value, str) else value


def _configure_sqlite(dbapi_connection, connection_record) -> None:
    # Replaces the ASCII-only built-in lower() with Unicode case folding.
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class StoreOperations:
    """Table operations bound to one session, committed or rolled back together."""

    def __init__(self, session: Session):
        self.session = session

    def insert(self, table: str, values: Mapping[str, Any]) -> int:
        return self.bulk_insert(table, [values])[0]

    def bulk_insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> list[int]:
        model = _model_for(table)
        objects = []
        for values in rows:
            _validate_values(table, values)
            objects.append(model(**values))
        if not objects:
            return []

        self.session.add_all(objects)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ValidationError(f"insert into {table} violates a constraint: {exc.orig}") from exc
        return [inspect(obj).identity[0] for obj in objects]

    def get(self, table: str, key: int) -> Any | None:
        return self.session.get(_model_for(table), key)

    def require(self, table: str, key: int) -> Any:
        obj = self.get(table, key)
        if obj is None:
            raise NotFound(table, key)
        return obj

    def query(
        self,
        table: str,
        *criteria: Any,
        order_by: Any = None,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[Any]:
        model = _model_for(table)
        statement = select(model).where(*criteria)
        if order_by is None:
            order_by = inspect(model).primary_key
        if not isinstance(order_by, (list, tuple)):
            order_by = [order_by]
        statement = statement.order_by(*order_by)
        if offset:
            statement = statement.offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.scalars(statement).all())

    def count(self, table: str, *criteria: Any) -> int:
        model = _model_for(table)
        statement = select(func.count()).select_from(model).where(*criteria)
        return int(self.session.scalar(statement) or 0)

    def update(self, table: str, key: int, patch: Mapping[str, Any]) -> Any:
        if table in APPEND_ONLY_TABLES:
            raise ValidationError(f"{table} is append-only")
        immutable = sorted(set(patch) & IMMUTABLE_FIELDS.get(table, frozenset()))
        if immutable:
            raise ValidationError(f"{table} fields are immutable: {', '.join(immutable)}")
        _validate_values(table, patch)

        obj = self.require(table, key)
        for field, value in patch.items():
            setattr(obj, field, value)
        self.session.flush()
        return obj


class PersistentStore:
    """Schema-versioned keyed tables on top of a SQLAlchemy engine.

    The store has an explicit lifecycle: ``open()`` binds it to the medium and
    upgrades the schema, ``close()`` disposes the engine. Each public operation
    runs in its own transaction; use ``transaction()`` to group several.
    """

    def __init__(self, url: str):
        self.url = url
        self.schema_version: int | None = None
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker[Session] | None = None

    @classmethod
    def in_memory(cls) -> PersistentStore:
        return cls(IN_MEMORY_URL)

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def is_durable(self) -> bool:
        database = make_url(self.url).database
        return bool(database) and database != ":memory:"

    def open(self) -> PersistentStore:
        if self._engine is not None:
            return self

        engine = None
        try:
            self._prepare_medium()
            engine = self._create_engine()
            with engine.begin() as connection:
                previous, current = upgrade_schema(connection)
        except StorageUnavailable:
            if engine is not None:
                engine.dispose()
            raise
        except (SQLAlchemyError, OSError) as exc:
            if engine is not None:
                engine.dispose()
            raise StorageUnavailable(f"cannot open store at {self.url}: {exc}") from exc

        self._engine = engine
        self._sessionmaker = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        self.schema_version = current
        logger.info("Opened store url=%s schema=v%s (was %s)", self.url, current, previous)
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Closed store url=%s", self.url)

    def __enter__(self) -> PersistentStore:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[StoreOperations]:
        if self._sessionmaker is None:
            raise StorageUnavailable("store is not open")
        with self._sessionmaker.begin() as session:
            yield StoreOperations(session)

    def insert(self, table: str, values: Mapping[str, Any]) -> int:
        with self.transaction() as tx:
            return tx.insert(table, values)

    def bulk_insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> list[int]:
        with self.transaction() as tx:
            return tx.bulk_insert(table, rows)

    def get(self, table: str, key: int) -> Any | None:
        with self.transaction() as tx:
            return tx.get(table, key)

    def require(self, table: str, key: int) -> Any:
        with self.transaction() as tx:
            return tx.require(table, key)

    def query(
        self,
        table: str,
        *criteria: Any,
        order_by: Any = None,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[Any]:
        with self.transaction() as tx:
            return tx.query(table, *criteria, order_by=order_by, offset=offset, limit=limit)

    def count(self, table: str, *criteria: Any) -> int:
        with self.transaction() as tx:
            return tx.count(table, *criteria)

    def update(self, table: str, key: int, patch: Mapping[str, Any]) -> Any:
        with self.transaction() as tx:
            return tx.update(table, key, patch)

    def _prepare_medium(self) -> None:
        if not self.url.startswith("sqlite") or not self.is_durable:
            return
        database = make_url(self.url).database
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    def _create_engine(self) -> Engine:
        kwargs: dict[str, Any] = {"future": True}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if not self.is_durable:
                kwargs["poolclass"] = StaticPool
        engine = create_engine(self.url, **kwargs)
        if self.url.startswith("sqlite"):
            event.listen(engine, "connect", _configure_sqlite)
        return engine


def open_store(settings: Settings) -> PersistentStore:
    """Open the durable store, falling back to an in-memory one."""
    try:
        return PersistentStore(settings.database_url).open()
    except StorageUnavailable as exc:
        logger.warning("Durable store unavailable (%s); falling back to in-memory store", exc)
    return PersistentStore.in_memory().open()
