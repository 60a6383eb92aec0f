"""Schema versioning for the hiring board store.

Every upgrade step is additive: it may create tables, add columns or add
indexes, but never drops or rewrites existing rows. Steps are keyed by the
version they produce and run in ascending order from the stored version.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection

from hirelane.db.base import Base
from hirelane.db import models  # noqa: F401
from hirelane.errors import StorageUnavailable

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 4
VERSION_KEY = "schema_version"


def _has_table(insp: sa.Inspector, table: str) -> bool:
    return table in insp.get_table_names()


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if not _has_table(insp, table):
        return False
    cols = {c["name"] for c in insp.get_columns(table)}
    return column in cols


def _ensure_index(op: Operations, table: str, name: str, columns: list[str]) -> None:
    insp = sa.inspect(op.get_bind())
    existing = {idx["name"] for idx in insp.get_indexes(table)}
    if name not in existing:
        op.create_index(name, table, columns, unique=False)


def _add_json_list_column(op: Operations, table: str, column: str) -> None:
    insp = sa.inspect(op.get_bind())
    if _has_column(insp, table, column):
        return
    with op.batch_alter_table(table, schema=None) as batch_op:
        batch_op.add_column(sa.Column(column, sa.JSON(), nullable=False, server_default="[]"))


def _upgrade_to_2(op: Operations) -> None:
    bind = op.get_bind()
    for table in ("notes", "timeline"):
        Base.metadata.tables[table].create(bind, checkfirst=True)


def _upgrade_to_3(op: Operations) -> None:
    _add_json_list_column(op, "jobs", "tags")
    _ensure_index(op, "candidates", "ix_candidates_job_id", ["job_id"])
    _ensure_index(op, "candidates", "ix_candidates_stage", ["stage"])


def _upgrade_to_4(op: Operations) -> None:
    _add_json_list_column(op, "jobs", "skills")


UPGRADES: dict[int, Callable[[Operations], None]] = {
    2: _upgrade_to_2,
    3: _upgrade_to_3,
    4: _upgrade_to_4,
}


def read_version(connection: Connection) -> int | None:
    """Return the stored schema version, or None for an empty medium.

    Stores written before version bookkeeping existed have tables but no
    ``store_meta`` row and count as version 1.
    """
    insp = sa.inspect(connection)
    tables = set(insp.get_table_names())
    if "store_meta" in tables:
        meta = Base.metadata.tables["store_meta"]
        value = connection.scalar(sa.select(meta.c.value).where(meta.c.key == VERSION_KEY))
        if value is not None:
            return int(value)
    if "jobs" in tables:
        return 1
    return None


def stamp_version(connection: Connection, version: int) -> None:
    meta = Base.metadata.tables["store_meta"]
    updated = connection.execute(
        sa.update(meta).where(meta.c.key == VERSION_KEY).values(value=str(version))
    )
    if updated.rowcount == 0:
        connection.execute(sa.insert(meta).values(key=VERSION_KEY, value=str(version)))


def upgrade_schema(connection: Connection) -> tuple[int | None, int]:
    """Bring the medium behind ``connection`` to SCHEMA_VERSION.

    Returns ``(previous_version, new_version)``.
    """
    previous = read_version(connection)
    if previous is not None and previous > SCHEMA_VERSION:
        raise StorageUnavailable(
            f"store schema v{previous} is newer than supported v{SCHEMA_VERSION}"
        )

    if previous is not None:
        op = Operations(MigrationContext.configure(connection))
        for version in range(previous + 1, SCHEMA_VERSION + 1):
            logger.info("Upgrading store schema v%s -> v%s", version - 1, version)
            UPGRADES[version](op)

    Base.metadata.create_all(bind=connection)
    stamp_version(connection, SCHEMA_VERSION)
    return previous, SCHEMA_VERSION
