"""
snippetbin — Database Engine & Auto-Migration
===============================================

What:  Async SQLAlchemy engine construction, the declarative Base, a UTC
       timestamp column type, and the additive schema migration run at startup.
How:   One async engine per SQLite file (aiosqlite driver). Migration runs
       inside a single transaction through connection.run_sync(), the same
       bridge Alembic environments use for async engines.
Who:   Used by SnippetStore.open() and by the ORM models.
When:  Engine and migration run once at application startup.

Auto-Migration Strategy:
    1. metadata.create_all() creates any table (and its indexes) that is missing
    2. alembic.autogenerate.compare_metadata() diffs the live schema against
       the declared models
    3. Only additive diffs are applied (add_column, add_index) through
       alembic.operations.Operations
    4. Everything else (removed columns, type changes) is logged and skipped,
       so existing data is never dropped or renamed
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from alembic.autogenerate import compare_metadata
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import DateTime, event
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so that a single metadata object
    describes the whole schema for create_all() and compare_metadata().
    """
    pass


# ── Column Types ──────────────────────────────────────────────────────────
class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as naive UTC.

    SQLite has no timezone-aware timestamp type, so values are normalised
    to UTC on the way in and tagged with UTC on the way out. API consumers
    always see aware datetimes (serialized with a trailing ``Z``).
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


# ── Engine Configuration ──────────────────────────────────────────────────
# Execution options for read-only work; see create_store_engine()
DEFERRED_BEGIN = {"deferred_begin": True}


def database_url(path: str) -> str:
    """Async SQLAlchemy URL for a SQLite file at `path`."""
    return f"sqlite+aiosqlite:///{path}"


def create_store_engine(
    path: str,
    busy_timeout: float = 5.0,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create the async engine for the SQLite file at `path`.

    The file itself is created by SQLite on first connect. `busy_timeout`
    is handed to sqlite3.connect() as `timeout`: how long a transaction waits
    for the database lock held by another connection.

    Transactions are started with BEGIN IMMEDIATE, which takes the write lock
    up front. With a deferred BEGIN, two transactions that both read a row and
    then try to write it can deadlock, and SQLite fails one of them with
    "database is locked" instead of waiting.

    Connections carrying the DEFERRED_BEGIN execution options are read-only
    and start with a plain BEGIN, so readers do not queue behind a writer
    that is still working.
    """
    engine = create_async_engine(
        database_url(path),
        echo=echo,
        connect_args={"timeout": busy_timeout},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(connection):
        if connection.get_execution_options().get("deferred_begin"):
            connection.exec_driver_sql("BEGIN")
        else:
            connection.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


# ── Auto-Migration ────────────────────────────────────────────────────────
def _apply_additive_migration(connection: Connection) -> None:
    """
    Bring the live schema up to the declared metadata without dropping anything.

    Runs synchronously on the connection handed over by run_sync().
    """
    Base.metadata.create_all(connection)

    context = MigrationContext.configure(connection)
    operations = Operations(context)

    for diff in compare_metadata(context, Base.metadata):
        # Column modifications are reported as lists of tuples
        if isinstance(diff, list):
            logger.debug("Auto-migration: skipping non-additive change %s", diff)
            continue

        kind = diff[0]
        if kind == "add_column":
            _, schema, table_name, column = diff
            logger.info("Auto-migration: adding column %s.%s", table_name, column.name)
            operations.add_column(table_name, column, schema=schema)
        elif kind == "add_index":
            index = diff[1]
            logger.info("Auto-migration: adding index %s", index.name)
            operations.create_index(
                index.name,
                index.table.name,
                [column.name for column in index.columns],
                unique=index.unique,
            )
        else:
            logger.debug("Auto-migration: skipping non-additive change %s", kind)


async def run_auto_migration(engine: AsyncEngine) -> None:
    """
    Create missing tables and add missing columns/indexes.

    What:  Additive schema reconciliation, executed on every startup.
    How:   Opens a transaction on the async engine and runs the synchronous
           Alembic comparison through connection.run_sync().

    Raises:
        sqlalchemy.exc.SQLAlchemyError / OSError: the file could not be
        opened or the schema could not be changed. Callers turn these into
        StoreUnavailableError.
    """
    # Register the models with Base.metadata before diffing
    from snippetbin.models import snippet  # noqa: F401

    async with engine.begin() as connection:
        await connection.run_sync(_apply_additive_migration)
