"""
snippetbin — Snippet Store (Store Adapter)
============================================

What:  Owns the database handle and exposes typed row operations for snippets.
How:   One async engine for the lifetime of the process; each operation runs in
       its own short-lived AsyncSession. SQLAlchemy failures are wrapped in
       StoreError carrying the raw driver message.
Who:   Opened by the application lifespan; used by the snippet route handlers.
When:  open() at startup, close() at shutdown, everything else per request.

Operations:
    open(path)                  → SnippetStore          | StoreUnavailableError
    list_snippets()             → list of live rows     | StoreError
    get_snippet(id)             → row                   | NotFoundError, StoreError
    create_snippet(fields)      → inserted row          | StoreError
    update_snippet(id, patch)   → post-update row       | NotFoundError, StoreError
    delete_snippet(id)          → pre-delete row image  | NotFoundError, StoreError
    ping()                      → None                  | StoreError
    close()

Ids arrive as the raw path segment (a string). Anything that is not a plain
non-negative decimal integer can never match a row and is reported as not found.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import Request
from sqlalchemy import select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from snippetbin.database import DEFERRED_BEGIN, create_store_engine, run_auto_migration
from snippetbin.exceptions import NotFoundError, StoreError, StoreUnavailableError
from snippetbin.models.snippet import PAYLOAD_COLUMNS, Snippet

logger = logging.getLogger(__name__)

# Largest value an SQLite INTEGER column can hold
SQLITE_MAX_INTEGER = 2**63 - 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_id(snippet_id: str) -> Optional[int]:
    """Primary key for a path id, or None when it cannot name a row."""
    if not snippet_id.isascii() or not snippet_id.isdigit():
        return None
    pk = int(snippet_id)
    # Larger values do not fit an SQLite INTEGER and would make the driver raise
    if pk > SQLITE_MAX_INTEGER:
        return None
    return pk


class SnippetStore:
    """
    Store adapter for the Snippet entity.

    Shared by all concurrent requests. There is no application-level locking;
    SQLite serializes writers and the engine's pool hands out connections.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        # expire_on_commit=False: rows stay readable after their session closes
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @classmethod
    async def open(
        cls,
        path: str,
        busy_timeout: float = 5.0,
        echo: bool = False,
    ) -> "SnippetStore":
        """
        Open (creating if needed) the SQLite file at `path` and migrate it.

        Raises:
            StoreUnavailableError: the file could not be opened or migrated.
        """
        engine = create_store_engine(path, busy_timeout=busy_timeout, echo=echo)
        try:
            await run_auto_migration(engine)
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            logger.error("Could not open snippet store at %s: %s", path, e)
            raise StoreUnavailableError(path=path, reason=str(e)) from e

        logger.info("Snippet store opened at %s", path)
        return cls(engine)

    async def close(self) -> None:
        """Dispose the engine, closing every pooled connection."""
        await self._engine.dispose()
        logger.info("Snippet store closed")

    async def ping(self) -> None:
        """Round-trip a trivial query to prove the database is reachable."""
        try:
            async with self._engine.connect() as conn:
                await conn.execution_options(**DEFERRED_BEGIN)
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreError(message=str(e)) from e

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_snippets(self) -> List[Snippet]:
        """All live (not soft-deleted) snippets, in no particular order."""
        try:
            async with self._session_factory() as session:
                await session.connection(execution_options=DEFERRED_BEGIN)
                result = await session.execute(
                    select(Snippet).where(Snippet.deleted_at.is_(None))
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing snippets: %s", e)
            raise StoreError(message=str(e)) from e

    async def get_snippet(self, snippet_id: str) -> Snippet:
        """
        Fetch one live snippet by id.

        Raises:
            NotFoundError: no live row has this id (or the id is not numeric)
            StoreError: the query failed
        """
        try:
            async with self._session_factory() as session:
                await session.connection(execution_options=DEFERRED_BEGIN)
                return await self._load_live(session, snippet_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching snippet %s: %s", snippet_id, e)
            raise StoreError(message=str(e), context={"snippet_id": snippet_id}) from e

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_snippet(self, fields: Dict[str, Any]) -> Snippet:
        """
        Insert a new snippet built from payload `fields`.

        The returned row carries the assigned id and identical
        created_at/updated_at timestamps.
        """
        self._check_payload_keys(fields)
        now = _utcnow()
        snippet = Snippet(**fields, created_at=now, updated_at=now, deleted_at=None)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(snippet)
        except SQLAlchemyError as e:
            logger.error("Database error creating snippet: %s", e)
            raise StoreError(message=str(e)) from e

        logger.info("Snippet %s created", snippet.id)
        return snippet

    async def update_snippet(self, snippet_id: str, patch: Dict[str, Any]) -> Snippet:
        """
        Overwrite the payload fields present in `patch`; leave the rest alone.

        updated_at always moves strictly forward, even for an empty patch.

        Raises:
            NotFoundError: no live row has this id
            StoreError: unknown field in `patch`, or the update failed
        """
        self._check_payload_keys(patch)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    snippet = await self._load_live(session, snippet_id)
                    for name, value in patch.items():
                        setattr(snippet, name, value)
                    snippet.updated_at = self._next_timestamp(snippet.updated_at)
        except SQLAlchemyError as e:
            logger.error("Database error updating snippet %s: %s", snippet_id, e)
            raise StoreError(message=str(e), context={"snippet_id": snippet_id}) from e

        logger.info("Snippet %s updated (%s)", snippet.id, ", ".join(sorted(patch)) or "no fields")
        return snippet

    async def delete_snippet(self, snippet_id: str) -> Snippet:
        """
        Soft-delete a snippet and return the row as it was before deletion.

        Fetch and delete run in one transaction, and the UPDATE only matches a
        row whose deleted_at is still NULL: of two concurrent deletes of the
        same id, exactly one succeeds and the other gets NotFoundError.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    snippet = await self._load_live(session, snippet_id)
                    # Detach so the UPDATE below leaves the returned image untouched
                    session.expunge(snippet)
                    result = await session.execute(
                        update(Snippet)
                        .where(Snippet.id == snippet.id, Snippet.deleted_at.is_(None))
                        .values(deleted_at=_utcnow())
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount == 0:
                        raise NotFoundError(snippet_id=snippet_id)
        except SQLAlchemyError as e:
            logger.error("Database error deleting snippet %s: %s", snippet_id, e)
            raise StoreError(message=str(e), context={"snippet_id": snippet_id}) from e

        logger.info("Snippet %s deleted", snippet.id)
        return snippet

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    async def _load_live(session: AsyncSession, snippet_id: str) -> Snippet:
        pk = _coerce_id(snippet_id)
        if pk is None:
            raise NotFoundError(snippet_id=snippet_id)
        snippet = await session.get(Snippet, pk)
        if snippet is None or snippet.deleted_at is not None:
            raise NotFoundError(snippet_id=snippet_id)
        return snippet

    @staticmethod
    def _check_payload_keys(fields: Dict[str, Any]) -> None:
        unknown = sorted(set(fields) - set(PAYLOAD_COLUMNS))
        if unknown:
            raise StoreError(
                message=f"unknown snippet field(s): {', '.join(unknown)}",
                context={"fields": unknown},
            )

    @staticmethod
    def _next_timestamp(previous: Optional[datetime]) -> datetime:
        now = _utcnow()
        if previous is not None and now <= previous:
            # Clock did not move (or moved back); keep updated_at monotonic
            now = previous + timedelta(microseconds=1)
        return now


# ── FastAPI Dependency ────────────────────────────────────────────────────
def get_store(request: Request) -> SnippetStore:
    """The process-wide store opened by the application lifespan."""
    return request.app.state.store
