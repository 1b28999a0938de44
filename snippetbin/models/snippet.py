"""
snippetbin — Snippet SQLAlchemy Model
=======================================

What:  ORM model representing the `snippets` table in SQLite.
How:   Inherits from the declarative Base; the startup auto-migration reads
       this declaration to create or extend the table.
Who:   Used by SnippetStore for every row operation.

Table Design:
    - id: INTEGER PRIMARY KEY AUTOINCREMENT, so ids are never reused even
      after the highest row is removed
    - created_at / updated_at / deleted_at: managed by the store, never by clients
    - deleted_at: soft-delete marker; rows with a value are invisible to reads
    - payload columns: the client-controlled fields

Payload Columns:
    The client-controlled fields are declared once here and once in
    schemas/snippet.py (SnippetPayload). To add a field, add it in both
    places; give it a constant server_default so the auto-migration can add
    it to a table that already holds rows.
"""

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from snippetbin.database import Base, UTCDateTime


class Snippet(Base):
    """
    A persisted text snippet.

    Lifecycle:
        1. Inserted on POST (created_at == updated_at)
        2. Payload columns overwritten on PATCH, updated_at advanced
        3. deleted_at set on DELETE; the row stays in the file but is no
           longer returned by any read
    """

    __tablename__ = "snippets"

    # ── Identity ──────────────────────────────────────────────────────────
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Store-managed timestamps ──────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        default=None,
    )

    # ── Payload ───────────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )
    body: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    __table_args__ = (
        Index("idx_snippets_deleted_at", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<Snippet(id={self.id}, title='{self.title}', "
            f"deleted_at={self.deleted_at})>"
        )


# Columns owned by the store; everything else on the table is payload
MANAGED_COLUMNS: Tuple[str, ...] = ("id", "created_at", "updated_at", "deleted_at")

PAYLOAD_COLUMNS: Tuple[str, ...] = tuple(
    column.name
    for column in Snippet.__table__.columns
    if column.name not in MANAGED_COLUMNS
)
