"""
snippetbin — Pydantic Request/Response Schemas
================================================

What:  Pydantic models defining the JSON contract of the /snippets resource.
How:   Request bodies are validated from raw bytes with model_validate_json();
       responses are built from ORM rows with from_attributes.
Who:   Used by the snippet route handlers.

Schemas:
    SnippetPayload   the client-controlled fields (POST body)
    SnippetPatch     same fields, all optional, presence-preserving (PATCH body)
    SnippetResponse  payload plus id and store-managed timestamps
    HealthResponse   GET /health

SnippetPayload is the configuration point for payload fields; SnippetPatch is
generated from it so the two cannot drift apart. Unknown request fields are
ignored.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, create_model


# ══════════════════════════════════════════════════════════════════════════
# Request Models: what clients send
# ══════════════════════════════════════════════════════════════════════════


class SnippetPayload(BaseModel):
    """
    Client-controlled snippet fields.

    Missing fields default to the empty string, the same value a freshly
    inserted row gets from the database.
    """
    title: str = Field(default="", description="Short snippet title")
    body: str = Field(default="", description="Snippet text")

    model_config = ConfigDict(extra="ignore")


# Every payload field becomes Optional[...] = None, so that
# model_dump(exclude_unset=True) reports exactly the keys the client sent.
SnippetPatch = create_model(
    "SnippetPatch",
    __config__=ConfigDict(extra="ignore"),
    **{
        name: (Optional[field.annotation], None)
        for name, field in SnippetPayload.model_fields.items()
    },
)
SnippetPatch.__doc__ = "Partial update body: only the fields present are applied."


def patch_fields(patch: BaseModel) -> dict:
    """
    Fields to overwrite for a decoded PATCH body.

    Absent keys and explicit nulls are both left out (merge non-null);
    an explicit empty string is kept and clears the field.
    """
    return {
        name: value
        for name, value in patch.model_dump(exclude_unset=True).items()
        if value is not None
    }


# ══════════════════════════════════════════════════════════════════════════
# Response Models: what the API returns
# ══════════════════════════════════════════════════════════════════════════


class SnippetResponse(SnippetPayload):
    """
    Full representation of a stored snippet.

    Returned by every successful /snippets call (as a list for GET /snippets).
    Timestamps are UTC; deleted_at is always null in practice since
    soft-deleted rows are never read back, and DELETE returns the pre-delete image.
    """
    id: int = Field(description="Server-assigned snippet identifier")
    created_at: datetime = Field(description="Creation time (UTC)")
    updated_at: datetime = Field(description="Last modification time (UTC)")
    deleted_at: Optional[datetime] = Field(default=None, description="Soft-delete time (UTC)")

    model_config = ConfigDict(from_attributes=True)


SnippetListAdapter = TypeAdapter(List[SnippetResponse])


class HealthResponse(BaseModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
