"""
snippetbin — Snippet Route Handlers
=====================================

What:  The five /snippets operations: list, create, get, update, delete.
How:   Each handler reads the raw request, calls the SnippetStore, translates
       store errors into HTTP-facing exceptions, and renders JSON.
Who:   Any HTTP client of the service.

Error Translation (handled globally in main.py once raised here):
    body decode failure                 → BadRequestError    (400)
    unknown id / failed fetch by id     → NotFoundError      (404)
    StoreError on create/update/delete  → BadRequestError    (400)
    StoreError on list                  → NotFoundError      (404, kept as-is)
    response rendering failure          → SerializationError (500)

Bodies are decoded by hand (not as FastAPI body parameters) so that PATCH
looks the snippet up before the body is even parsed, and decode errors come
back as 400 plain text rather than FastAPI's 422 JSON.
"""

import logging
from typing import Iterable, List, Type, TypeVar

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError

from snippetbin.exceptions import (
    BadRequestError,
    NotFoundError,
    SerializationError,
    StoreError,
)
from snippetbin.middleware.request_id import request_id_var
from snippetbin.models.snippet import Snippet
from snippetbin.schemas.snippet import (
    SnippetListAdapter,
    SnippetPatch,
    SnippetPayload,
    SnippetResponse,
    patch_fields,
)
from snippetbin.services.snippet_store import SnippetStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Snippets"])

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_MEDIA_TYPE = "application/json"


# ── Helpers ───────────────────────────────────────────────────────────────

async def _decode(request: Request, model: Type[ModelT]) -> ModelT:
    """Validate the raw request body against `model`, or raise BadRequestError."""
    raw = await request.body()
    try:
        return model.model_validate_json(raw)
    except PydanticValidationError as e:
        logger.warning("[%s] Decode error: %s", request_id_var.get(""), e)
        raise BadRequestError(message=str(e)) from e


def _render_one(snippet: Snippet, status_code: int = 200) -> Response:
    try:
        content = SnippetResponse.model_validate(snippet).model_dump_json()
    except (PydanticValidationError, PydanticSerializationError) as e:
        logger.error("[%s] Marshal error: %s", request_id_var.get(""), e)
        raise SerializationError(message=str(e)) from e
    return Response(content=content, status_code=status_code, media_type=JSON_MEDIA_TYPE)


def _render_many(snippets: Iterable[Snippet]) -> Response:
    try:
        items = SnippetListAdapter.validate_python(list(snippets), from_attributes=True)
        content = SnippetListAdapter.dump_json(items)
    except (PydanticValidationError, PydanticSerializationError) as e:
        logger.error("[%s] Marshal error: %s", request_id_var.get(""), e)
        raise SerializationError(message=str(e)) from e
    return Response(content=content, status_code=200, media_type=JSON_MEDIA_TYPE)


async def _fetch(store: SnippetStore, snippet_id: str) -> Snippet:
    """Look a snippet up; any failure reads as "not found" to the client."""
    try:
        return await store.get_snippet(snippet_id)
    except StoreError as e:
        logger.warning("[%s] Error retrieving snippet %s: %s", request_id_var.get(""), snippet_id, e.message)
        raise NotFoundError(snippet_id=snippet_id) from e


# ── Collection ────────────────────────────────────────────────────────────

@router.get(
    "/snippets",
    summary="List all snippets",
    responses={
        200: {"description": "Array of snippets", "model": List[SnippetResponse]},
        404: {"description": "The list query failed (plain text)"},
    },
)
async def list_snippets(store: SnippetStore = Depends(get_store)) -> Response:
    try:
        snippets = await store.list_snippets()
    except StoreError as e:
        logger.warning("[%s] Error retrieving snippets: %s", request_id_var.get(""), e.message)
        raise NotFoundError(message=e.message) from e
    return _render_many(snippets)


@router.post(
    "/snippets",
    status_code=201,
    summary="Create a snippet",
    responses={
        201: {"description": "The created snippet", "model": SnippetResponse},
        400: {"description": "Malformed body or rejected insert (plain text)"},
    },
)
async def create_snippet(
    request: Request,
    store: SnippetStore = Depends(get_store),
) -> Response:
    """
    Create a snippet from the JSON body.

    Missing payload fields are stored as empty strings; unknown fields,
    including id and timestamps, are ignored.
    """
    payload = await _decode(request, SnippetPayload)
    try:
        snippet = await store.create_snippet(payload.model_dump())
    except StoreError as e:
        logger.warning("[%s] Error creating snippet: %s", request_id_var.get(""), e.message)
        raise BadRequestError(message=e.message) from e
    return _render_one(snippet, status_code=201)


# ── Item ──────────────────────────────────────────────────────────────────

@router.get(
    "/snippets/{snippet_id}",
    summary="Get a snippet by id",
    responses={
        200: {"description": "The snippet", "model": SnippetResponse},
        404: {"description": "Snippet with ID: {id} not found (plain text)"},
    },
)
async def get_snippet(
    snippet_id: str,
    store: SnippetStore = Depends(get_store),
) -> Response:
    snippet = await _fetch(store, snippet_id)
    return _render_one(snippet)


@router.patch(
    "/snippets/{snippet_id}",
    summary="Update some fields of a snippet",
    responses={
        200: {"description": "The updated snippet", "model": SnippetResponse},
        400: {"description": "Malformed body or rejected update (plain text)"},
        404: {"description": "Snippet with ID: {id} not found (plain text)"},
    },
)
async def update_snippet(
    snippet_id: str,
    request: Request,
    store: SnippetStore = Depends(get_store),
) -> Response:
    """
    Overwrite only the fields present in the body.

    Order matters: the id is checked before the body is decoded, so an
    unknown id is a 404 even when the body is garbage.
    """
    await _fetch(store, snippet_id)
    patch = await _decode(request, SnippetPatch)
    try:
        snippet = await store.update_snippet(snippet_id, patch_fields(patch))
    except StoreError as e:
        logger.warning("[%s] Error updating snippet %s: %s", request_id_var.get(""), snippet_id, e.message)
        raise BadRequestError(message=e.message) from e
    return _render_one(snippet)


@router.delete(
    "/snippets/{snippet_id}",
    summary="Delete a snippet",
    responses={
        200: {"description": "The snippet as it was before deletion", "model": SnippetResponse},
        400: {"description": "Rejected delete (plain text)"},
        404: {"description": "Snippet with ID: {id} not found (plain text)"},
    },
)
async def delete_snippet(
    snippet_id: str,
    store: SnippetStore = Depends(get_store),
) -> Response:
    await _fetch(store, snippet_id)
    try:
        snippet = await store.delete_snippet(snippet_id)
    except StoreError as e:
        logger.warning("[%s] Error deleting snippet %s: %s", request_id_var.get(""), snippet_id, e.message)
        raise BadRequestError(message=f"Error deleting snippet: {e.message}") from e
    return _render_one(snippet)
