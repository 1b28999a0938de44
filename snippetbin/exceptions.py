"""
snippetbin — Custom Exception Hierarchy
=========================================

What:  Application-specific exceptions for the error kinds seen at the HTTP boundary.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch the HTTP-facing
       ones and return plain-text responses with the matching status code.
Who:   Raised by the store adapter and the route handlers.

Exception Hierarchy:
    SnippetBinError (base)
    ├── BadRequestError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── SerializationError       → 500 Internal Server Error
    └── StoreError               → translated by the route that called the store
        └── StoreUnavailableError → fatal at startup (process exits)

Messages are passed through to the client verbatim, including raw store
error text.
"""

from typing import Any, Dict, Optional


class SnippetBinError(Exception):
    """
    Base exception for all snippetbin errors.

    Attributes:
        message:  Text returned to the client as the response body
        context:  Additional debug info (logged, never returned)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class BadRequestError(SnippetBinError):
    """
    The request could not be honoured as sent.

    When:    Body decode failure, or the store rejected a create/update/delete.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Bad request",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SnippetBinError):
    """
    A snippet does not exist (or has been soft-deleted).

    When:    GET/PATCH/DELETE /snippets/{id} with an unknown or non-numeric id.
    HTTP:    404 Not Found

    Passing `snippet_id` builds the canonical message
    ``Snippet with ID: {id} not found``; passing `message` overrides it.
    """

    def __init__(
        self,
        snippet_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            if snippet_id is not None:
                message = f"Snippet with ID: {snippet_id} not found"
            else:
                message = "Not found"
        ctx = context or {}
        if snippet_id is not None:
            ctx["snippet_id"] = snippet_id
        super().__init__(message=message, context=ctx)
        self.snippet_id = snippet_id


class SerializationError(SnippetBinError):
    """
    A stored row could not be rendered as JSON.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Could not serialize response",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreError(SnippetBinError):
    """
    A database operation failed.

    The message is the underlying driver/ORM error text. The store never maps
    this to a status code itself; each route decides (400 for writes, 404 for
    reads), so there is no global handler for it.
    """

    def __init__(
        self,
        message: str = "Database operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreUnavailableError(StoreError):
    """
    The database file could not be opened or migrated.

    When:    Application startup. The service refuses to start without storage.
    """

    def __init__(
        self,
        path: str,
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["path"] = path
        super().__init__(
            message=f"Could not open snippet store at '{path}': {reason}",
            context=ctx,
        )
        self.path = path
