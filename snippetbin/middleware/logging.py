"""
snippetbin — Request Logging Middleware
=========================================

What:  One access-log line per HTTP request, keyed by the matched route.
How:   Times the downstream app, then reads the route template and path
       parameters the router left in the ASGI scope. Logs on the
       `snippetbin.access` logger with structured fields in `extra`.
Who:   Applied to every request via Starlette middleware.
When:  Inside RequestIDMiddleware, so the request id is already set.

Line format:
    PATCH /snippets/{snippet_id} id=1 → 200 in 3.2ms [a1b2c3d4]
    GET /nope → 404 in 0.4ms [5e6f7a8b]          (no route matched)

Grouping by template keeps one line shape per operation; the snippet id is
logged separately so a single snippet's history can still be grepped.
Request bodies are never logged.
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from snippetbin.middleware.request_id import request_id_var

logger = logging.getLogger("snippetbin.access")

# Probed by monitors every few seconds
QUIET_PATHS = {"/health"}


def _route_template(request: Request) -> Optional[str]:
    """Path template of the route that handled the request, if any matched."""
    route = request.scope.get("route")
    return getattr(route, "path", None)


def _status_level(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs operation, snippet id, status and duration for each request.

    The router stores the matched route and its path parameters in the
    shared scope, so both are readable once call_next() returns.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        template = _route_template(request)
        snippet_id = request.scope.get("path_params", {}).get("snippet_id")
        target = template or request.url.path
        if snippet_id is not None:
            target = f"{target} id={snippet_id}"

        rid = request_id_var.get("")
        logger.log(
            _status_level(response.status_code),
            "%s %s → %d in %.1fms [%s]",
            request.method,
            target,
            response.status_code,
            duration_ms,
            rid,
            extra={
                "request_id": rid,
                "method": request.method,
                "route": template,
                "snippet_id": snippet_id,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
