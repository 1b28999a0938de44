"""
snippetbin — Health Check Route
=================================

What:  GET /health for monitors and process supervisors.
How:   Pings the snippet store with SELECT 1 and reports the result.
Who:   Called by health probes; not part of the /snippets resource.

Status levels:
    - healthy:   database reachable
    - unhealthy: database unreachable (still HTTP 200; the body says why)
"""

import logging
import time

from fastapi import APIRouter, Depends

from snippetbin import __version__
from snippetbin.exceptions import StoreError
from snippetbin.schemas.snippet import HealthResponse
from snippetbin.services.snippet_store import SnippetStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Uptime is measured from module import, i.e. process start
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(store: SnippetStore = Depends(get_store)) -> HealthResponse:
    """Probe the database and return aggregate status with uptime."""
    db_status = "connected"
    overall = "healthy"

    try:
        await store.ping()
    except StoreError as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e.message)

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
