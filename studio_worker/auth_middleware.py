"""
Shared-secret authentication for the generation endpoints.

Every /generate/* request must carry an X-Worker-Secret header matching
WORKER_SHARED_SECRET. The calling backend attaches it when forwarding a
user's request; end users never talk to the worker directly.
"""

import secrets

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from . import config

PROTECTED_PREFIX = "/generate"


class WorkerAuthMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated requests to /generate/* endpoints."""

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(PROTECTED_PREFIX):
            return await call_next(request)

        expected = config.get_worker_secret()
        if not expected:
            if config.ENVIRONMENT == "development":
                return await call_next(request)
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "misconfiguration"},
            )

        provided = request.headers.get("X-Worker-Secret", "")
        if not secrets.compare_digest(provided, expected):
            return JSONResponse(
                status_code=401,
                content={"success": False, "error": "Invalid or missing worker secret"},
            )

        return await call_next(request)
