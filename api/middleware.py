"""
Global middleware.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

# OAuth redirects carry the signed state in their Location header
_NO_STORE_PREFIX = "/auth/"


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def oauth_response_guard(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith(_NO_STORE_PREFIX):
            response.headers["Cache-Control"] = "no-store"
            response.headers["Pragma"] = "no-cache"
        # query strings carry OAuth codes and state; only the path is logged
        logger.debug(
            "%s %s %d — %.3fs",
            request.method,
            request.url.path,
            response.status_code,
            time.perf_counter() - start,
        )
        return response
