"""
Exception handlers — render ``OAuthFlowError`` subclasses as HTTP responses.

Configuration / lookup errors become ``{"error": message}`` JSON bodies,
authentication errors a small ``text/html`` page.
"""

from __future__ import annotations

import html
import logging

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from oauth.exceptions import OAuthFlowError

logger = logging.getLogger(__name__)


def json_error(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def html_error(message: str, status_code: int = 401) -> HTMLResponse:
    return HTMLResponse(
        f"<html><body> {html.escape(message)} </body></html>",
        status_code=status_code,
    )


def render_error(exc: OAuthFlowError) -> Response:
    if exc.media == "html":
        return html_error(exc.message, exc.status_code)
    return json_error(exc.message, exc.status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the OAuth flow exception handler."""

    @app.exception_handler(OAuthFlowError)
    async def oauth_flow_error(request: Request, exc: OAuthFlowError) -> Response:
        logger.debug(
            "%s %s → %s (%d) pipe=%s connector=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc.status_code,
            exc.pipe_id,
            exc.connector_id,
        )
        return render_error(exc)
