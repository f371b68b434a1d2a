"""
OAuth routes — start authorization for a data pipe and receive the
provider's callback.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from api.dependencies import get_orchestrator
from oauth.orchestrator import SESSION_STATE_KEY, OAuthOrchestrator
from oauth.state import is_allowed_return_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


@router.get("/auth/passport/{pipe_id}")
async def start_authorization(
    request: Request,
    pipe_id: str,
    url: Optional[str] = Query(None, description="Where to send the user once the pipe is connected"),
    orchestrator: OAuthOrchestrator = Depends(get_orchestrator),
) -> Response:
    """Redirect the user to the data source's consent page."""
    return await orchestrator.initiate(request, pipe_id, url)


@router.get("/auth/callback")
async def oauth_callback(
    request: Request,
    orchestrator: OAuthOrchestrator = Depends(get_orchestrator),
) -> Response:
    """
    Provider redirect target.

    Lets the orchestrator finish OAuth, stores the updated pipe and sends
    the user back to the return URL captured when authorization started.
    """
    state = orchestrator.read_state(request)
    try:
        pipe = await orchestrator.auth_callback(request)
        await orchestrator.store.save_pipe(pipe)
    finally:
        # one attempt per authorization; a failed callback must not leave state behind
        request.session.pop(SESSION_STATE_KEY, None)

    return_url = state.state.url if state.state else None
    if is_allowed_return_url(return_url):
        return RedirectResponse(return_url, status_code=302)
    return JSONResponse(pipe.public_dict())
