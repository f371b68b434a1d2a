"""
FastAPI dependencies (shared across routes).
"""

from __future__ import annotations

from fastapi import Request

from oauth.orchestrator import OAuthOrchestrator


def get_orchestrator(request: Request) -> OAuthOrchestrator:
    """The orchestrator built by ``main.create_app`` and kept on ``app.state``."""
    return request.app.state.orchestrator
