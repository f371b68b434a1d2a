"""
Error taxonomy for the OAuth flow.

Every error is terminal for the current request.  ``media`` decides how
``api.errors`` renders it: configuration / lookup problems become a JSON
``{"error": ...}`` body, authentication problems an HTML 401 page.
"""

from __future__ import annotations

from typing import Optional


class OAuthFlowError(Exception):
    """Base class for all failures surfaced by the OAuth orchestrator."""

    status_code: int = 500
    media: str = "json"

    def __init__(
        self,
        message: str,
        *,
        pipe_id: Optional[str] = None,
        connector_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.pipe_id = pipe_id
        self.connector_id = connector_id


# ── Configuration / lookup class (JSON) ─────────────────────────────────


class MissingPipelineId(OAuthFlowError):
    status_code = 400


class StrategyNotFound(OAuthFlowError):
    status_code = 404


class ConnectorNotFound(OAuthFlowError):
    status_code = 404


class PipeLookupError(OAuthFlowError):
    status_code = 404


class EmptyConnectorResult(OAuthFlowError):
    status_code = 500


class ConnectorException(OAuthFlowError):
    """A connector raised an unexpected exception during post-processing."""

    status_code = 500


# ── Authentication class (HTML 401) ─────────────────────────────────────


class AuthenticationFailed(OAuthFlowError):
    status_code = 401
    media = "html"


class UnknownUser(OAuthFlowError):
    status_code = 401
    media = "html"


class ConnectorPostProcessingFailed(OAuthFlowError):
    status_code = 401
    media = "html"


# ── Raised by strategies / connectors ───────────────────────────────────


class AuthenticationError(Exception):
    """Error reported by a strategy; ``status_code`` is the provider's HTTP status."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConnectorPostProcessingError(Exception):
    """Raised by a connector to report an explicit post-processing failure."""
