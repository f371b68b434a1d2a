"""
BaseConnector — interface for all data source connectors.

Every data source (GitHub, Google Sheets, …) subclasses this.  The OAuth
flow only needs four things from a connector: its id, an OAuth strategy for
a given pipe, optional extra authorization parameters, and the
post-processing hook that runs once the user has been authenticated.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from connectors.encryption import encrypt_token
from oauth.strategy import OAuth2Strategy
from utils.schemas import AuthenticatedUser, PipeConfig


class BaseConnector(ABC):
    """Abstract base for all data source connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def connector_id(self) -> str:
        """Unique slug: 'github', 'google_sheets', …"""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable: 'GitHub', 'Google Sheets', …"""
        ...

    def handles(self, pipe: PipeConfig) -> bool:
        """Return True if this connector is responsible for ``pipe``."""
        return pipe.connector_id == self.connector_id

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def build_strategy(self, pipe: PipeConfig) -> OAuth2Strategy:
        """
        Build the OAuth strategy for ``pipe`` from its client credentials.

        The strategy is registered under the pipe id.
        """
        ...

    def get_authorization_params(self) -> Dict[str, Any]:
        """
        Data source specific parameters for the authorization request
        (scope, access_type, prompt, …).  Defaults to none.
        """
        return {}

    async def auth_callback_post_processing(
        self,
        user: AuthenticatedUser,
        pipe: PipeConfig,
        info: Optional[Dict[str, Any]] = None,
    ) -> Optional[PipeConfig]:
        """
        Runs after the user has been authenticated for ``pipe``.

        Returns the updated pipe configuration.  Raise
        ``ConnectorPostProcessingError`` to report a failure to the user.
        The default stores the (encrypted) tokens in ``pipe.oauth``.
        """
        return self.store_tokens(user, pipe)

    # ── Helpers ─────────────────────────────────────────────────────────

    def store_tokens(self, user: AuthenticatedUser, pipe: PipeConfig) -> PipeConfig:
        """Return a copy of ``pipe`` carrying the user's tokens, encrypted at rest."""
        oauth: Dict[str, Any] = dict(pipe.oauth)
        oauth["access_token"] = encrypt_token(user.access_token)
        if user.refresh_token:
            oauth["refresh_token"] = encrypt_token(user.refresh_token)
        if user.expires_in:
            oauth["expires_at"] = (
                datetime.now(timezone.utc) + timedelta(seconds=user.expires_in)
            ).isoformat()
        oauth["scopes"] = list(user.scopes)
        oauth["connected_at"] = datetime.now(timezone.utc).isoformat()
        return pipe.model_copy(update={"oauth": oauth})
