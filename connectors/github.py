"""
GitHubConnector — loads repository data (issues, pull requests) via the
GitHub REST API.

Each pipe carries the client id / secret of its own GitHub OAuth App.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from config.settings import config
from connectors.base import BaseConnector
from oauth.exceptions import ConnectorPostProcessingError
from oauth.strategy import OAuth2Strategy
from utils.schemas import AuthenticatedUser, PipeConfig

logger = logging.getLogger(__name__)

# GitHub OAuth2 endpoints
_GH_AUTH_URL = "https://github.com/login/oauth/authorize"
_GH_TOKEN_URL = "https://github.com/login/oauth/access_token"
_GH_API = "https://api.github.com"


class GitHubConnector(BaseConnector):
    """Connector for GitHub repositories."""

    @property
    def connector_id(self) -> str:
        return "github"

    @property
    def display_name(self) -> str:
        return "GitHub"

    @property
    def scopes(self) -> List[str]:
        return ["repo", "read:user", "user:email"]

    def build_strategy(self, pipe: PipeConfig) -> OAuth2Strategy:
        return OAuth2Strategy(
            client_id=pipe.client_id,
            client_secret=pipe.client_secret,
            authorize_url=_GH_AUTH_URL,
            token_url=_GH_TOKEN_URL,
            profile_url=f"{_GH_API}/user",
            callback_url=config.oauth_callback_url,
            scopes=self.scopes,
        )

    def get_authorization_params(self) -> Dict[str, Any]:
        return {"allow_signup": "false"}

    async def auth_callback_post_processing(
        self,
        user: AuthenticatedUser,
        pipe: PipeConfig,
        info: Optional[Dict[str, Any]] = None,
    ) -> Optional[PipeConfig]:
        login = user.profile.get("login")
        if not login:
            raise ConnectorPostProcessingError("GitHub did not return the account login")

        updated = self.store_tokens(user, pipe)
        updated.oauth["account_id"] = str(user.profile.get("id", ""))
        updated.oauth["account_label"] = login
        logger.info("GitHub account %s linked to pipe %s", login, pipe.id)
        return updated
