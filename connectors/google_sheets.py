"""
GoogleSheetsConnector — loads spreadsheet tabs via the Google Sheets API.

Uses Google's OAuth2 web flow; offline access is required because the
pipe runs long after the user has left.
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

# Google OAuth2 endpoints
_GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
_GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class GoogleSheetsConnector(BaseConnector):
    """Connector for Google Sheets."""

    @property
    def connector_id(self) -> str:
        return "google_sheets"

    @property
    def display_name(self) -> str:
        return "Google Sheets"

    @property
    def scopes(self) -> List[str]:
        return [
            "https://www.googleapis.com/auth/spreadsheets.readonly",
            "https://www.googleapis.com/auth/userinfo.email",
        ]

    def build_strategy(self, pipe: PipeConfig) -> OAuth2Strategy:
        return OAuth2Strategy(
            client_id=pipe.client_id,
            client_secret=pipe.client_secret,
            authorize_url=_GOOGLE_AUTH_URL,
            token_url=_GOOGLE_TOKEN_URL,
            profile_url=_GOOGLE_USERINFO_URL,
            callback_url=config.oauth_callback_url,
            scopes=self.scopes,
        )

    def get_authorization_params(self) -> Dict[str, Any]:
        return {
            "access_type": "offline",   # gets refresh_token
            "prompt": "consent",        # force consent to always get refresh_token
        }

    async def auth_callback_post_processing(
        self,
        user: AuthenticatedUser,
        pipe: PipeConfig,
        info: Optional[Dict[str, Any]] = None,
    ) -> Optional[PipeConfig]:
        if not user.refresh_token:
            raise ConnectorPostProcessingError(
                "Google did not return a refresh token; revoke the app's access and connect again"
            )

        updated = self.store_tokens(user, pipe)
        email = user.profile.get("email", "")
        updated.oauth["account_id"] = user.profile.get("id", email)
        updated.oauth["account_label"] = email
        logger.info("Google account %s linked to pipe %s", email, pipe.id)
        return updated
