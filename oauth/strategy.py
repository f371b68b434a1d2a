"""
Authentication strategies.

A strategy knows how to send the user to a provider and how to turn the
provider's redirect back into an ``AuthResult``.  One strategy instance is
registered per data pipe, because every pipe carries its own OAuth client
credentials.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from starlette.requests import Request

from oauth.exceptions import AuthenticationError
from utils.schemas import AuthenticatedUser, AuthResult

logger = logging.getLogger(__name__)


class BaseStrategy(ABC):
    """Abstract base for all authentication strategies."""

    @abstractmethod
    def authorization_url(self, request: Request, options: Dict[str, Any]) -> str:
        """Return the provider URL the user is redirected to."""
        ...

    @abstractmethod
    async def authenticate(self, request: Request, options: Dict[str, Any]) -> AuthResult:
        """
        Complete authentication from the provider's redirect.

        Must not raise for provider-side failures; those are reported
        through ``AuthResult.error``.
        """
        ...


class OAuth2Strategy(BaseStrategy):
    """OAuth2 authorization-code flow against a single provider."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        authorize_url: str,
        token_url: str,
        callback_url: str,
        profile_url: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        scope_separator: str = " ",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.authorize_url = authorize_url
        self.token_url = token_url
        self.callback_url = callback_url
        self.profile_url = profile_url
        self.scopes = scopes or []
        self.scope_separator = scope_separator
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    def authorization_url(self, request: Request, options: Dict[str, Any]) -> str:
        params: Dict[str, Any] = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
        }
        if self.scopes:
            params["scope"] = self.scope_separator.join(self.scopes)
        for key, value in options.items():
            if value is None:
                continue
            if key == "scope" and isinstance(value, (list, tuple)):
                value = self.scope_separator.join(value)
            params[key] = value
        return f"{self.authorize_url}?{urlencode(params)}"

    async def authenticate(self, request: Request, options: Dict[str, Any]) -> AuthResult:
        query = request.query_params

        if "error" in query:
            message = query.get("error_description") or query["error"]
            if query["error"] == "access_denied":
                # the user declined consent: no error, no user
                return AuthResult(info={"message": message})
            return AuthResult(error=AuthenticationError(message, status_code=403))

        code = query.get("code")
        if not code:
            return AuthResult(info={"message": "Missing authorization code"})

        try:
            async with self._client() as client:
                token_resp = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.callback_url,
                    },
                    headers={"Accept": "application/json"},
                )
                token_resp.raise_for_status()
                token_data = token_resp.json()
                if not isinstance(token_data, dict):
                    raise ValueError("token response is not a JSON object")

                if "error" in token_data:
                    return AuthResult(
                        error=AuthenticationError(
                            token_data.get("error_description", token_data["error"]),
                            status_code=400,
                        )
                    )
                if not token_data.get("access_token"):
                    raise ValueError("token response carries no access_token")

                profile = await self.user_profile(client, token_data["access_token"])
        except httpx.HTTPStatusError as exc:
            logger.warning("OAuth token exchange failed: %s", exc)
            return AuthResult(error=AuthenticationError(str(exc), status_code=exc.response.status_code))
        except httpx.HTTPError as exc:
            logger.warning("OAuth provider unreachable: %s", exc)
            return AuthResult(error=AuthenticationError(str(exc), status_code=502))
        except ValueError as exc:
            # includes JSONDecodeError from a non-JSON body
            logger.warning("OAuth provider sent a malformed reply: %s", exc)
            return AuthResult(error=AuthenticationError(f"Malformed provider reply: {exc}", status_code=502))

        user = AuthenticatedUser(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_in=token_data.get("expires_in"),
            scopes=self._split_scopes(token_data.get("scope", "")),
            profile=profile,
        )
        info = {"token_type": token_data.get("token_type", "bearer")}
        return AuthResult(user=user, info=info)

    async def user_profile(self, client: httpx.AsyncClient, access_token: str) -> Dict[str, Any]:
        """Fetch the provider profile; empty when the strategy has no profile URL."""
        if not self.profile_url:
            return {}
        resp = await client.get(
            self.profile_url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )
        resp.raise_for_status()
        profile = resp.json()
        if not isinstance(profile, dict):
            raise ValueError("profile response is not a JSON object")
        return profile

    def _split_scopes(self, raw: str) -> List[str]:
        if not raw:
            return []
        return [s for s in raw.replace(",", " ").split() if s]
