"""
Pydantic schemas shared by the OAuth flow, the connectors and the pipe store.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ═══════════════════════════════════════════════════════════════════════════════
# Data pipe configuration
# ═══════════════════════════════════════════════════════════════════════════════


class PipeConfig(BaseModel):
    """
    A data pipe configuration.

    Owned by the pipe store; connectors may add arbitrary keys, so unknown
    fields are kept rather than rejected.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    connector_id: str
    client_id: str = ""
    client_secret: str = ""
    oauth: Dict[str, Any] = Field(default_factory=dict)
    tables: List[Dict[str, Any]] = Field(default_factory=list)

    def public_dict(self) -> Dict[str, Any]:
        """Dump without secrets or stored token material."""
        data = self.model_dump(exclude={"client_secret"})
        data["oauth"] = {k: v for k, v in self.oauth.items() if not k.endswith("_token")}
        return data


class PipeCreateRequest(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=128)
    connector_id: str
    client_id: str = ""
    client_secret: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# Authentication
# ═══════════════════════════════════════════════════════════════════════════════


class AuthenticatedUser(BaseModel):
    """Transient user returned by a strategy for one callback; never persisted as-is."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scopes: List[str] = Field(default_factory=list)
    profile: Dict[str, Any] = Field(default_factory=dict)
    info: Optional[Dict[str, Any]] = None


class AuthResult(BaseModel):
    """Outcome of ``Authenticator.authenticate``: exactly one of error / user is meaningful."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: Optional[Exception] = None
    user: Optional[AuthenticatedUser] = None
    info: Optional[Dict[str, Any]] = None
