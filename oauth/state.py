"""
OAuth state token — carries the data pipe id and return URL through the
provider's authorization step.

Wire form: ``urlsafe_b64(json) + "." + hmac_sha256(json)[:16]``.
The secret is loaded from ``config.oauth_state_secret`` (env var:
``OAUTH_STATE_SECRET``).  ``parse_state`` never raises; callers inspect the
returned ``StateParseResult``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import List, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, ValidationError

from config.settings import config

STATE_VERSION = 1


class OAuthState(BaseModel):
    v: int = STATE_VERSION
    pipe: str = Field(..., min_length=1)
    url: Optional[str] = None
    exp: int = 0


class StateParseResult(BaseModel):
    state: Optional[OAuthState] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is not None

    @property
    def pipe_id(self) -> Optional[str]:
        return self.state.pipe if self.state else None


def _sign(raw: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()[:16]


def encode_state(
    pipe_id: str,
    url: Optional[str] = None,
    *,
    secret: Optional[str] = None,
    ttl: Optional[int] = None,
) -> str:
    """Create a signed state string for ``pipe_id`` and the optional return URL."""
    secret = secret or config.oauth_state_secret
    ttl = config.oauth_state_ttl_seconds if ttl is None else ttl
    state = OAuthState(pipe=pipe_id, url=url, exp=int(time.time()) + ttl)
    raw = state.model_dump_json().encode()
    return urlsafe_b64encode(raw).decode() + "." + _sign(raw, secret)


def parse_state(raw_state: Optional[str], *, secret: Optional[str] = None) -> StateParseResult:
    """Verify and decode a state string produced by ``encode_state``."""
    if not raw_state:
        return StateParseResult(error="state is missing")

    secret = secret or config.oauth_state_secret
    parts = raw_state.split(".", 1)
    if len(parts) != 2:
        return StateParseResult(error="bad format")

    try:
        raw = urlsafe_b64decode(parts[0].encode())
    except ValueError:
        return StateParseResult(error="bad encoding")

    # bytes: compare_digest rejects non-ASCII str arguments with TypeError
    if not hmac.compare_digest(parts[1].encode(), _sign(raw, secret).encode()):
        return StateParseResult(error="bad signature")

    try:
        payload = json.loads(raw)
        state = OAuthState.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        return StateParseResult(error=f"bad payload: {exc}")

    if state.v != STATE_VERSION:
        return StateParseResult(error=f"unsupported state version {state.v}")
    if state.exp < time.time():
        return StateParseResult(error="state expired")
    return StateParseResult(state=state)


def is_allowed_return_url(url: Optional[str], allowed_hosts: Optional[List[str]] = None) -> bool:
    """
    True for a same-site relative path (``/pipes/1``) or an http(s) URL whose
    host is listed in ``config.allowed_return_hosts``.
    """
    if not url or "\\" in url:
        return False
    parts = urlsplit(url)
    if not parts.scheme and not parts.netloc:
        return url.startswith("/") and not url.startswith("//")
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return False
    hosts = config.allowed_return_hosts if allowed_hosts is None else allowed_hosts
    return parts.hostname.lower() in {h.lower() for h in hosts}
