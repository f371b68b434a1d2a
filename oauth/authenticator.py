"""
Authenticator — the authentication middleware.

Holds the named strategies (one per data pipe) and runs the two halves of
the OAuth dance: ``authorize`` redirects to the provider, ``authenticate``
completes the flow from the provider's redirect.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from starlette.requests import Request
from starlette.responses import RedirectResponse

from oauth.exceptions import StrategyNotFound
from oauth.strategy import BaseStrategy
from utils.schemas import AuthResult

logger = logging.getLogger(__name__)


class Authenticator:
    """Thread-safe registry of named strategies."""

    def __init__(self) -> None:
        self._strategies: Dict[str, BaseStrategy] = {}
        self._lock = threading.Lock()

    # ── registry ────────────────────────────────────────────────────────

    def use(self, name: str, strategy: BaseStrategy) -> None:
        """Register ``strategy`` under ``name``, replacing any previous one."""
        with self._lock:
            replaced = name in self._strategies
            self._strategies[name] = strategy
        logger.debug("Strategy %s %s", name, "replaced" if replaced else "registered")

    def unuse(self, name: str) -> bool:
        """Remove the strategy registered under ``name``. Returns False if unknown."""
        with self._lock:
            removed = self._strategies.pop(name, None) is not None
        if removed:
            logger.debug("Strategy %s removed", name)
        return removed

    def get(self, name: str) -> Optional[BaseStrategy]:
        with self._lock:
            return self._strategies.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._strategies.keys())

    def _require(self, name: str) -> BaseStrategy:
        strategy = self.get(name)
        if strategy is None:
            raise StrategyNotFound(f"Unknown authentication strategy '{name}'", pipe_id=name)
        return strategy

    # ── flow ────────────────────────────────────────────────────────────

    def authorize(self, name: str, request: Request, options: Dict[str, Any]) -> RedirectResponse:
        """Redirect to the provider's authorization page using strategy ``name``."""
        strategy = self._require(name)
        url = strategy.authorization_url(request, options)
        return RedirectResponse(url, status_code=302)

    async def authenticate(self, name: str, request: Request, options: Dict[str, Any]) -> AuthResult:
        """Complete authentication from the provider redirect using strategy ``name``."""
        # the reference is taken under the lock; a concurrent unuse() does not affect this call
        strategy = self._require(name)
        return await strategy.authenticate(request, options)
