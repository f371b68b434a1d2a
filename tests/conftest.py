"""
Shared fakes for the OAuth flow tests.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlencode

import pytest
from starlette.requests import Request

from connectors.base import BaseConnector
from connectors.registry import ConnectorRegistry
from oauth.authenticator import Authenticator
from oauth.exceptions import PipeLookupError
from oauth.orchestrator import OAuthOrchestrator
from oauth.strategy import BaseStrategy, OAuth2Strategy
from utils.schemas import AuthenticatedUser, AuthResult, PipeConfig


def make_request(query: str = "", session: Optional[dict] = None) -> Request:
    """Starlette request with a session, as SessionMiddleware would provide."""
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/auth/callback",
        "query_string": query.encode(),
        "headers": [],
        "session": {} if session is None else session,
    }
    return Request(scope)


class FakeStore:
    def __init__(self, *pipes: PipeConfig) -> None:
        self.pipes: Dict[str, PipeConfig] = {p.id: p for p in pipes}
        self.saved: List[PipeConfig] = []
        self.lookups: List[str] = []

    async def get_pipe(self, pipe_id: str) -> PipeConfig:
        self.lookups.append(pipe_id)
        if pipe_id not in self.pipes:
            raise PipeLookupError(f"Data pipe configuration {pipe_id} not found", pipe_id=pipe_id)
        return self.pipes[pipe_id]

    async def save_pipe(self, pipe: PipeConfig) -> PipeConfig:
        self.pipes[pipe.id] = pipe
        self.saved.append(pipe)
        return pipe

    async def list_pipes(self) -> List[PipeConfig]:
        return list(self.pipes.values())

    async def delete_pipe(self, pipe_id: str) -> bool:
        return self.pipes.pop(pipe_id, None) is not None


class FakeStrategy(BaseStrategy):
    def __init__(self, result: Optional[AuthResult] = None) -> None:
        self.result = result or AuthResult(user=AuthenticatedUser(access_token="tok"))
        self.calls: List[Dict[str, Any]] = []

    def authorization_url(self, request, options):
        return "https://provider.test/authorize?" + urlencode(options)

    async def authenticate(self, request, options):
        self.calls.append(options)
        return self.result


class FakeConnector(BaseConnector):
    """Connector whose post-processing is supplied by the test."""

    def __init__(
        self,
        post_processing: Optional[Callable[..., Awaitable[Optional[PipeConfig]]]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.post_processing = post_processing
        self._params = params or {}
        self.calls: List[tuple] = []

    @property
    def connector_id(self) -> str:
        return "fake"

    @property
    def display_name(self) -> str:
        return "Fake"

    def build_strategy(self, pipe: PipeConfig) -> OAuth2Strategy:
        return OAuth2Strategy(
            client_id=pipe.client_id,
            client_secret=pipe.client_secret,
            authorize_url="https://provider.test/authorize",
            token_url="https://provider.test/token",
            callback_url="http://testserver/auth/callback",
        )

    def get_authorization_params(self) -> Dict[str, Any]:
        return dict(self._params)

    async def auth_callback_post_processing(self, user, pipe, info=None):
        self.calls.append((user, pipe, info))
        if self.post_processing is None:
            return self.store_tokens(user, pipe)
        return await self.post_processing(user, pipe, info)


@pytest.fixture
def registry():
    ConnectorRegistry.reset()
    reg = ConnectorRegistry()
    yield reg
    ConnectorRegistry.reset()


@pytest.fixture
def fake_pipe() -> PipeConfig:
    return PipeConfig(id="pipe-1", name="Fake pipe", connector_id="fake", client_id="cid", client_secret="secret")


def build_orchestrator(registry, store, connector=None, strategy=None):
    if connector is not None:
        registry.register(connector)
    orch = OAuthOrchestrator(Authenticator(), registry, store)
    if strategy is not None:
        orch.add_strategy("pipe-1", strategy)
    return orch
