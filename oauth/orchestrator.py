"""
OAuthOrchestrator — bridges the authenticator, the connector registry and
the pipe store.

``initiate`` starts the authorization redirect for a data pipe;
``auth_callback`` finishes it, lets the pipe's connector post-process the
authenticated user and hands the updated pipe back to the caller.  Every
failure is raised as an ``OAuthFlowError`` subclass; ``api.errors`` turns
those into HTTP responses.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from starlette.requests import Request
from starlette.responses import Response

from connectors.registry import ConnectorRegistry
from database.pipes import PipeStore
from oauth.authenticator import Authenticator
from oauth.exceptions import (
    AuthenticationFailed,
    ConnectorException,
    ConnectorNotFound,
    ConnectorPostProcessingError,
    ConnectorPostProcessingFailed,
    EmptyConnectorResult,
    MissingPipelineId,
    UnknownUser,
)
from oauth.state import StateParseResult, encode_state, is_allowed_return_url, parse_state
from oauth.strategy import BaseStrategy
from utils.schemas import PipeConfig

logger = logging.getLogger(__name__)

SESSION_STATE_KEY = "state"


class OAuthOrchestrator:
    def __init__(
        self,
        authenticator: Authenticator,
        connectors: ConnectorRegistry,
        store: PipeStore,
    ) -> None:
        self.authenticator = authenticator
        self.connectors = connectors
        self.store = store

    # ── strategies ──────────────────────────────────────────────────────

    def add_strategy(self, name: str, strategy: BaseStrategy) -> None:
        """Register a configured strategy under a unique name (the pipe id)."""
        self.authenticator.use(name, strategy)

    def remove_strategy(self, name: str) -> bool:
        return self.authenticator.unuse(name)

    def register_pipe(self, pipe: PipeConfig) -> bool:
        """Register the strategy of ``pipe``'s connector. Returns False if no connector handles it."""
        connector = self.connectors.get_connector(pipe)
        if connector is None:
            logger.warning("No connector is available for data pipe configuration %s", pipe.id)
            return False
        self.add_strategy(pipe.id, connector.build_strategy(pipe))
        return True

    # ── step 1: authorization ───────────────────────────────────────────

    async def initiate(self, request: Request, pipe_id: str, url: Optional[str] = None) -> Response:
        """Start OAuth authorization for ``pipe_id``; returns the provider redirect."""
        logger.debug("Starting OAuth authorization process for data pipe configuration %s", pipe_id)

        if url and not is_allowed_return_url(url):
            logger.warning("Ignoring return URL %s for pipe %s: host not allowed", url, pipe_id)
            url = None

        state = encode_state(pipe_id, url)
        request.session[SESSION_STATE_KEY] = state

        try:
            connector = await self.connectors.get_connector_for_pipe_id(pipe_id, self.store)
        except ConnectorNotFound:
            logger.error("OAuth authorization - no connector is available for data pipe configuration %s", pipe_id)
            raise

        options: Dict[str, Any] = dict(connector.get_authorization_params())
        options["state"] = state
        logger.debug("Authorization options for pipe %s: %s", pipe_id, sorted(options))

        return self.authenticator.authorize(pipe_id, request, options)

    # ── step 2: callback ────────────────────────────────────────────────

    @staticmethod
    def read_state(request: Request) -> StateParseResult:
        """State from the ``state`` query parameter, falling back to the session."""
        raw_state = request.query_params.get("state") or request.session.get(SESSION_STATE_KEY)
        return parse_state(raw_state)

    async def auth_callback(self, request: Request) -> PipeConfig:
        """
        Complete OAuth for the pipe named in the request's state and return
        the pipe configuration as updated by its connector.
        """
        logger.info("Starting OAuth callback processing.")

        parsed = self.read_state(request)
        if not parsed.ok:
            logger.error("OAuth callback - data pipe configuration id is missing (%s)", parsed.error)
            raise MissingPipelineId("OAuth callback - data pipe configuration id is missing.")
        pipe_id = parsed.pipe_id

        result = await self.authenticator.authenticate(pipe_id, request, {"pipe_id": pipe_id})

        if result.user is not None:
            logger.debug("OAuth callback - user profile: %s", result.user.profile)
        if result.info:
            logger.debug("OAuth callback - info: %s", result.info)

        if result.error is not None:
            status_code = getattr(result.error, "status_code", 401)
            logger.error("OAuth callback - authentication processing failed for pipe %s: %r", pipe_id, result.error)
            raise AuthenticationFailed(f"Authentication failed with error {status_code}", pipe_id=pipe_id)

        if result.user is None:
            logger.error("OAuth callback - no user profile was returned for pipe %s.", pipe_id)
            raise UnknownUser("The user is not known to the data source.", pipe_id=pipe_id)

        user = result.user
        if result.info:
            user.info = result.info

        pipe = await self.store.get_pipe(pipe_id)

        connector = self.connectors.get_connector(pipe)
        if connector is None:
            logger.error("OAuth callback - no connector is available for data pipe configuration %s.", pipe_id)
            raise ConnectorNotFound(
                f"Unable to find connector for data pipe configuration {pipe_id}",
                pipe_id=pipe_id,
            )
        connector_id = connector.connector_id

        try:
            updated = await connector.auth_callback_post_processing(user, pipe, result.info)
        except ConnectorPostProcessingError as exc:
            message = (
                f"The {connector_id} connector encountered a fatal error during OAuth "
                f"post-processing for data pipe configuration {pipe_id}: {exc}"
            )
            logger.error(message)
            raise ConnectorPostProcessingFailed(message, pipe_id=pipe_id, connector_id=connector_id) from exc
        except Exception as exc:
            message = (
                f"The {connector_id} connector caused a fatal error ({type(exc).__name__}) during "
                f"OAuth post-processing for data pipe configuration {pipe_id}: {exc}"
            )
            logger.exception(message)
            raise ConnectorException(message, pipe_id=pipe_id, connector_id=connector_id) from exc

        if updated is None:
            message = (
                f"The {connector_id} connector caused a fatal error during OAuth post-processing "
                f"for data pipe configuration {pipe_id}: no results were returned."
            )
            logger.error(message)
            raise EmptyConnectorResult(message, pipe_id=pipe_id, connector_id=connector_id)

        logger.info(
            "The %s connector completed OAuth post-processing for data pipe configuration %s",
            connector_id,
            pipe_id,
        )
        return updated
