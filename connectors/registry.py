"""
ConnectorRegistry — discovers and provides access to all connectors.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from connectors.base import BaseConnector
from connectors.github import GitHubConnector
from connectors.google_sheets import GoogleSheetsConnector
from oauth.exceptions import ConnectorNotFound
from utils.schemas import PipeConfig

if TYPE_CHECKING:
    from database.pipes import PipeStore

logger = logging.getLogger(__name__)

# ── All known connectors — add new ones here ─────────────────────────────

_ALL_CONNECTORS: List[BaseConnector] = [
    GitHubConnector(),
    GoogleSheetsConnector(),
]


class ConnectorRegistry:
    """Singleton registry for all data source connectors."""

    _instance: Optional["ConnectorRegistry"] = None

    def __new__(cls) -> "ConnectorRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._connectors = {}
            cls._instance._discovered = False
        return cls._instance

    def discover(self) -> None:
        """Register all built-in connectors."""
        if self._discovered:
            return
        for conn in _ALL_CONNECTORS:
            self.register(conn)
        self._discovered = True

    def register(self, connector: BaseConnector) -> None:
        self._connectors[connector.connector_id] = connector
        logger.info(
            "Connector registered: %s (%s)",
            connector.display_name,
            connector.connector_id,
        )

    def get(self, connector_id: str) -> Optional[BaseConnector]:
        """Get a connector by id."""
        return self._connectors.get(connector_id)

    def get_connector(self, pipe: PipeConfig) -> Optional[BaseConnector]:
        """Return the connector responsible for ``pipe``, or None."""
        connector = self._connectors.get(pipe.connector_id)
        if connector is not None and connector.handles(pipe):
            return connector
        for candidate in self._connectors.values():
            if candidate.handles(pipe):
                return candidate
        return None

    async def get_connector_for_pipe_id(self, pipe_id: str, store: "PipeStore") -> BaseConnector:
        """
        Load pipe ``pipe_id`` and return its connector.

        Raises
        ------
        PipeLookupError   – the pipe cannot be loaded
        ConnectorNotFound – no connector handles the pipe
        """
        pipe = await store.get_pipe(pipe_id)
        connector = self.get_connector(pipe)
        if connector is None:
            raise ConnectorNotFound(
                f"Unable to find connector for data pipe configuration {pipe_id}",
                pipe_id=pipe_id,
            )
        return connector

    def list_connectors(self) -> List[Dict[str, str]]:
        """Return info about all registered connectors."""
        return [
            {"connector_id": c.connector_id, "display_name": c.display_name}
            for c in self._connectors.values()
        ]

    # ── reset (for tests) ──────────────────────────────────────────────

    @classmethod
    def reset(cls) -> None:
        """Destroy singleton — only useful in test teardown."""
        cls._instance = None
