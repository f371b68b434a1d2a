"""
Pipe store — load / save / delete data pipe configurations.

This is the single interface the OAuth flow and the management routes use
to reach pipe configurations.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Pipe
from oauth.exceptions import PipeLookupError
from utils.schemas import PipeConfig

logger = logging.getLogger(__name__)

_COLUMN_FIELDS = {"id", "name", "connector_id"}


def _to_config(row: Pipe) -> PipeConfig:
    data: dict[str, Any] = dict(row.payload or {})
    data.update(id=row.pipe_id, name=row.name, connector_id=row.connector_id)
    return PipeConfig.model_validate(data)


class PipeStore:
    """Async access to the ``pipes`` table."""

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None) -> None:
        if session_factory is None:
            from database.session import async_session_factory

            session_factory = async_session_factory
        self._session_factory = session_factory

    async def get_pipe(self, pipe_id: str) -> PipeConfig:
        """
        Return the configuration of pipe ``pipe_id``.

        Raises ``PipeLookupError`` if the pipe does not exist or the
        database cannot be reached.
        """
        try:
            async with self._session_factory() as session:
                row = await session.get(Pipe, pipe_id)
        except SQLAlchemyError as exc:
            logger.error("Retrieval of data pipe configuration %s failed: %s", pipe_id, exc)
            raise PipeLookupError(
                f"Retrieval of data pipe configuration {pipe_id} failed: {exc}",
                pipe_id=pipe_id,
            ) from exc

        if row is None:
            raise PipeLookupError(f"Data pipe configuration {pipe_id} not found", pipe_id=pipe_id)
        return _to_config(row)

    async def save_pipe(self, pipe: PipeConfig) -> PipeConfig:
        """Insert or update ``pipe``."""
        payload = pipe.model_dump(exclude=_COLUMN_FIELDS)
        async with self._session_factory() as session:
            row = await session.get(Pipe, pipe.id)
            if row is None:
                row = Pipe(pipe_id=pipe.id)
                session.add(row)
                logger.info("Created data pipe %s (%s)", pipe.id, pipe.connector_id)
            else:
                logger.info("Updated data pipe %s", pipe.id)
            row.name = pipe.name
            row.connector_id = pipe.connector_id
            row.payload = payload
            await session.commit()
        return pipe

    async def list_pipes(self) -> List[PipeConfig]:
        async with self._session_factory() as session:
            result = await session.execute(select(Pipe).order_by(Pipe.created_at))
            return [_to_config(row) for row in result.scalars().all()]

    async def delete_pipe(self, pipe_id: str) -> bool:
        """Delete pipe ``pipe_id``. Returns False if it did not exist."""
        async with self._session_factory() as session:
            row = await session.get(Pipe, pipe_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
        logger.info("Deleted data pipe %s", pipe_id)
        return True
