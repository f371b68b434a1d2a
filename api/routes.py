"""
Pipe management routes — list connectors, create / read / delete pipes.

Route prefix: /api/v1
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_orchestrator
from oauth.orchestrator import OAuthOrchestrator
from utils.schemas import PipeConfig, PipeCreateRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pipes"])


@router.get("/connectors")
async def list_connectors(
    orchestrator: OAuthOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, str]]:
    return orchestrator.connectors.list_connectors()


@router.post("/pipes", status_code=status.HTTP_201_CREATED)
async def create_pipe(
    body: PipeCreateRequest,
    orchestrator: OAuthOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Create a pipe and register the OAuth strategy of its connector."""
    if orchestrator.connectors.get(body.connector_id) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown connector '{body.connector_id}'",
        )

    pipe = PipeConfig(
        id=body.id or uuid.uuid4().hex,
        name=body.name,
        connector_id=body.connector_id,
        client_id=body.client_id,
        client_secret=body.client_secret,
    )
    await orchestrator.store.save_pipe(pipe)
    orchestrator.register_pipe(pipe)
    return pipe.public_dict()


@router.get("/pipes/{pipe_id}")
async def get_pipe(
    pipe_id: str,
    orchestrator: OAuthOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    pipe = await orchestrator.store.get_pipe(pipe_id)
    return pipe.public_dict()


@router.delete("/pipes/{pipe_id}")
async def delete_pipe(
    pipe_id: str,
    orchestrator: OAuthOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Delete a pipe and forget its OAuth strategy."""
    deleted = await orchestrator.store.delete_pipe(pipe_id)
    if not deleted:
        raise HTTPException(404, "Pipe not found")
    orchestrator.remove_strategy(pipe_id)
    return {"status": "deleted", "pipe_id": pipe_id}
