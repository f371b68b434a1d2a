"""
Data pipe OAuth service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from api.errors import register_exception_handlers
from api.middleware import register_middleware
from api.passport import router as passport_router
from api.routes import router as api_router
from config.settings import config
from connectors.registry import ConnectorRegistry
from database.pipes import PipeStore
from oauth.authenticator import Authenticator
from oauth.orchestrator import OAuthOrchestrator

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def build_orchestrator() -> OAuthOrchestrator:
    registry = ConnectorRegistry()
    registry.discover()
    return OAuthOrchestrator(Authenticator(), registry, PipeStore())


async def register_stored_pipes(orchestrator: OAuthOrchestrator) -> int:
    """Register an OAuth strategy for every stored pipe. Returns how many were registered."""
    pipes = await orchestrator.store.list_pipes()
    return sum(1 for pipe in pipes if orchestrator.register_pipe(pipe))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Registering OAuth strategies for stored pipes…")
    try:
        count = await register_stored_pipes(app.state.orchestrator)
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Could not load stored pipes, no strategies registered: %s", exc)
    else:
        logger.info("Registered %d OAuth strategies", count)

    logger.info("Application ready to accept requests.")
    yield


def create_app(orchestrator: Optional[OAuthOrchestrator] = None) -> FastAPI:
    app = FastAPI(
        title="Data Pipe OAuth Service",
        version="1.0.0",
        description="OAuth authorization for data pipe connectors.",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator or build_orchestrator()

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SessionMiddleware, secret_key=config.session_secret, same_site="lax")

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(passport_router)
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
