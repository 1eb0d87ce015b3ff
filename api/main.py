#!/usr/bin/env python3
"""
Nexus API - backend-for-frontend of the relationship network view.

Serves the scored network graph to the renderer. All data is read from
PocketBase per request; the API keeps no state between builds.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nexus.logging_config import configure_logging, get_logger

from .dependencies import authenticate_pb
from .routers import network
from .settings import get_settings

# 2026-01-06T14:05:52Z [api] LEVEL message
configure_logging(source="api")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Authenticate the shared PocketBase client before serving."""
    if get_settings().skip_pb_auth:
        logger.warning("SKIP_PB_AUTH=true: privileged reads will run without a superuser session")
    else:
        await authenticate_pb()
    yield


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()
    app = FastAPI(title="Nexus API", description="Relationship network graph API", lifespan=lifespan)

    # Read-only API; the renderer only issues GETs
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(network.router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "service": "nexus-api"}

    return app


app = create_app()
