"""
FastAPI dependencies: PocketBase clients and per-request graph helpers.

One process-wide PocketBase client is created at import and authenticated
as a superuser during startup. Superuser requests bypass collection API
rules, which the "contacts owned by my connections" read needs: ordinary
per-row rules only let an account read its own contacts.
"""

from __future__ import annotations

import asyncio
import logging

from nexus.graph.scoring import EdgeJitter
from pocketbase import PocketBase

from .settings import get_settings

logger = logging.getLogger(__name__)

SUPERUSERS_COLLECTION = "_superusers"

_settings = get_settings()
pb_url = _settings.pocketbase_url
pb = PocketBase(pb_url)


async def authenticate_pb() -> None:
    """Log the shared client in as superuser; startup fails if this fails."""
    settings = get_settings()
    try:
        await asyncio.to_thread(
            pb.collection(SUPERUSERS_COLLECTION).auth_with_password,
            settings.pocketbase_admin_email,
            settings.pocketbase_admin_password,
        )
    except Exception as e:
        logger.error(f"PocketBase superuser login as {settings.pocketbase_admin_email} failed: {e}")
        raise
    logger.info(f"Authenticated with PocketBase at {pb_url}")


async def get_pb_client() -> PocketBase:
    """Client for the owner's own reads."""
    return pb


async def get_privileged_pb_client() -> PocketBase:
    """Client for reads that must bypass collection rules.

    Same instance as get_pb_client today; kept separate so the privileged
    read can move to a dedicated, narrower account without touching callers.
    """
    if not pb.auth_store.token:
        logger.warning("Privileged PocketBase read without a superuser session; rules will filter rows")
    return pb


def get_graph_jitter(seed: int | None = None) -> EdgeJitter:
    """Jitter source for one build; ``seed`` overrides GRAPH_RANDOM_SEED."""
    settings = get_settings()
    return EdgeJitter(
        seed=settings.graph_random_seed if seed is None else seed,
        spread=settings.graph_jitter_spread,
    )


__all__ = [
    "pb",
    "pb_url",
    "authenticate_pb",
    "get_graph_jitter",
    "get_pb_client",
    "get_privileged_pb_client",
]
