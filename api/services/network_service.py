"""
Network Service - Fetch a snapshot and build the owner's network graph.

Cancellation flows two ways:
- cancelling the awaiting task cancels in-flight PocketBase reads
- the build itself runs in a worker thread and checks a CancelToken between
  stages, so an abandoned build stops early and its partial graph is dropped
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Protocol, TypeVar

from nexus.errors import BuildCancelledError
from nexus.graph.diagnostics import Diagnostics
from nexus.graph.pipeline import BuildResult, CancelToken, build_network_graph
from nexus.graph.scoring import JitterSource, ScoringConfig
from pocketbase import PocketBase

from .snapshot_fetcher import fetch_snapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 0.25


class DisconnectAware(Protocol):
    async def is_disconnected(self) -> bool: ...


async def build_owner_network(
    owner_id: str,
    pb_client: PocketBase,
    privileged_client: PocketBase | None = None,
    jitter: JitterSource | None = None,
    config: ScoringConfig | None = None,
    cancel: CancelToken | None = None,
) -> BuildResult:
    """Fetch the owner's snapshot and build the scored graph."""
    diagnostics = Diagnostics(owner_id=owner_id)
    cancel = cancel or CancelToken()
    try:
        snapshot = await fetch_snapshot(owner_id, pb_client, privileged_client, diagnostics=diagnostics)
        cancel.raise_if_cancelled()
        return await asyncio.to_thread(
            build_network_graph,
            snapshot,
            config=config,
            jitter=jitter,
            diagnostics=diagnostics,
            cancel=cancel,
        )
    except asyncio.CancelledError:
        cancel.cancel()
        logger.info(f"Network build for {owner_id} cancelled")
        raise


async def run_until_disconnected(
    request: DisconnectAware,
    work: Awaitable[T],
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> T:
    """Await work, cancelling it if the client goes away first.

    Raises:
        BuildCancelledError: the client disconnected before the work finished
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                raise BuildCancelledError("Client disconnected before the network graph was ready")
    finally:
        if not task.done():
            task.cancel()
