"""
Network Router - Endpoint for the owner's relationship network graph.

This router handles:
- Building the scored network graph for one owner on request
- Returning non-fatal build diagnostics alongside the graph
- Abandoning the build when the client disconnects
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from pocketbase import PocketBase

from nexus.errors import BuildCancelledError

from ..dependencies import get_graph_jitter, get_pb_client, get_privileged_pb_client
from ..schemas import DiagnosticEntry, NetworkGraphResponse
from ..services.network_service import build_owner_network, run_until_disconnected
from ..settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["network"])

# Non-standard "client closed request" status
CLIENT_CLOSED_REQUEST = 499


@router.get("/api/network/{owner_id}", response_model=NetworkGraphResponse, response_model_by_alias=True)
async def get_owner_network(
    request: Request,
    owner_id: Annotated[str, Path(description="Owner profile ID", pattern=r"^[A-Za-z0-9_-]{1,64}$")],
    pb_client: Annotated[PocketBase, Depends(get_pb_client)],
    privileged_client: Annotated[PocketBase, Depends(get_privileged_pb_client)],
    seed: Annotated[int | None, Query(description="Jitter seed (defaults to GRAPH_RANDOM_SEED)")] = None,
) -> NetworkGraphResponse:
    """Build the network graph for an owner.

    Args:
        owner_id: PocketBase profile ID of the owner
        seed: Override for the edge-distance jitter seed

    Returns:
        Nodes, edges, diagnostics and summary metrics
    """
    try:
        logger.info(f"Building network graph for {owner_id}")
        result = await run_until_disconnected(
            request,
            build_owner_network(
                owner_id,
                pb_client,
                privileged_client,
                jitter=get_graph_jitter(seed),
            ),
            poll_interval=get_settings().disconnect_poll_seconds,
        )

        return NetworkGraphResponse(
            owner_id=owner_id,
            nodes=list(result.graph.nodes),
            edges=list(result.graph.edges),
            diagnostics=[DiagnosticEntry.from_diagnostic(d) for d in result.diagnostics.entries],
            metrics=result.metrics,
        )

    except BuildCancelledError as e:
        logger.info(f"Network graph for {owner_id} abandoned: {e}")
        raise HTTPException(status_code=CLIENT_CLOSED_REQUEST, detail=str(e))
    except ValueError as e:
        logger.warning(f"Rejected network graph request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error building network graph: {e}")
        raise HTTPException(status_code=500, detail=str(e))
