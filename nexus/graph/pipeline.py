"""
Network graph build pipeline.

    verify_connections -> resolve_identities -> assemble_graph -> score_graph -> to_network_graph

Each stage is a plain function over explicit inputs; all dedup bookkeeping
lives in objects created for one build and dropped afterwards, so builds
for different requests never share state. The build is a pure function of
the snapshot and the jitter source.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

import networkx as nx

from nexus.errors import BuildCancelledError
from nexus.models import GraphEdge, GraphNode, GraphSnapshot, NetworkGraph, NodeCategory

from .activity import aggregate_activity
from .assembler import SELF_NODE_ID, GraphAssembler
from .consistency import ConsistencyGuard, VerifiedConnection
from .diagnostics import Diagnostics
from .identity import Identity, IdentityResolver, PersonRecord, PersonSource
from .privacy import PrivacyFilter
from .scoring import DEFAULT_SCORING, EdgeJitter, JitterSource, RelationshipScorer, ScoringConfig

logger = logging.getLogger(__name__)

SELF_FALLBACK_LABEL = "You"
MUTUAL_FALLBACK_NAME = "Connected User"
CONTACT_FALLBACK_NAME = "Unknown"


class CancelToken:
    """Cooperative cancellation flag, safe to set from another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise BuildCancelledError("Network graph build was cancelled")


@dataclass
class BuildResult:
    graph: NetworkGraph
    diagnostics: Diagnostics
    metrics: dict[str, float] = field(default_factory=dict)


def verify_connections(snapshot: GraphSnapshot, diagnostics: Diagnostics) -> list[VerifiedConnection]:
    return ConsistencyGuard(diagnostics).verify(
        snapshot.owner_id,
        snapshot.connections,
        snapshot.owned_contacts,
        snapshot.connected_contacts,
    )


def resolve_identities(snapshot: GraphSnapshot, diagnostics: Diagnostics) -> IdentityResolver:
    """Create the build's resolver with the owner registered as the self node."""
    resolver = IdentityResolver(diagnostics)
    if snapshot.owner_profile is not None:
        owner = PersonRecord.from_profile(snapshot.owner_profile, PersonSource.OWNER)
    else:
        owner = PersonRecord(source=PersonSource.OWNER, linked_account_id=snapshot.owner_id)
    resolver.resolve(owner, SELF_NODE_ID)
    return resolver


def assemble_graph(
    snapshot: GraphSnapshot,
    connections: list[VerifiedConnection],
    resolver: IdentityResolver,
) -> nx.Graph:
    assembler = GraphAssembler(
        resolver=resolver,
        privacy=PrivacyFilter(snapshot.profiles),
        activity=aggregate_activity(snapshot.activities),
    )
    return assembler.assemble(snapshot, connections)


def score_graph(
    graph: nx.Graph,
    snapshot: GraphSnapshot,
    config: ScoringConfig | None = None,
    jitter: JitterSource | None = None,
) -> nx.Graph:
    return RelationshipScorer(config, jitter).score_graph(graph, snapshot.as_of)


def _short_name(name: str) -> str:
    parts = name.split()
    return parts[-1] if len(parts) > 1 else name


def node_label(category: NodeCategory, identity: Identity) -> str:
    """Label shown on the node.

    Second-degree people are labelled by role/title only, never by name.
    """
    if category == NodeCategory.SECOND_DEGREE:
        return identity.role or ""
    if category == NodeCategory.SELF:
        return _short_name(identity.display_name) if identity.display_name else SELF_FALLBACK_LABEL
    fallback = MUTUAL_FALLBACK_NAME if category == NodeCategory.MUTUAL_USER else CONTACT_FALLBACK_NAME
    return _short_name(identity.display_name or fallback)


def _search_text(category: NodeCategory, identity: Identity) -> str:
    if category == NodeCategory.SECOND_DEGREE:
        parts = [identity.role]
    else:
        parts = [
            identity.display_name,
            identity.relationship_type,
            identity.organization,
            identity.role,
            identity.location,
        ]
    return " ".join(p for p in parts if p).lower()


def to_network_graph(graph: nx.Graph) -> NetworkGraph:
    """Export a scored graph as the immutable renderer document."""
    nodes = []
    for node_id, data in graph.nodes(data=True):
        category: NodeCategory = data["category"]
        identity: Identity = data["identity"]
        exposed = category != NodeCategory.SECOND_DEGREE
        nodes.append(
            GraphNode(
                id=node_id,
                label=node_label(category, identity),
                category=category,
                connection_count=data["connection_count"],
                radius=data["radius"],
                recency=data["recency"],
                relationship_type=identity.relationship_type if exposed else None,
                organization=identity.organization if exposed else None,
                role=identity.role,
                profile_id=identity.public_account_id if exposed else None,
                contact_id=identity.owned_contact_ids[0] if identity.owned_contact_ids else None,
                search_text=_search_text(category, identity),
            )
        )

    edges = [
        GraphEdge(
            source=data["source"],
            target=data["target"],
            distance=data["distance"],
            thickness=data["thickness"],
            recency_intensity=data["recency_intensity"],
            is_mutual=data["is_mutual"],
            is_second_degree=data["is_second_degree"],
            is_cross_link=data["is_cross_link"],
            is_linked_user=data["is_linked_user"],
        )
        for _, _, data in sorted(graph.edges(data=True), key=lambda e: e[2]["order"])
    ]
    return NetworkGraph(nodes=nodes, edges=edges)


def graph_metrics(graph: nx.Graph) -> dict[str, float]:
    metrics: dict[str, float] = {
        "node_count": graph.number_of_nodes(),
        "edge_count": graph.number_of_edges(),
        "density": nx.density(graph),
        "number_of_components": nx.number_connected_components(graph) if graph.number_of_nodes() else 0,
        "cross_link_count": sum(1 for _, _, d in graph.edges(data=True) if d["is_cross_link"]),
    }
    for category in NodeCategory:
        metrics[f"{category.value}_count"] = sum(1 for _, d in graph.nodes(data=True) if d["category"] == category)
    return metrics


def build_network_graph(
    snapshot: GraphSnapshot,
    *,
    config: ScoringConfig | None = None,
    jitter: JitterSource | None = None,
    diagnostics: Diagnostics | None = None,
    cancel: CancelToken | None = None,
) -> BuildResult:
    """Build the scored network graph for one snapshot.

    Raises:
        BuildCancelledError: if ``cancel`` is set; no partial graph is returned
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics(owner_id=snapshot.owner_id)
    cancel = cancel or CancelToken()
    config = config or DEFAULT_SCORING
    jitter = jitter or EdgeJitter()

    cancel.raise_if_cancelled()
    connections = verify_connections(snapshot, diagnostics)
    resolver = resolve_identities(snapshot, diagnostics)

    cancel.raise_if_cancelled()
    graph = assemble_graph(snapshot, connections, resolver)

    cancel.raise_if_cancelled()
    score_graph(graph, snapshot, config, jitter)

    cancel.raise_if_cancelled()
    network = to_network_graph(graph)
    if diagnostics.entries:
        logger.info(f"Network for {snapshot.owner_id} built with {len(diagnostics)} diagnostics: {diagnostics.counts()}")
    return BuildResult(graph=network, diagnostics=diagnostics, metrics=graph_metrics(graph))
