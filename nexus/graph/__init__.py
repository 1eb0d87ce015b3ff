"""
Network graph components: identity resolution, privacy filtering,
consistency checks, assembly and scoring.
"""

from .activity import ActivityStats, aggregate_activity
from .assembler import SELF_NODE_ID, EdgeKind, GraphAssembler
from .consistency import ConsistencyGuard, VerifiedConnection
from .diagnostics import DiagnosticKind, Diagnostics, GraphDiagnostic
from .identity import IdentityResolver, PersonRecord, PersonSource
from .pipeline import BuildResult, CancelToken, build_network_graph
from .privacy import PrivacyFilter
from .scoring import EdgeJitter, NoJitter, RelationshipScorer, ScoringConfig

__all__ = [
    "SELF_NODE_ID",
    "ActivityStats",
    "BuildResult",
    "CancelToken",
    "ConsistencyGuard",
    "DiagnosticKind",
    "Diagnostics",
    "EdgeJitter",
    "EdgeKind",
    "GraphAssembler",
    "GraphDiagnostic",
    "IdentityResolver",
    "NoJitter",
    "PersonRecord",
    "PersonSource",
    "PrivacyFilter",
    "RelationshipScorer",
    "ScoringConfig",
    "VerifiedConnection",
    "aggregate_activity",
    "build_network_graph",
]
