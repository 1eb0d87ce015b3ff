"""
Pydantic schemas for network graph endpoints.

Field names go out in camelCase to match the renderer's document format.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from nexus.graph.diagnostics import GraphDiagnostic
from nexus.models import GraphEdge, GraphNode


class NetworkResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DiagnosticEntry(NetworkResponseModel):
    """Non-fatal problem found while building the graph"""

    kind: str  # 'partial_fetch', 'malformed_record', 'ghost_connection', 'self_connection'
    message: str
    subject_id: str | None = None

    @classmethod
    def from_diagnostic(cls, diagnostic: GraphDiagnostic) -> DiagnosticEntry:
        return cls(kind=diagnostic.kind.value, message=diagnostic.message, subject_id=diagnostic.subject_id)


class NetworkGraphResponse(NetworkResponseModel):
    """Owner's scored network graph"""

    owner_id: str
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    diagnostics: list[DiagnosticEntry] = []
    metrics: dict[str, float] = {}
