"""
Nexus - Core relationship graph logic for the personal network view.

This package contains:
- models: Domain records (Profile, Contact, Connection, ActivityRecord) and graph output
- graph: Identity resolution, privacy filtering, assembly and scoring of the network graph
- logging_config: Unified logging format
"""

from nexus.models import (
    ActivityRecord,
    Connection,
    Contact,
    GraphEdge,
    GraphNode,
    GraphSnapshot,
    NetworkGraph,
    NodeCategory,
    Profile,
)

__all__ = [
    "ActivityRecord",
    "Connection",
    "Contact",
    "GraphEdge",
    "GraphNode",
    "GraphSnapshot",
    "NetworkGraph",
    "NodeCategory",
    "Profile",
]
