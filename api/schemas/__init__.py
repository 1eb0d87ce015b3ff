"""
Pydantic schemas for the Nexus API.

Re-exports all schemas for convenient importing.
"""

from __future__ import annotations

from .network import DiagnosticEntry, NetworkGraphResponse

__all__ = [
    "DiagnosticEntry",
    "NetworkGraphResponse",
]
