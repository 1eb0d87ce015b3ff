"""
Structured diagnostics channel for graph builds.

Nothing the engine finds wrong with its input is fatal. Every drop or
degraded slice is recorded here (and logged at WARNING with structured
fields), then returned to the caller alongside the graph.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    PARTIAL_FETCH = "partial_fetch"  # a read slice failed; continued empty
    MALFORMED_RECORD = "malformed_record"  # row without account id or usable name, or invalid row
    GHOST_CONNECTION = "ghost_connection"  # accepted connection with no contact backing
    SELF_CONNECTION = "self_connection"  # connection whose two sides are the same account


@dataclass(frozen=True)
class GraphDiagnostic:
    kind: DiagnosticKind
    message: str
    subject_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass
class Diagnostics:
    """Collector scoped to a single build."""

    owner_id: str | None = None
    entries: list[GraphDiagnostic] = field(default_factory=list)

    def report(self, kind: DiagnosticKind, message: str, subject_id: str | None = None) -> GraphDiagnostic:
        entry = GraphDiagnostic(kind=kind, message=message, subject_id=subject_id)
        self.entries.append(entry)
        logger.warning(
            message,
            extra={"diagnostic_kind": kind.value, "subject_id": subject_id, "owner_id": self.owner_id},
        )
        return entry

    def of_kind(self, kind: DiagnosticKind) -> list[GraphDiagnostic]:
        return [e for e in self.entries if e.kind == kind]

    def counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in self.entries:
            counts[entry.kind.value] = counts.get(entry.kind.value, 0) + 1
        return counts

    def __len__(self) -> int:
        return len(self.entries)
