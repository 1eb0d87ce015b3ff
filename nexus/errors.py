"""Graph build error classes.

Only conditions that must stop a build are exceptions. Dropped records,
ghost connections and failed read slices are reported through
``nexus.graph.diagnostics`` instead and never reach the caller as errors.
"""

from __future__ import annotations


class GraphBuildError(Exception):
    """Base exception for network graph builds."""

    pass


class SnapshotFetchError(GraphBuildError):
    """Raised when one read slice of the snapshot cannot be loaded.

    The fetcher catches this per slice and continues with that slice empty.
    """

    def __init__(self, slice_name: str, message: str):
        self.slice_name = slice_name
        super().__init__(f"{slice_name}: {message}")


class BuildCancelledError(GraphBuildError):
    """Raised when a build is abandoned by its caller; no partial graph is returned."""

    pass
