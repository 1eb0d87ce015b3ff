"""
API Services - Data access and build orchestration for the Nexus API.

Services encapsulate operations the routers delegate to.
"""

from .network_service import build_owner_network, run_until_disconnected
from .snapshot_fetcher import fetch_snapshot

__all__ = [
    "build_owner_network",
    "fetch_snapshot",
    "run_until_disconnected",
]
