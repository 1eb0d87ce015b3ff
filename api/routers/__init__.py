"""
API Routers - Organized endpoint handlers for the Nexus API.

Each router handles a specific domain:
- network: Owner network graph visualization
"""
