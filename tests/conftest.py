"""
Root test configuration and fixtures for the nexus project.

This conftest.py provides common fixtures for all tests:
- A mock PocketBase client shaped like the SDK
- Record factories for profiles, contacts, connections and notes
- Snapshot builders for graph tests

Note: sys.path manipulation is handled here to ensure imports work correctly.
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from nexus.models import (  # noqa: E402
    ActivityRecord,
    Connection,
    Contact,
    GraphSnapshot,
    Profile,
)

OWNER_ID = "owner1"
AS_OF = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def create_mock_pocketbase():
    """Create a mock PocketBase instance with per-collection mocks."""
    mock_pb = Mock()
    collections: dict[str, Mock] = {}

    def collection(name: str) -> Mock:
        if name not in collections:
            mock_collection = Mock()
            mock_collection.get_full_list = Mock(return_value=[])
            mock_collection.auth_with_password = Mock(return_value=True)
            collections[name] = mock_collection
        return collections[name]

    mock_pb.collection = Mock(side_effect=collection)
    mock_pb.collections = collections

    mock_pb.auth_store = Mock()
    mock_pb.auth_store.base_token = "mock-token"

    return mock_pb


def make_profile(profile_id: str, full_name: str = "", **fields: Any) -> Profile:
    return Profile(id=profile_id, full_name=full_name, **fields)


def make_contact(contact_id: str, owner_id: str = OWNER_ID, full_name: str = "", **fields: Any) -> Contact:
    return Contact(id=contact_id, owner_id=owner_id, full_name=full_name, **fields)


def make_connection(
    connection_id: str,
    inviter_id: str,
    invitee_id: str | None,
    status: str = "accepted",
) -> Connection:
    return Connection(id=connection_id, inviter_id=inviter_id, invitee_id=invitee_id, status=status)


def make_note(contact_id: str, entry_date: str | datetime) -> ActivityRecord:
    return ActivityRecord(contact_id=contact_id, entry_date=entry_date)


def make_snapshot(
    owner_profile: Profile | None = None,
    owned_contacts: list[Contact] | None = None,
    connections: list[Connection] | None = None,
    activities: list[ActivityRecord] | None = None,
    profiles: list[Profile] | None = None,
    connected_contacts: list[Contact] | None = None,
    owner_id: str = OWNER_ID,
) -> GraphSnapshot:
    return GraphSnapshot(
        owner_id=owner_id,
        owner_profile=owner_profile if owner_profile is not None else make_profile(owner_id, "Olivia Owner"),
        owned_contacts=owned_contacts or [],
        connections=connections or [],
        activities=activities or [],
        profiles={p.id: p for p in profiles or []},
        connected_contacts=connected_contacts or [],
        as_of=AS_OF,
    )


@pytest.fixture
def mock_pocketbase():
    """Create a mock PocketBase instance for tests that need it."""
    return create_mock_pocketbase()


@pytest.fixture
def owner_profile() -> Profile:
    return make_profile(OWNER_ID, "Olivia Owner", headline="Founder", organization="Acme")


@pytest.fixture
def mutual_world() -> GraphSnapshot:
    """Owner with one connected user (Bob) who knows Carol, an owned contact.

    Owner's contacts: Alice (Family, 3 notes), Bob's card (linked to Bob's account),
    Carol (Work-Friend). Bob's contacts: Carol (same name), Dave (Engineer).
    """
    return make_snapshot(
        owned_contacts=[
            make_contact("c-alice", full_name="Alice Adams", relationship_type="Family"),
            make_contact(
                "c-bob",
                full_name="Bob Brown",
                relationship_type="Close Friend",
                linked_profile_id="bob",
            ),
            make_contact("c-carol", full_name="Carol Clark", relationship_type="Work-Friend", company="Initech"),
        ],
        connections=[make_connection("conn1", OWNER_ID, "bob")],
        activities=[
            make_note("c-alice", "2026-05-30"),
            make_note("c-alice", "2026-05-01"),
            make_note("c-alice", "2026-01-15"),
        ],
        profiles=[make_profile("bob", "Bob Brown", headline="Designer")],
        connected_contacts=[
            make_contact("b-carol", owner_id="bob", full_name="Carol Clark"),
            make_contact("b-dave", owner_id="bob", full_name="Dave Doe", role="Engineer"),
            make_contact("b-owner", owner_id="bob", full_name="Olivia Owner", linked_profile_id=OWNER_ID),
        ],
    )
