"""
Unit tests for the snapshot fetcher service.

PocketBase is mocked per collection; records are plain attribute objects
like the SDK's Record.
"""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, patch

import pytest
from conftest import OWNER_ID, create_mock_pocketbase

from api.services.snapshot_fetcher import (
    BATCH_SIZE,
    candidate_mutual_ids,
    fetch_profiles,
    fetch_snapshot,
    is_valid_record_id,
)
from nexus.graph.diagnostics import DiagnosticKind, Diagnostics
from nexus.models import Connection


def record(**fields):
    return SimpleNamespace(**fields)


def run_inline():
    return patch(
        "api.services.snapshot_fetcher.asyncio.to_thread",
        new=AsyncMock(side_effect=lambda f, **kw: f(**kw)),
    )


@pytest.fixture
def pb():
    """Owner with one accepted connection (bob) and one note."""
    client = create_mock_pocketbase()

    def profiles(query_params=None):
        filter_str = query_params["filter"]
        rows = {
            OWNER_ID: record(id=OWNER_ID, full_name="Olivia Owner", headline="Founder"),
            "bob": record(id="bob", full_name="Bob Brown", anonymous_beyond_first_degree=False),
            "dave": record(id="dave", full_name="Dave Doe", anonymous_beyond_first_degree=True),
        }
        return [row for pid, row in rows.items() if f'id = "{pid}"' in filter_str]

    def contacts(query_params=None):
        filter_str = query_params["filter"]
        if filter_str == f'owner_id = "{OWNER_ID}"':
            return [
                record(id="c-bob", owner_id=OWNER_ID, full_name="Bob Brown", linked_profile_id="bob"),
                record(id="c-ann", owner_id=OWNER_ID, full_name="Ann Lee", linked_profile_id=""),
            ]
        if 'owner_id = "bob"' in filter_str:
            return [record(id="b-dave", owner_id="bob", full_name="Dave Doe", linked_profile_id="dave")]
        return []

    client.collection("profiles").get_full_list.side_effect = profiles
    client.collection("contacts").get_full_list.side_effect = contacts
    client.collection("connections").get_full_list.return_value = [
        record(id="k1", inviter_id=OWNER_ID, invitee_id="bob", status="accepted"),
    ]
    client.collection("contact_notes").get_full_list.return_value = [
        record(id="n1", contact_id="c-ann", entry_date="2026-05-01"),
    ]
    return client


class TestFetchSnapshot:
    """Tests for fetch_snapshot."""

    @pytest.mark.asyncio
    async def test_loads_every_slice(self, pb):
        with run_inline():
            snapshot = await fetch_snapshot(OWNER_ID, pb)

        assert snapshot.owner_profile.full_name == "Olivia Owner"
        assert [c.id for c in snapshot.owned_contacts] == ["c-bob", "c-ann"]
        assert snapshot.owned_contacts[1].linked_profile_id is None
        assert [c.id for c in snapshot.connections] == ["k1"]
        assert [a.contact_id for a in snapshot.activities] == ["c-ann"]
        assert [c.id for c in snapshot.connected_contacts] == ["b-dave"]
        assert set(snapshot.profiles) == {"bob", "dave"}
        assert snapshot.profiles["dave"].anonymous_beyond_first_degree is True

    @pytest.mark.asyncio
    async def test_connected_contacts_use_privileged_client(self, pb):
        privileged = create_mock_pocketbase()
        privileged.collection("contacts").get_full_list.return_value = [
            record(id="b-erin", owner_id="bob", full_name="Erin"),
        ]

        with run_inline():
            snapshot = await fetch_snapshot(OWNER_ID, pb, privileged_client=privileged)

        assert [c.id for c in snapshot.connected_contacts] == ["b-erin"]
        query = privileged.collection("contacts").get_full_list.call_args.kwargs["query_params"]
        assert query["filter"] == 'owner_id = "bob"'

    @pytest.mark.asyncio
    async def test_failed_slice_continues_empty(self, pb):
        pb.collection("contact_notes").get_full_list.side_effect = RuntimeError("connection reset")
        diagnostics = Diagnostics(owner_id=OWNER_ID)

        with run_inline():
            snapshot = await fetch_snapshot(OWNER_ID, pb, diagnostics=diagnostics)

        assert snapshot.activities == []
        assert len(snapshot.owned_contacts) == 2
        [entry] = diagnostics.of_kind(DiagnosticKind.PARTIAL_FETCH)
        assert entry.subject_id == "activity"
        assert "connection reset" in entry.message

    @pytest.mark.asyncio
    async def test_malformed_rows_dropped(self, pb):
        pb.collection("connections").get_full_list.return_value = [
            record(id="k1", inviter_id=OWNER_ID, invitee_id="bob", status="accepted"),
            record(id="k2", status="accepted"),
        ]
        diagnostics = Diagnostics(owner_id=OWNER_ID)

        with run_inline():
            snapshot = await fetch_snapshot(OWNER_ID, pb, diagnostics=diagnostics)

        assert [c.id for c in snapshot.connections] == ["k1"]
        [entry] = diagnostics.of_kind(DiagnosticKind.MALFORMED_RECORD)
        assert entry.subject_id == "k2"

    @pytest.mark.asyncio
    async def test_invalid_owner_id_rejected(self, pb):
        with pytest.raises(ValueError):
            await fetch_snapshot('x" || id != "', pb)

    @pytest.mark.asyncio
    async def test_as_of_is_passed_through(self, pb):
        with run_inline():
            snapshot = await fetch_snapshot(OWNER_ID, pb, as_of=datetime(2026, 6, 1, tzinfo=UTC))

        assert snapshot.as_of.isoformat() == "2026-06-01T00:00:00+00:00"


class TestFetchProfiles:
    @pytest.mark.asyncio
    async def test_batches_large_id_sets(self):
        client = create_mock_pocketbase()
        get_full_list = Mock(return_value=[])
        client.collection("profiles").get_full_list = get_full_list
        ids = [f"p{i}" for i in range(BATCH_SIZE * 2 + 1)]

        with run_inline():
            await fetch_profiles(ids, client, Diagnostics())

        assert get_full_list.call_count == 3

    @pytest.mark.asyncio
    async def test_unsafe_ids_are_not_queried(self):
        client = create_mock_pocketbase()

        with run_inline():
            result = await fetch_profiles(['bad" id', None, ""], client, Diagnostics())

        assert result == {}
        client.collection("profiles").get_full_list.assert_not_called()


class TestHelpers:
    def test_candidate_mutual_ids(self):
        connections = [
            Connection(id="k1", inviter_id=OWNER_ID, invitee_id="bob", status="accepted"),
            Connection(id="k2", inviter_id="bob", invitee_id=OWNER_ID, status="accepted"),
            Connection(id="k3", inviter_id="eve", invitee_id=OWNER_ID, status="accepted"),
            Connection(id="k4", inviter_id=OWNER_ID, invitee_id=OWNER_ID, status="accepted"),
        ]
        assert candidate_mutual_ids(OWNER_ID, connections) == ["bob", "eve"]

    @pytest.mark.parametrize("value, expected", [("abc123", True), ("a_b-c", True), ("", False), ('a"b', False)])
    def test_is_valid_record_id(self, value, expected):
        assert is_valid_record_id(value) is expected
