"""Tests for record parsing and the output document models."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError

from nexus.models import ActivityRecord, Connection, Contact, GraphEdge, Profile, parse_timestamp


class TestParseTimestamp:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2026-03-01", datetime(2026, 3, 1, tzinfo=UTC)),
            ("2026-03-01 10:00:00.000Z", datetime(2026, 3, 1, 10, tzinfo=UTC)),
            ("2026-03-01T10:00:00+02:00", datetime(2026, 3, 1, 8, tzinfo=UTC)),
            (date(2026, 3, 1), datetime(2026, 3, 1, tzinfo=UTC)),
            (datetime(2026, 3, 1, 10), datetime(2026, 3, 1, 10, tzinfo=UTC)),
        ],
    )
    def test_normalizes_to_utc(self, value, expected):
        assert parse_timestamp(value) == expected

    @pytest.mark.parametrize("value", [None, ""])
    def test_blank_is_none(self, value):
        assert parse_timestamp(value) is None

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_timestamp("last tuesday")


class TestRecordModels:
    def test_pocketbase_blanks(self):
        contact = Contact.model_validate(
            {
                "id": "c1",
                "owner_id": "o1",
                "full_name": None,
                "linked_profile_id": "",
                "relationship_type": "",
                "last_contact_date": "",
                "anonymous_to_connections": None,
                "collectionName": "contacts",
            }
        )

        assert contact.full_name == ""
        assert contact.linked_profile_id is None
        assert contact.relationship_type is None
        assert contact.last_contact_date is None
        assert contact.anonymous_to_connections is False

    def test_profile_null_flag(self):
        assert Profile(id="p1", anonymous_beyond_first_degree=None).anonymous_beyond_first_degree is False

    def test_connection_other_party(self):
        connection = Connection(id="k1", inviter_id="a", invitee_id="b", status="accepted")

        assert connection.other_party("a") == "b"
        assert connection.other_party("b") == "a"
        assert connection.other_party("c") is None
        assert connection.is_accepted is True

    def test_note_without_date_is_invalid(self):
        with pytest.raises(ValidationError):
            ActivityRecord(contact_id="c1", entry_date=None)


class TestGraphEdge:
    def test_recency_intensity_bounds(self):
        with pytest.raises(ValidationError):
            GraphEdge(source="a", target="b", distance=1.0, thickness=1.0, recency_intensity=1.5)

    def test_immutable(self):
        edge = GraphEdge(source="a", target="b", distance=1.0, thickness=1.0, recency_intensity=0.5)
        with pytest.raises(ValidationError):
            edge.distance = 2.0
