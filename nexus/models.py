"""
Domain models for the network graph.

Record models mirror rows of the PocketBase collections the graph is built
from (``profiles``, ``contacts``, ``connections``, ``contact_notes``) and
ignore any extra columns. Output models (GraphNode, GraphEdge, NetworkGraph)
serialize with camelCase field names for the renderer.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ACCEPTED_STATUS = "accepted"


def parse_timestamp(value: Any) -> datetime | None:
    """Normalize an ISO date, ISO timestamp or PocketBase datetime to aware UTC.

    PocketBase returns datetimes as "2025-03-01 10:00:00.000Z"; notes entered
    by hand are plain "2025-03-01" dates. Blank values mean "no date".
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            parsed_date = date.fromisoformat(text)
            return datetime(parsed_date.year, parsed_date.month, parsed_date.day, tzinfo=UTC)
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    raise ValueError(f"Unsupported date value: {value!r}")


class RecordModel(BaseModel):
    """Base for rows read from the datastore."""

    model_config = ConfigDict(extra="ignore")


class Profile(RecordModel):
    """A platform account as seen by other users."""

    id: str
    full_name: str | None = None
    headline: str | None = None
    organization: str | None = None
    location: str | None = None
    anonymous_beyond_first_degree: bool = False

    @field_validator("anonymous_beyond_first_degree", mode="before")
    @classmethod
    def null_flag_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class Contact(RecordModel):
    """A contact card owned by exactly one user, optionally linked to an account."""

    id: str
    owner_id: str
    full_name: str = ""
    relationship_type: str | None = None
    company: str | None = None
    role: str | None = None
    location: str | None = None
    email: str | None = None
    linked_profile_id: str | None = None
    last_contact_date: datetime | None = None
    anonymous_to_connections: bool = False

    @field_validator("full_name", mode="before")
    @classmethod
    def null_name_is_blank(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("linked_profile_id", "relationship_type", mode="before")
    @classmethod
    def blank_is_none(cls, v: Any) -> Any:
        # PocketBase stores unset relation/text fields as ""
        return None if v == "" else v

    @field_validator("last_contact_date", mode="before")
    @classmethod
    def parse_last_contact(cls, v: Any) -> datetime | None:
        return parse_timestamp(v)

    @field_validator("anonymous_to_connections", mode="before")
    @classmethod
    def null_flag_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class Connection(RecordModel):
    """An invitation between two accounts; accepted connections are mutual links."""

    id: str
    inviter_id: str
    invitee_id: str | None = None
    status: str = "pending"

    @field_validator("invitee_id", mode="before")
    @classmethod
    def blank_is_none(cls, v: Any) -> Any:
        return None if v == "" else v

    @property
    def is_accepted(self) -> bool:
        return self.status == ACCEPTED_STATUS

    def touches(self, profile_id: str) -> bool:
        return profile_id in (self.inviter_id, self.invitee_id)

    def other_party(self, profile_id: str) -> str | None:
        """Return the account on the other side of this connection from profile_id."""
        if self.inviter_id == profile_id:
            return self.invitee_id
        if self.invitee_id == profile_id:
            return self.inviter_id
        return None


class ActivityRecord(RecordModel):
    """A logged note or interaction on one contact; only its date matters here."""

    id: str | None = None
    contact_id: str
    entry_date: datetime

    @field_validator("entry_date", mode="before")
    @classmethod
    def parse_entry_date(cls, v: Any) -> datetime | None:
        return parse_timestamp(v)


class GraphSnapshot(BaseModel):
    """Everything one graph build reads, fetched once at the start of the build.

    ``connected_contacts`` holds the contacts owned by mutual-connection
    candidates; it comes from the privileged read. ``as_of`` is the instant
    recency is measured against, so the same snapshot always scores the same.
    """

    owner_id: str
    owner_profile: Profile | None = None
    owned_contacts: list[Contact] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)
    activities: list[ActivityRecord] = Field(default_factory=list)
    profiles: dict[str, Profile] = Field(default_factory=dict)
    connected_contacts: list[Contact] = Field(default_factory=list)
    as_of: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("as_of", mode="before")
    @classmethod
    def parse_as_of(cls, v: Any) -> datetime | None:
        return parse_timestamp(v)


class NodeCategory(str, Enum):
    SELF = "self"
    OWNED_CONTACT = "owned_contact"
    MUTUAL_USER = "mutual_user"
    SECOND_DEGREE = "second_degree"


class GraphOutputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class GraphNode(GraphOutputModel):
    id: str
    label: str
    category: NodeCategory
    connection_count: int
    radius: float
    recency: float
    relationship_type: str | None = None
    organization: str | None = None
    role: str | None = None
    profile_id: str | None = None
    contact_id: str | None = None
    search_text: str = ""


class GraphEdge(GraphOutputModel):
    source: str
    target: str
    distance: float
    thickness: float
    recency_intensity: float = Field(ge=0.0, le=1.0)
    is_mutual: bool = False
    is_second_degree: bool = False
    is_cross_link: bool = False
    is_linked_user: bool = False


class NetworkGraph(GraphOutputModel):
    """Immutable result of one build, ready for a force-directed renderer."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)

    def node(self, node_id: str) -> GraphNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def nodes_in(self, category: NodeCategory) -> list[GraphNode]:
        return [n for n in self.nodes if n.category == category]

    def to_document(self) -> dict[str, Any]:
        """Serialize with the renderer's field names."""
        return self.model_dump(by_alias=True, mode="json")
