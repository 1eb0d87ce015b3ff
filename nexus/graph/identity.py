"""
Identity resolution across profiles and contact cards.

The same real-world person can reach a build several ways: as an account
profile, as the owner's own contact card, and as a card in a connection's
address book. Each distinct person gets exactly one node id, keyed by a
dedup key:

- ``profile:<account id>`` when the record is linked to an account
- ``name:<normalized display name>`` otherwise

Attributes of records sharing a node are merged field by field. Account
profiles are authoritative for who someone is and where they work; only the
owner's own cards say how the owner relates to them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from nexus.models import Contact, Profile

from .diagnostics import DiagnosticKind, Diagnostics

logger = logging.getLogger(__name__)


class PersonSource(Enum):
    OWNER = "owner"  # the requesting user's own profile
    PROFILE = "profile"  # another account's profile
    OWNED_CONTACT = "owned_contact"  # a card the owner keeps
    CONNECTED_CONTACT = "connected_contact"  # a card kept by one of the owner's connections


EMPLOYMENT_FIELDS = ("display_name", "organization", "role", "location")
RELATIONSHIP_FIELDS = ("relationship_type",)

# Higher rank replaces lower; equal rank keeps the first non-empty value.
# Sources missing from a table never contribute to those fields.
EMPLOYMENT_PRECEDENCE = {
    PersonSource.OWNER: 3,
    PersonSource.PROFILE: 3,
    PersonSource.OWNED_CONTACT: 2,
    PersonSource.CONNECTED_CONTACT: 1,
}
RELATIONSHIP_PRECEDENCE = {
    PersonSource.OWNED_CONTACT: 1,
}


def normalize_name(name: str | None) -> str:
    """Case-fold and collapse whitespace so "Ann  LEE " and "ann lee" match."""
    if not name:
        return ""
    return " ".join(name.split()).casefold()


@dataclass(frozen=True)
class PersonRecord:
    """One candidate description of a person, from any source."""

    source: PersonSource
    display_name: str | None = None
    linked_account_id: str | None = None
    organization: str | None = None
    role: str | None = None
    location: str | None = None
    relationship_type: str | None = None
    record_id: str | None = None

    @classmethod
    def from_profile(cls, profile: Profile, source: PersonSource = PersonSource.PROFILE) -> PersonRecord:
        return cls(
            source=source,
            display_name=profile.full_name,
            linked_account_id=profile.id,
            organization=profile.organization,
            role=profile.headline,
            location=profile.location,
            record_id=profile.id,
        )

    @classmethod
    def from_contact(cls, contact: Contact, source: PersonSource) -> PersonRecord:
        return cls(
            source=source,
            display_name=contact.full_name,
            linked_account_id=contact.linked_profile_id,
            organization=contact.company,
            role=contact.role,
            location=contact.location,
            relationship_type=contact.relationship_type,
            record_id=contact.id,
        )

    @property
    def account_key(self) -> str | None:
        return f"profile:{self.linked_account_id}" if self.linked_account_id else None

    @property
    def name_key(self) -> str | None:
        name = normalize_name(self.display_name)
        return f"name:{name}" if name else None


def dedup_key(record: PersonRecord) -> str | None:
    """Canonical key of a record, or None when it cannot be identified at all."""
    return record.account_key or record.name_key


@dataclass
class Identity:
    """A resolved person: one node id plus merged attributes."""

    node_id: str
    account_id: str | None = None
    # Account id vouched for by the owner's own data; a connection's card
    # linking a name to an account is not.
    public_account_id: str | None = None
    fields: dict[str, str] = field(default_factory=dict)
    sources: set[PersonSource] = field(default_factory=set)
    owned_contact_ids: list[str] = field(default_factory=list)
    _ranks: dict[str, int] = field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str | None:
        return self.fields.get("display_name")

    @property
    def organization(self) -> str | None:
        return self.fields.get("organization")

    @property
    def role(self) -> str | None:
        return self.fields.get("role")

    @property
    def location(self) -> str | None:
        return self.fields.get("location")

    @property
    def relationship_type(self) -> str | None:
        return self.fields.get("relationship_type")

    def absorb(self, record: PersonRecord) -> None:
        """Merge a record's attributes according to field precedence."""
        self.sources.add(record.source)
        if self.account_id is None and record.linked_account_id:
            self.account_id = record.linked_account_id
        if (
            self.public_account_id is None
            and record.linked_account_id
            and record.source != PersonSource.CONNECTED_CONTACT
        ):
            self.public_account_id = record.linked_account_id
        if record.source == PersonSource.OWNED_CONTACT and record.record_id:
            if record.record_id not in self.owned_contact_ids:
                self.owned_contact_ids.append(record.record_id)

        self._merge(record, EMPLOYMENT_FIELDS, EMPLOYMENT_PRECEDENCE)
        self._merge(record, RELATIONSHIP_FIELDS, RELATIONSHIP_PRECEDENCE)

    def _merge(self, record: PersonRecord, names: tuple[str, ...], precedence: dict[PersonSource, int]) -> None:
        rank = precedence.get(record.source)
        if rank is None:
            return
        for name in names:
            value = getattr(record, name)
            if isinstance(value, str):
                value = value.strip()
            if not value:
                continue
            if name not in self.fields or rank > self._ranks.get(name, 0):
                self.fields[name] = value
                self._ranks[name] = rank


class IdentityResolver:
    """Dedup bookkeeping for one build. Never shared between builds."""

    def __init__(self, diagnostics: Diagnostics | None = None):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self._node_by_key: dict[str, str] = {}
        self._identities: dict[str, Identity] = {}

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._identities

    def __len__(self) -> int:
        return len(self._identities)

    def identity(self, node_id: str) -> Identity:
        return self._identities[node_id]

    def node_for_account(self, account_id: str) -> str | None:
        return self._node_by_key.get(f"profile:{account_id}")

    def lookup(self, record: PersonRecord) -> str | None:
        """Existing node id for a record: by account first, then by name.

        A name match is refused when both sides carry different account ids;
        two accounts with the same name are two people.
        """
        account_key = record.account_key
        if account_key and account_key in self._node_by_key:
            return self._node_by_key[account_key]

        name_key = record.name_key
        if name_key and name_key in self._node_by_key:
            node_id = self._node_by_key[name_key]
            existing_account = self._identities[node_id].account_id
            if record.linked_account_id and existing_account and existing_account != record.linked_account_id:
                return None
            return node_id
        return None

    def resolve(self, record: PersonRecord, node_id: str) -> tuple[Identity, bool] | None:
        """Resolve a record to a node, creating it under node_id if the person is new.

        Returns (identity, created), or None for a malformed record.
        """
        if dedup_key(record) is None:
            self.diagnostics.report(
                DiagnosticKind.MALFORMED_RECORD,
                f"Dropping {record.source.value} record without account id or name",
                subject_id=record.record_id,
            )
            return None

        existing = self.lookup(record)
        if existing is not None:
            identity = self._identities[existing]
            identity.absorb(record)
            self._index(record, existing)
            logger.debug(f"Merged {record.source.value} record {record.record_id} into node {existing}")
            return identity, False

        identity = Identity(node_id=node_id)
        identity.absorb(record)
        self._identities[node_id] = identity
        self._index(record, node_id)
        return identity, True

    def _index(self, record: PersonRecord, node_id: str) -> None:
        for key in (record.account_key, record.name_key):
            if key:
                # First registration wins a contested name
                self._node_by_key.setdefault(key, node_id)
