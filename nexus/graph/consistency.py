"""
Consistency guard for connection records.

Connections and contact links are deleted independently, so storage can
hold an accepted connection whose contact-level backing is gone (a ghost).
A connection only counts when at least one side still holds a contact card
linked to the other side.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from nexus.models import Connection, Contact

from .diagnostics import DiagnosticKind, Diagnostics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedConnection:
    """An accepted, backed connection seen from the owner's side."""

    profile_id: str  # the other account
    connection_id: str
    owner_card: Contact | None = None  # the owner's card linked to profile_id, if any


class ConsistencyGuard:
    def __init__(self, diagnostics: Diagnostics | None = None):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def verify(
        self,
        owner_id: str,
        connections: Iterable[Connection],
        owned_contacts: Iterable[Contact],
        connected_contacts: Iterable[Contact],
    ) -> list[VerifiedConnection]:
        """Return one verified connection per other account, in first-seen order."""
        owner_cards: dict[str, Contact] = {}
        for contact in owned_contacts:
            if contact.linked_profile_id:
                owner_cards.setdefault(contact.linked_profile_id, contact)

        # Accounts that keep a card linked back to the owner
        linked_back = {c.owner_id for c in connected_contacts if c.linked_profile_id == owner_id}

        verified: dict[str, VerifiedConnection] = {}
        seen: dict[str, str] = {}
        for connection in connections:
            if not connection.is_accepted or not connection.touches(owner_id):
                continue

            if connection.inviter_id == connection.invitee_id:
                self.diagnostics.report(
                    DiagnosticKind.SELF_CONNECTION,
                    f"Dropping self-connection {connection.id}",
                    subject_id=connection.id,
                )
                continue

            other = connection.other_party(owner_id)
            if not other:
                self.diagnostics.report(
                    DiagnosticKind.MALFORMED_RECORD,
                    f"Dropping connection {connection.id} without a counterpart account",
                    subject_id=connection.id,
                )
                continue

            if other in seen:
                # The second storage direction of a pair already seen
                logger.debug(f"Collapsing duplicate connection {connection.id} with {seen[other]}")
                continue
            seen[other] = connection.id

            if other not in owner_cards and other not in linked_back:
                self.diagnostics.report(
                    DiagnosticKind.GHOST_CONNECTION,
                    f"Dropping ghost connection {connection.id}: no contact links {owner_id} and {other}",
                    subject_id=connection.id,
                )
                continue

            verified[other] = VerifiedConnection(
                profile_id=other,
                connection_id=connection.id,
                owner_card=owner_cards.get(other),
            )

        logger.debug(f"Verified {len(verified)} connections for owner {owner_id}")
        return list(verified.values())
