"""
Privacy filtering of second-degree exposure.

Two independent opt-outs suppress a connection's contact card:
- the connection's own profile is "anonymous beyond first degree"
  (none of their cards are exposed)
- the card is "anonymous to connections", or the account it links to is
  itself anonymous beyond first degree

Filtering runs before identity resolution so a suppressed card can never
leak attributes into a node the owner already has. Suppressions are not
reported as diagnostics: telling the owner a hidden card exists would
defeat the opt-out.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from nexus.models import Contact, Profile

logger = logging.getLogger(__name__)


class PrivacyFilter:
    def __init__(self, profiles: Mapping[str, Profile]):
        self.profiles = profiles
        self.suppressed_count = 0

    def is_anonymous(self, profile_id: str | None) -> bool:
        if not profile_id:
            return False
        profile = self.profiles.get(profile_id)
        return bool(profile and profile.anonymous_beyond_first_degree)

    def exposes_contacts_of(self, profile_id: str) -> bool:
        """Whether a connection's address book may appear beyond first degree."""
        return not self.is_anonymous(profile_id)

    def allows(self, contact: Contact) -> bool:
        """Whether one second-degree card may be shown to the owner."""
        if not self.exposes_contacts_of(contact.owner_id):
            return False
        if contact.anonymous_to_connections:
            return False
        return not self.is_anonymous(contact.linked_profile_id)

    def filter_second_degree(self, contacts: Iterable[Contact]) -> list[Contact]:
        """Keep the cards that survive both opt-outs, in input order."""
        visible = []
        for contact in contacts:
            if self.allows(contact):
                visible.append(contact)
            else:
                self.suppressed_count += 1
                logger.debug(f"Suppressed second-degree contact {contact.id} (owner {contact.owner_id})")
        return visible
