"""
Network Graph Assembler using NetworkX for node/edge bookkeeping.

Builds the owner's network in four ordered passes:
1. Self
2. Mutual users (verified connections)
3. Owned contacts not already shown as a mutual user
4. Second degree (contacts of mutual users, privacy filtered)

The graph is undirected, so the two storage directions of a relationship can
never produce two edges. Edge orientation for the renderer is kept in the
``source``/``target`` attributes and insertion order in ``order``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any

import networkx as nx

from nexus.models import Contact, GraphSnapshot, NodeCategory

from .activity import ActivityStats, stats_for
from .consistency import VerifiedConnection
from .identity import Identity, IdentityResolver, PersonRecord, PersonSource
from .privacy import PrivacyFilter

logger = logging.getLogger(__name__)

SELF_NODE_ID = "self"


class EdgeKind(str, Enum):
    DIRECT = "direct"  # self <-> owned contact or mutual user
    SECOND_DEGREE = "second_degree"  # mutual user -> newly discovered person
    EXISTING_LINK = "existing_link"  # mutual user -> person already in the graph


def mutual_node_id(profile_id: str) -> str:
    return f"user-{profile_id}"


def contact_node_id(contact_id: str) -> str:
    return f"contact-{contact_id}"


def second_degree_node_id(contact_id: str) -> str:
    return f"their-{contact_id}"


class GraphAssembler:
    """Assembles one owner's network graph. Create a new assembler per build."""

    def __init__(
        self,
        resolver: IdentityResolver,
        privacy: PrivacyFilter,
        activity: dict[str, ActivityStats],
    ):
        self.resolver = resolver
        self.privacy = privacy
        self.activity = activity
        self.graph = nx.Graph()
        self._edge_count = 0
        self._mutual_nodes: dict[str, str] = {}  # profile id -> node id
        self._owned_cards: dict[str, Contact] = {}

    def assemble(self, snapshot: GraphSnapshot, connections: list[VerifiedConnection]) -> nx.Graph:
        """Run all four passes and return the unscored graph."""
        owner_id = snapshot.owner_id
        self._owned_cards = {c.id: c for c in snapshot.owned_contacts}

        self._add_self_node(snapshot, connections)
        self._add_mutual_users(snapshot, connections)
        self._add_owned_contacts(snapshot)
        self._add_second_degree(snapshot)
        self._finalize()

        logger.info(
            f"Assembled network for {owner_id}: {self.graph.number_of_nodes()} nodes, "
            f"{self.graph.number_of_edges()} edges ({len(self._mutual_nodes)} mutual)"
        )
        return self.graph

    def _add_self_node(self, snapshot: GraphSnapshot, connections: list[VerifiedConnection]) -> None:
        identity = self.resolver.identity(SELF_NODE_ID)
        self.graph.add_node(
            SELF_NODE_ID,
            category=NodeCategory.SELF,
            identity=identity,
            connection_count=len(snapshot.owned_contacts) + len(connections),
        )

    def _add_mutual_users(self, snapshot: GraphSnapshot, connections: list[VerifiedConnection]) -> None:
        for connection in connections:
            profile_id = connection.profile_id
            profile = snapshot.profiles.get(profile_id)
            if profile is not None:
                record = PersonRecord.from_profile(profile)
            else:
                logger.debug(f"No profile loaded for mutual user {profile_id}, using contact card only")
                record = PersonRecord(source=PersonSource.PROFILE, linked_account_id=profile_id, record_id=profile_id)

            resolved = self.resolver.resolve(record, mutual_node_id(profile_id))
            if resolved is None:
                continue
            identity, created = resolved
            if connection.owner_card is not None:
                self.resolver.resolve(
                    PersonRecord.from_contact(connection.owner_card, PersonSource.OWNED_CONTACT), identity.node_id
                )

            if created:
                self.graph.add_node(
                    identity.node_id,
                    category=NodeCategory.MUTUAL_USER,
                    identity=identity,
                    profile_id=profile_id,
                )
            self._mutual_nodes[profile_id] = identity.node_id
            self._add_edge(SELF_NODE_ID, identity.node_id, EdgeKind.DIRECT, is_mutual=True, is_linked_user=True)

        logger.debug(f"Added {len(self._mutual_nodes)} mutual users")

    def _add_owned_contacts(self, snapshot: GraphSnapshot) -> None:
        added = 0
        for contact in snapshot.owned_contacts:
            if contact.linked_profile_id in self._mutual_nodes:
                # Already on the graph as a mutual user; the card's activity still counts
                self.resolver.resolve(
                    PersonRecord.from_contact(contact, PersonSource.OWNED_CONTACT),
                    self._mutual_nodes[contact.linked_profile_id],
                )
                continue
            if contact.linked_profile_id == snapshot.owner_id:
                logger.debug(f"Skipping owned contact {contact.id} linked to the owner")
                continue

            record = PersonRecord.from_contact(contact, PersonSource.OWNED_CONTACT)
            if self.resolver.lookup(record) == SELF_NODE_ID:
                logger.debug(f"Skipping owned contact {contact.id} resolving to the owner")
                continue

            resolved = self.resolver.resolve(record, contact_node_id(contact.id))
            if resolved is None:
                continue
            identity, created = resolved
            if created:
                self.graph.add_node(
                    identity.node_id,
                    category=NodeCategory.OWNED_CONTACT,
                    identity=identity,
                    profile_id=contact.linked_profile_id,
                )
                added += 1
            self._add_edge(
                SELF_NODE_ID,
                identity.node_id,
                EdgeKind.DIRECT,
                is_mutual=False,
                is_linked_user=bool(identity.account_id),
            )

        logger.debug(f"Added {added} owned contacts")

    def _add_second_degree(self, snapshot: GraphSnapshot) -> None:
        candidates = [c for c in snapshot.connected_contacts if c.owner_id in self._mutual_nodes]
        ignored = len(snapshot.connected_contacts) - len(candidates)
        if ignored:
            logger.debug(f"Ignoring {ignored} contacts owned by accounts that are not verified mutual users")

        # Privacy first: suppressed cards must never merge into existing nodes
        visible = self.privacy.filter_second_degree(candidates)

        new_nodes = 0
        for contact in visible:
            owner_node = self._mutual_nodes[contact.owner_id]
            if contact.linked_profile_id == snapshot.owner_id:
                continue

            record = PersonRecord.from_contact(contact, PersonSource.CONNECTED_CONTACT)
            existing = self.resolver.lookup(record)
            if existing == SELF_NODE_ID:
                continue
            if existing == owner_node:
                logger.debug(f"Skipping contact {contact.id} describing its own owner {contact.owner_id}")
                continue

            resolved = self.resolver.resolve(record, second_degree_node_id(contact.id))
            if resolved is None:
                continue
            identity, created = resolved
            node_id = identity.node_id

            if created:
                self.graph.add_node(
                    node_id,
                    category=NodeCategory.SECOND_DEGREE,
                    identity=identity,
                    profile_id=contact.linked_profile_id,
                )
                self._add_edge(owner_node, node_id, EdgeKind.SECOND_DEGREE, is_second_degree=True)
                new_nodes += 1
                continue

            if self.graph.has_edge(owner_node, node_id):
                # Same person listed twice by the same connection
                continue
            category = self.graph.nodes[node_id]["category"]
            self._add_edge(
                owner_node,
                node_id,
                EdgeKind.EXISTING_LINK,
                is_second_degree=True,
                is_mutual=category in (NodeCategory.OWNED_CONTACT, NodeCategory.MUTUAL_USER),
                is_cross_link=category == NodeCategory.OWNED_CONTACT,
            )

        logger.debug(f"Second degree: {len(visible)} visible of {len(candidates)} candidates, {new_nodes} new nodes")

    def _add_edge(self, source: str, target: str, kind: EdgeKind, **flags: Any) -> bool:
        if source == target or self.graph.has_edge(source, target):
            return False
        self.graph.add_edge(
            source,
            target,
            source=source,
            target=target,
            kind=kind,
            order=self._edge_count,
            is_mutual=flags.get("is_mutual", False),
            is_second_degree=flags.get("is_second_degree", False),
            is_cross_link=flags.get("is_cross_link", False),
            is_linked_user=flags.get("is_linked_user", False),
        )
        self._edge_count += 1
        return True

    def _finalize(self) -> None:
        """Derive fan-out counts and the inputs of direct-edge scoring."""
        for node_id, data in self.graph.nodes(data=True):
            if data["category"] != NodeCategory.SELF:
                # One per distinct path, however many cards describe the person
                data["connection_count"] = self.graph.degree(node_id)

        for _, _, data in self.graph.edges(data=True):
            if data["kind"] != EdgeKind.DIRECT:
                continue
            other = data["target"] if data["source"] == SELF_NODE_ID else data["source"]
            identity: Identity = self.graph.nodes[other]["identity"]
            stats = stats_for(self.activity, identity.owned_contact_ids)
            data["relationship_type"] = identity.relationship_type
            data["activity_count"] = stats.count
            data["most_recent"] = stats.most_recent or self._last_contact(identity)

    def _last_contact(self, identity: Identity) -> datetime | None:
        dates = [
            self._owned_cards[cid].last_contact_date
            for cid in identity.owned_contact_ids
            if cid in self._owned_cards and self._owned_cards[cid].last_contact_date
        ]
        return max(dates) if dates else None
