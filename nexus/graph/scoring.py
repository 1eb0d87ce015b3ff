"""
Relationship scoring - the numeric encodings a renderer maps to visuals.

- recency intensity from the most recent interaction (line alpha)
- thickness from the interaction count (line width)
- target distance from the relationship type (spring length), with a small
  per-edge jitter so equal-distance nodes don't stack
- radius from the fan-out count, banded per node category

Everything here is deterministic. The only randomness is the jitter, which
comes from an injectable JitterSource.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Protocol

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field, model_validator

from nexus.models import NodeCategory

from .assembler import SELF_NODE_ID, EdgeKind

logger = logging.getLogger(__name__)

# Closer relationship => shorter spring
CLOSENESS: dict[str, float] = {
    "Family": 60.0,
    "Close Friend": 90.0,
    "Work-Friend": 140.0,
    "Business Contact": 190.0,
    "Acquaintance": 230.0,
    "None": 300.0,
}

# (inclusive upper bound on interaction count, thickness); above the last bound MAX_THICKNESS
THICKNESS_TIERS: tuple[tuple[int, float], ...] = (
    (0, 1.2),
    (2, 2.0),
    (5, 2.5),
    (10, 3.5),
    (20, 4.5),
)
MAX_THICKNESS = 6.0

# Recency curve breakpoints, in days since the last interaction
RECENCY_FULL_DAYS = 7.0
RECENCY_MONTH_DAYS = 30.0
RECENCY_YEAR_DAYS = 365.0
RECENCY_FADE_DAYS = 730.0
RECENCY_FLOOR = 0.25

SECONDS_PER_DAY = 86400.0


def recency_intensity(most_recent: datetime | None, now: datetime) -> float:
    """Map time since the last interaction to [0.25, 1.0], non-increasing.

    1.0 up to 7 days, 1.0 -> 0.8 by day 30, 0.8 -> 0.5 by day 365, then
    0.5 -> 0.25 over the following two years. No interaction at all is 0.25.
    """
    if most_recent is None:
        return RECENCY_FLOOR

    days = (now - most_recent).total_seconds() / SECONDS_PER_DAY
    if days <= RECENCY_FULL_DAYS:
        return 1.0
    if days <= RECENCY_MONTH_DAYS:
        return 1.0 - ((days - RECENCY_FULL_DAYS) / (RECENCY_MONTH_DAYS - RECENCY_FULL_DAYS)) * 0.2
    if days <= RECENCY_YEAR_DAYS:
        return 0.8 - ((days - RECENCY_MONTH_DAYS) / (RECENCY_YEAR_DAYS - RECENCY_MONTH_DAYS)) * 0.3
    return max(RECENCY_FLOOR, 0.5 - ((days - RECENCY_YEAR_DAYS) / RECENCY_FADE_DAYS) * 0.25)


def thickness(count: int, tiers: tuple[tuple[int, float], ...] = THICKNESS_TIERS) -> float:
    """Step function over the interaction count; not interpolated."""
    for upper, value in tiers:
        if count <= upper:
            return value
    return MAX_THICKNESS


class JitterSource(Protocol):
    def factor(self, source: str, target: str) -> float: ...


class NoJitter:
    """Jitter source that leaves every distance at its base value."""

    def factor(self, source: str, target: str) -> float:
        return 1.0


class EdgeJitter:
    """Seeded per-edge jitter in [1 - spread, 1 + spread).

    The factor is derived from the seed and the (unordered) endpoints, not
    from draw order, so rebuilding the same snapshot with the same seed gives
    every edge the same distance.
    """

    def __init__(self, seed: int | str | None = None, spread: float = 0.15):
        if not 0.0 <= spread < 1.0:
            raise ValueError(f"Jitter spread must be in [0, 1), got {spread}")
        self.seed = seed if seed is not None else random.SystemRandom().randrange(2**32)
        self.spread = spread

    def factor(self, source: str, target: str) -> float:
        if self.spread == 0.0:
            return 1.0
        first, second = sorted((source, target))
        rng = random.Random(f"{self.seed}:{first}:{second}")
        return 1.0 - self.spread + rng.random() * 2 * self.spread


class RadiusBand(BaseModel):
    model_config = ConfigDict(frozen=True)

    base: float
    factor: float
    cap: float

    @property
    def maximum(self) -> float:
        return self.base + self.cap


def _default_radius_bands() -> dict[NodeCategory, RadiusBand]:
    return {
        NodeCategory.SELF: RadiusBand(base=24.0, factor=0.5, cap=8.0),
        NodeCategory.MUTUAL_USER: RadiusBand(base=15.0, factor=1.2, cap=8.0),
        NodeCategory.OWNED_CONTACT: RadiusBand(base=8.0, factor=1.2, cap=6.0),
        NodeCategory.SECOND_DEGREE: RadiusBand(base=5.0, factor=0.5, cap=2.0),
    }


# Smallest to largest; bands must not overlap so the hierarchy survives any count
RADIUS_HIERARCHY = (
    NodeCategory.SECOND_DEGREE,
    NodeCategory.OWNED_CONTACT,
    NodeCategory.MUTUAL_USER,
    NodeCategory.SELF,
)


class ScoringConfig(BaseModel):
    """Tunables of the scorer. Defaults reproduce the product's encodings."""

    model_config = ConfigDict(frozen=True)

    closeness: dict[str, float] = Field(default_factory=lambda: dict(CLOSENESS))
    default_distance: float = Field(default=200.0, gt=0)
    default_relationship_type: str = "Acquaintance"
    second_degree_distance: float = Field(default=160.0, gt=0)
    existing_link_distance: float = Field(default=180.0, gt=0)
    second_degree_thickness: float = 1.0
    cross_link_thickness: float = 1.5
    second_degree_recency: float = Field(default=0.3, ge=0.0, le=1.0)
    second_degree_node_recency: float = Field(default=0.5, ge=0.0, le=1.0)
    thickness_tiers: tuple[tuple[int, float], ...] = THICKNESS_TIERS
    radius_bands: dict[NodeCategory, RadiusBand] = Field(default_factory=_default_radius_bands)

    @model_validator(mode="after")
    def check_radius_hierarchy(self) -> ScoringConfig:
        missing = [c.value for c in RADIUS_HIERARCHY if c not in self.radius_bands]
        if missing:
            raise ValueError(f"Missing radius bands for: {missing}")
        for smaller, larger in zip(RADIUS_HIERARCHY, RADIUS_HIERARCHY[1:]):
            if self.radius_bands[smaller].maximum > self.radius_bands[larger].base:
                raise ValueError(f"Radius band for {smaller.value} overlaps {larger.value}")
        return self


DEFAULT_SCORING = ScoringConfig()


class RelationshipScorer:
    """Annotates an assembled graph in place with distance, thickness, recency and radius."""

    def __init__(self, config: ScoringConfig | None = None, jitter: JitterSource | None = None):
        self.config = config or DEFAULT_SCORING
        self.jitter = jitter or EdgeJitter()

    def base_distance(self, relationship_type: str | None) -> float:
        relationship_type = relationship_type or self.config.default_relationship_type
        return self.config.closeness.get(relationship_type, self.config.default_distance)

    def thickness(self, count: int) -> float:
        return thickness(count, self.config.thickness_tiers)

    def radius(self, category: NodeCategory, count: int) -> float:
        band = self.config.radius_bands[category]
        return band.base + min(count * band.factor, band.cap)

    def score_graph(self, graph: nx.Graph, now: datetime) -> nx.Graph:
        for _, _, data in graph.edges(data=True):
            self._score_edge(data, now)
        for node_id, data in graph.nodes(data=True):
            self._score_node(graph, node_id, data)
        logger.debug(f"Scored {graph.number_of_nodes()} nodes and {graph.number_of_edges()} edges")
        return graph

    def _score_edge(self, data: dict, now: datetime) -> None:
        kind = data["kind"]
        if kind == EdgeKind.DIRECT:
            base = self.base_distance(data.get("relationship_type"))
            data["thickness"] = self.thickness(data.get("activity_count", 0))
            data["recency_intensity"] = recency_intensity(data.get("most_recent"), now)
        elif kind == EdgeKind.SECOND_DEGREE:
            base = self.config.second_degree_distance
            data["thickness"] = self.config.second_degree_thickness
            data["recency_intensity"] = self.config.second_degree_recency
        else:
            base = self.config.existing_link_distance
            data["thickness"] = (
                self.config.cross_link_thickness if data.get("is_cross_link") else self.config.second_degree_thickness
            )
            data["recency_intensity"] = self.config.second_degree_recency
        # Rolled once per edge per build; the jitter source makes it repeatable
        data["distance"] = round(base * self.jitter.factor(data["source"], data["target"]), 2)

    def _score_node(self, graph: nx.Graph, node_id: str, data: dict) -> None:
        category = data["category"]
        data["radius"] = round(self.radius(category, data["connection_count"]), 2)
        if category == NodeCategory.SELF:
            data["recency"] = 1.0
        elif category == NodeCategory.SECOND_DEGREE:
            data["recency"] = self.config.second_degree_node_recency
        elif graph.has_edge(SELF_NODE_ID, node_id):
            data["recency"] = graph.edges[SELF_NODE_ID, node_id]["recency_intensity"]
        else:
            data["recency"] = RECENCY_FLOOR
