"""Weighted, typed edges between ranked themes."""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Protocol, Sequence

from .themes import Theme

MAX_CONNECTIONS = 6
NEIGHBOUR_SPAN = 2
MIN_STRENGTH = 3
MAX_STRENGTH = 10


class RelationshipType(str, Enum):
    SUPPORTS = "supports"
    RELATES_TO = "relates_to"
    INFLUENCES = "influences"
    COMPLEMENTS = "complements"
    INTEGRATES_WITH = "integrates_with"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


RELATIONSHIP_TYPES: tuple[RelationshipType, ...] = tuple(RelationshipType)


@dataclass(frozen=True, slots=True)
class Connection:
    """An edge between two distinct themes, oriented by rank."""

    source: str
    target: str
    relationship_type: RelationshipType
    strength: int

    def to_payload(self) -> dict[str, object]:
        return {
            "from": self.source,
            "to": self.target,
            "relationshipType": self.relationship_type.value,
            "strength": self.strength,
        }


class RelationshipLabeler(Protocol):
    """Chooses the relationship label for a pair of themes."""

    def choose(self, source: Theme, target: Theme) -> RelationshipType:
        ...


class RandomLabeler:
    """Uniform random labels; pass ``seed`` for reproducible runs."""

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int | None:
        return self._seed

    def choose(self, source: Theme, target: Theme) -> RelationshipType:
        return self._random.choice(RELATIONSHIP_TYPES)


class HashLabeler:
    """Deterministic labels derived from a digest of the two theme names."""

    def choose(self, source: Theme, target: Theme) -> RelationshipType:
        digest = hashlib.sha256(f"{source.name}\x00{target.name}".encode("utf-8")).digest()
        return RELATIONSHIP_TYPES[int.from_bytes(digest[:4], "big") % len(RELATIONSHIP_TYPES)]


RELATIONSHIP_STRATEGIES = ("random", "hash")


def validate_strategy(strategy: str | None) -> str:
    """Return the normalized strategy name or raise ``ValueError``."""

    normalized = (strategy or "random").strip().lower()
    if normalized not in RELATIONSHIP_STRATEGIES:
        raise ValueError(f"Unknown relationship strategy '{strategy}' (expected 'random' or 'hash')")
    return normalized


def build_labeler(strategy: str | None, *, seed: int | None = None) -> RelationshipLabeler:
    if validate_strategy(strategy) == "hash":
        return HashLabeler()
    return RandomLabeler(seed)


def connection_strength(first: Theme, second: Theme) -> int:
    return min(MAX_STRENGTH, max(MIN_STRENGTH, 10 - abs(first.relevance - second.relevance)))


def build_connections(
    themes: Sequence[Theme],
    *,
    labeler: RelationshipLabeler | None = None,
    max_connections: int = MAX_CONNECTIONS,
) -> List[Connection]:
    """Link each theme to its next two neighbours in rank order.

    Only forward pairs are visited so no unordered pair repeats; the list is cut
    to ``max_connections`` in iteration order.
    """

    labeler = labeler or RandomLabeler()
    limit = max(0, max_connections)
    connections: List[Connection] = []
    total = len(themes)
    for i in range(total - 1):
        for j in range(i + 1, min(total, i + 1 + NEIGHBOUR_SPAN)):
            if len(connections) >= limit:
                return connections
            source, target = themes[i], themes[j]
            if source.name == target.name:
                continue
            connections.append(
                Connection(
                    source=source.name,
                    target=target.name,
                    relationship_type=RelationshipType(labeler.choose(source, target)),
                    strength=connection_strength(source, target),
                )
            )
    return connections


__all__ = [
    "Connection",
    "HashLabeler",
    "MAX_CONNECTIONS",
    "RELATIONSHIP_STRATEGIES",
    "RELATIONSHIP_TYPES",
    "RandomLabeler",
    "RelationshipLabeler",
    "RelationshipType",
    "build_connections",
    "build_labeler",
    "connection_strength",
    "validate_strategy",
]
