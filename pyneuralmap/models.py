"""Derived output records for PyNeuralMap.

Every structure here is an immutable value recomputed from a catalog
snapshot. ``to_dict`` produces the plain representation handed to the
rendering and assistant collaborators.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .types import (
    BridgeType,
    ClusterGrowth,
    ConnectionReason,
    EdgeType,
    ReadingPatternType,
    TemporalPreference,
    VelocityTrend,
)

PAIR_KEY_SEPARATOR = "|"


def pair_key(a: str, b: str) -> str:
    """Canonical identity of an unordered entity pair."""
    return PAIR_KEY_SEPARATOR.join(sorted((a, b)))


@dataclass(frozen=True)
class GraphEdge:
    """An undirected, reasoned connection between two entities."""

    from_id: str
    to_id: str
    edge_type: EdgeType
    score: float
    reasons: Tuple[ConnectionReason, ...]
    shared_tags: Tuple[str, ...] = ()
    strength: float = 0.0
    label: str = ""
    shared_by_reason: Dict[ConnectionReason, Tuple[str, ...]] = field(
        default_factory=dict, compare=False
    )

    @property
    def key(self) -> str:
        return pair_key(self.from_id, self.to_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert edge to dictionary representation."""
        return {
            "from_id": self.from_id,
            "to_id": self.to_id,
            "type": self.edge_type.value,
            "score": self.score,
            "reasons": [reason.value for reason in self.reasons],
            "shared_tags": list(self.shared_tags),
            "strength": self.strength,
            "label": self.label,
        }


@dataclass(frozen=True)
class EdgeSummary:
    """Stored explanation of an edge, looked up by canonical pair key."""

    reasons: Tuple[ConnectionReason, ...]
    shared_tags: Tuple[str, ...]
    score: float
    shared_by_reason: Dict[ConnectionReason, Tuple[str, ...]] = field(
        default_factory=dict, compare=False
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reasons": [reason.value for reason in self.reasons],
            "shared_tags": list(self.shared_tags),
            "score": self.score,
        }


@dataclass(frozen=True)
class RelatedEntity:
    """A direct neighbor ranked by edge score."""

    node_id: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"node_id": self.node_id, "score": self.score}


@dataclass(frozen=True)
class ConnectionBreakdown:
    """Aggregate of the reasons connecting an entity to its neighbors."""

    same_author: int = 0
    shared_themes: Tuple[str, ...] = ()
    shared_subgenres: Tuple[str, ...] = ()
    shared_eras: Tuple[str, ...] = ()
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "same_author": self.same_author,
            "shared_themes": list(self.shared_themes),
            "shared_subgenres": list(self.shared_subgenres),
            "shared_eras": list(self.shared_eras),
            "total": self.total,
        }


@dataclass(frozen=True)
class ThematicCluster:
    """Entities sharing a tag value.

    Temporal clusters additionally carry the members' historical-force and
    technological-context tags.
    """

    id: str
    theme: str
    books: Tuple[str, ...]
    strength: int
    historical_forces: Tuple[str, ...] = ()
    technological_context: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "theme": self.theme,
            "books": list(self.books),
            "strength": self.strength,
            "historical_forces": list(self.historical_forces),
            "technological_context": list(self.technological_context),
        }


@dataclass(frozen=True)
class ConceptualBridge:
    """A discovered connection between two works spanning taxonomies or eras."""

    from_id: str
    to_id: str
    bridge_type: BridgeType
    label: str
    bridge_concept: str
    description: str
    strength: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_id": self.from_id,
            "to_id": self.to_id,
            "bridge_type": self.bridge_type.value,
            "label": self.label,
            "bridge_concept": self.bridge_concept,
            "description": self.description,
            "strength": self.strength,
        }


@dataclass(frozen=True)
class ThemeVelocity:
    """Reading rate and trend of a theme over the trailing window."""

    theme: str
    books_per_month: float
    trend: VelocityTrend
    window_count: int = 0
    total_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "theme": self.theme,
            "books_per_month": self.books_per_month,
            "trend": self.trend.value,
            "window_count": self.window_count,
            "total_count": self.total_count,
        }


@dataclass(frozen=True)
class InfluenceLink:
    """Weighted influence from one author towards another."""

    target_author: str
    strength: float
    conceptual_link: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_author": self.target_author,
            "strength": self.strength,
            "conceptual_link": self.conceptual_link,
        }


@dataclass(frozen=True)
class AuthorInfluence:
    """Ranked outgoing influence links of an author."""

    author: str
    influences: Tuple[InfluenceLink, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "author": self.author,
            "influences": [link.to_dict() for link in self.influences],
        }


@dataclass(frozen=True)
class EvolutionStage:
    """How a concept manifests within a single literary era."""

    era: str
    book_ids: Tuple[str, ...]
    manifestation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "era": self.era,
            "book_ids": list(self.book_ids),
            "manifestation": self.manifestation,
        }


@dataclass(frozen=True)
class ConceptEvolution:
    """A concept's recurrence across successive literary eras."""

    conceptual_theme: str
    timeline: Tuple[EvolutionStage, ...]
    evolution_strength: float

    @property
    def eras(self) -> List[str]:
        return [stage.era for stage in self.timeline]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conceptual_theme": self.conceptual_theme,
            "timeline": [stage.to_dict() for stage in self.timeline],
            "evolution_strength": self.evolution_strength,
        }


@dataclass(frozen=True)
class ClusterHealth:
    """Diversity, recency and growth of a thematic cluster."""

    cluster_id: str
    name: str
    book_count: int
    diversity: float
    recency: float
    growth: ClusterGrowth
    health_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cluster_id": self.cluster_id,
            "name": self.name,
            "book_count": self.book_count,
            "diversity": self.diversity,
            "recency": self.recency,
            "growth": self.growth.value,
            "health_score": self.health_score,
        }


@dataclass(frozen=True)
class ReadingPattern:
    """A detected reading habit with supporting evidence."""

    pattern_type: ReadingPatternType
    confidence: float
    description: str
    evidence: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.pattern_type.value,
            "confidence": self.confidence,
            "description": self.description,
            "evidence": list(self.evidence),
        }


@dataclass(frozen=True)
class ReadingVelocity:
    """Catalog-wide reading rate, pace between books and recent momentum."""

    books_per_month: float
    trend: VelocityTrend
    average_days_between_books: float
    momentum: float
    book_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "books_per_month": self.books_per_month,
            "trend": self.trend.value,
            "average_days_between_books": self.average_days_between_books,
            "momentum": self.momentum,
            "book_count": self.book_count,
        }


@dataclass(frozen=True)
class ThematicConstellation:
    """A core theme with the satellite themes read alongside it."""

    name: str
    central_themes: Tuple[str, ...]
    satellites: Tuple[str, ...]
    books: Tuple[str, ...]
    density: float
    uniqueness: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "central_themes": list(self.central_themes),
            "satellites": list(self.satellites),
            "books": list(self.books),
            "density": self.density,
            "uniqueness": self.uniqueness,
        }


@dataclass(frozen=True)
class GenreShare:
    genre: str
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {"genre": self.genre, "percentage": self.percentage}


@dataclass(frozen=True)
class ReadingDNA:
    """Summary profile of a reader's tastes."""

    genre_profile: Tuple[GenreShare, ...]
    temporal_preference: TemporalPreference
    diversity_score: float
    exploration_score: float
    consistency_score: float
    signature: str
    average_publication_year: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "genre_profile": [share.to_dict() for share in self.genre_profile],
            "temporal_preference": self.temporal_preference.value,
            "diversity_score": self.diversity_score,
            "exploration_score": self.exploration_score,
            "consistency_score": self.consistency_score,
            "signature": self.signature,
            "average_publication_year": self.average_publication_year,
        }
