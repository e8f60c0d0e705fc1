"""Common type definitions for PyNeuralMap.

This module contains the closed enums shared by the entity model, the
graph builder and the analysis passes, so every layer matches on the
same discriminants.
"""

from enum import Enum


class NodeType(Enum):
    """Discriminant of the entity tagged union."""

    BOOK = "book"
    AUTHOR = "author"
    PROTAGONIST = "protagonist"


class EdgeType(Enum):
    """Closed set of edge types in the neural map."""

    THEME_SHARED = "tag_shared"
    AUTHOR_SHARED = "author_shared"
    AUTHORSHIP = "authorship"
    MEMBERSHIP = "membership"


class ConnectionReason(Enum):
    """Reason codes explaining why two entities are connected."""

    SAME_AUTHOR = "same_author"
    SHARED_THEME = "shared_theme"
    SHARED_SUBGENRE = "shared_subgenre"
    SHARED_ERA = "shared_era"
    WROTE = "wrote"
    APPEARS_IN = "appears_in"


class TagCategory(Enum):
    """Taxonomic buckets of the temporal context vocabulary."""

    LITERARY_ERA = "literaryEra"
    HISTORICAL_FORCES = "historicalForces"
    TECHNOLOGICAL_CONTEXT = "technologicalContext"


class BridgeType(Enum):
    """Bridge types emitted by the conceptual and temporal bridge passes."""

    # Per-taxonomy bridges
    THEMATIC = "thematic"
    TEMPORAL = "temporal"
    HISTORICAL = "historical"

    # Compound bridges
    CROSS_TEMPORAL = "cross-temporal"
    CROSS_TAXONOMY = "cross-taxonomy"

    # Cross-era bridges
    FORCE = "force"
    TECH = "tech"
    EVOLUTION = "evolution"


class VelocityTrend(Enum):
    """Reading-rate trend of a theme."""

    ACCELERATING = "accelerating"
    STEADY = "steady"
    SLOWING = "slowing"


class ClusterGrowth(Enum):
    """Growth classification used by cluster health."""

    EXPANDING = "expanding"
    STABLE = "stable"
    DORMANT = "dormant"


class ReadingPatternType(Enum):
    """Reading habits detected over a catalog."""

    CHRONOLOGICAL = "chronological"
    THEMATIC_DEEP_DIVE = "thematic_deep_dive"
    AUTHOR_EXPLORATION = "author_exploration"


class TemporalPreference(Enum):
    """Publication-period leaning of a reader's catalog."""

    CLASSIC = "classic"
    MODERN = "modern"
    CONTEMPORARY = "contemporary"
    MIXED = "mixed"
