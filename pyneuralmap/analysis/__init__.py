"""Catalog-level analyses: clusters, bridges, velocity, influence and evolution."""

from .bridges import find_conceptual_bridges, find_temporal_bridges
from .clusters import detect_temporal_clusters, detect_thematic_clusters
from .evolution import track_concept_evolution
from .patterns import (
    analyze_cluster_health,
    analyze_reading_patterns,
    generate_insights,
    generate_reading_dna,
    map_thematic_constellations,
)
from .velocity import (
    calculate_reading_velocity,
    calculate_theme_velocity,
    classify_trend,
    map_author_influences,
)

__all__ = [
    "analyze_cluster_health",
    "analyze_reading_patterns",
    "calculate_reading_velocity",
    "calculate_theme_velocity",
    "classify_trend",
    "detect_temporal_clusters",
    "detect_thematic_clusters",
    "find_conceptual_bridges",
    "find_temporal_bridges",
    "generate_insights",
    "generate_reading_dna",
    "map_author_influences",
    "map_thematic_constellations",
    "track_concept_evolution",
]
