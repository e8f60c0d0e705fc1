"""Conceptual and temporal bridge discovery.

Bridges are computed over every unordered pair of catalog records with no
bucketing, so rare cross-cutting connections are never hidden. The output
is exhaustive and sorted by strength.
"""

import logging
from typing import List, Sequence

from ..catalog import CatalogRecord
from ..graph.scoring import shared_values
from ..models import ConceptualBridge
from ..types import BridgeType, TagCategory
from ..vocabulary import classify_tag, resolve_literary_era

logger = logging.getLogger(__name__)

# Per-taxonomy weights
THEMATIC_BRIDGE_WEIGHT = 2.0
TEMPORAL_BRIDGE_WEIGHT = 1.8
HISTORICAL_BRIDGE_WEIGHT = 1.5

# Compound weights
CROSS_TEMPORAL_BRIDGE_WEIGHT = 3.5
CROSS_TAXONOMY_BRIDGE_WEIGHT = 3.0

# Cross-era weights
FORCE_BRIDGE_WEIGHT = 2.5
TECH_BRIDGE_WEIGHT = 2.5
EVOLUTION_BRIDGE_WEIGHT = 3.0


def _make_bridge(
    record_a: CatalogRecord,
    record_b: CatalogRecord,
    bridge_type: BridgeType,
    label: str,
    concept: str,
    description: str,
    strength: float,
) -> ConceptualBridge:
    return ConceptualBridge(
        from_id=record_a.id,
        to_id=record_b.id,
        bridge_type=bridge_type,
        label=label,
        bridge_concept=concept,
        description=description,
        strength=strength,
    )


def _sorted_bridges(bridges: List[ConceptualBridge]) -> List[ConceptualBridge]:
    bridges.sort(key=lambda bridge: bridge.strength, reverse=True)
    return bridges


def analyze_conceptual_bridge(
    record_a: CatalogRecord, record_b: CatalogRecord
) -> List[ConceptualBridge]:
    """All conceptual bridges between two records, unsorted."""
    concepts = shared_values(record_a.tags, record_b.tags)
    temporal = shared_values(record_a.temporal_context_tags, record_b.temporal_context_tags)
    historical = shared_values(
        record_a.historical_context_tags, record_b.historical_context_tags
    )

    bridges = []
    for tag in concepts:
        bridges.append(
            _make_bridge(
                record_a,
                record_b,
                BridgeType.THEMATIC,
                "Shared theme",
                tag,
                f"Both works explore {tag}",
                THEMATIC_BRIDGE_WEIGHT,
            )
        )
    for tag in temporal:
        bridges.append(
            _make_bridge(
                record_a,
                record_b,
                BridgeType.TEMPORAL,
                "Shared temporal context",
                tag,
                f"Both works are situated in {tag}",
                TEMPORAL_BRIDGE_WEIGHT,
            )
        )
    for tag in historical:
        bridges.append(
            _make_bridge(
                record_a,
                record_b,
                BridgeType.HISTORICAL,
                "Shared historical context",
                tag,
                f"Both works reflect {tag}",
                HISTORICAL_BRIDGE_WEIGHT,
            )
        )

    if concepts and temporal:
        bridges.append(
            _make_bridge(
                record_a,
                record_b,
                BridgeType.CROSS_TEMPORAL,
                "Cross-temporal bridge",
                f"{concepts[0]} + {temporal[0]}",
                f"{concepts[0]} connects these works through {temporal[0]}",
                CROSS_TEMPORAL_BRIDGE_WEIGHT,
            )
        )
    if concepts and historical:
        bridges.append(
            _make_bridge(
                record_a,
                record_b,
                BridgeType.CROSS_TAXONOMY,
                "Cross-taxonomy bridge",
                f"{concepts[0]} + {historical[0]}",
                f"{concepts[0]} meets the historical context of {historical[0]}",
                CROSS_TAXONOMY_BRIDGE_WEIGHT,
            )
        )
    return bridges


def find_conceptual_bridges(records: Sequence[CatalogRecord]) -> List[ConceptualBridge]:
    """Find per-taxonomy and compound bridges over every record pair.

    Args:
        records: Catalog snapshot

    Returns:
        Bridges sorted by strength descending
    """
    records = list(records or ())
    bridges: List[ConceptualBridge] = []
    for i in range(len(records)):
        for j in range(i + 1, len(records)):
            bridges.extend(analyze_conceptual_bridge(records[i], records[j]))

    logger.debug(
        f"Found {len(bridges)} conceptual bridges across {len(records)} records"
    )
    return _sorted_bridges(bridges)


def analyze_temporal_bridge(
    record_a: CatalogRecord, record_b: CatalogRecord
) -> List[ConceptualBridge]:
    """Cross-era bridges between two records, unsorted.

    Only records resolving to two different literary eras can bridge.
    """
    era_a = resolve_literary_era(record_a.temporal_context_tags)
    era_b = resolve_literary_era(record_b.temporal_context_tags)
    if era_a is None or era_b is None or era_a == era_b:
        return []

    shared = shared_values(record_a.temporal_context_tags, record_b.temporal_context_tags)
    forces = [tag for tag in shared if classify_tag(tag) is TagCategory.HISTORICAL_FORCES]
    technology = [
        tag for tag in shared if classify_tag(tag) is TagCategory.TECHNOLOGICAL_CONTEXT
    ]

    bridges = []
    for tag in forces:
        bridges.append(
            _make_bridge(
                record_a,
                record_b,
                BridgeType.FORCE,
                "Historical force across eras",
                tag,
                f"{tag} links {era_a} and {era_b}",
                FORCE_BRIDGE_WEIGHT,
            )
        )
    for tag in technology:
        bridges.append(
            _make_bridge(
                record_a,
                record_b,
                BridgeType.TECH,
                "Technology across eras",
                tag,
                f"{tag} links {era_a} and {era_b}",
                TECH_BRIDGE_WEIGHT,
            )
        )
    if forces and technology:
        bridges.append(
            _make_bridge(
                record_a,
                record_b,
                BridgeType.EVOLUTION,
                "Evolution across eras",
                f"{forces[0]} + {technology[0]}",
                f"Shared forces and technology carry over from {era_a} to {era_b}",
                EVOLUTION_BRIDGE_WEIGHT,
            )
        )
    return bridges


def find_temporal_bridges(records: Sequence[CatalogRecord]) -> List[ConceptualBridge]:
    """Find force, tech and evolution bridges between works of different eras."""
    records = list(records or ())
    bridges: List[ConceptualBridge] = []
    for i in range(len(records)):
        for j in range(i + 1, len(records)):
            bridges.extend(analyze_temporal_bridge(records[i], records[j]))

    logger.debug(f"Found {len(bridges)} temporal bridges")
    return _sorted_bridges(bridges)
