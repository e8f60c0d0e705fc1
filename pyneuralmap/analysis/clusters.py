"""Thematic and temporal cluster detection.

A cluster is the set of catalog records sharing one tag value. Thematic
clusters look at every taxonomy; temporal clusters only at temporal
context tags and carry the members' historical-force and technological
context tags for display.
"""

import logging
from typing import Callable, Dict, Iterable, List, Sequence, Set, Tuple

from ..catalog import CatalogRecord
from ..entities import slugify, unique_id
from ..models import ThematicCluster
from ..types import TagCategory
from ..vocabulary import classify_tag

logger = logging.getLogger(__name__)

MIN_CLUSTER_SIZE = 2


def _group_by_tag(
    records: Sequence[CatalogRecord],
    tags_of: Callable[[CatalogRecord], Iterable[str]],
) -> List[Tuple[str, List[CatalogRecord]]]:
    """Tags shared by enough records, largest groups first."""
    groups: Dict[str, List[CatalogRecord]] = {}
    for record in records or ():
        for tag in dict.fromkeys(tags_of(record)):
            if tag and tag.strip():
                groups.setdefault(tag, []).append(record)
    kept = [(tag, members) for tag, members in groups.items() if len(members) >= MIN_CLUSTER_SIZE]
    kept.sort(key=lambda item: len(item[1]), reverse=True)
    return kept


def detect_thematic_clusters(records: Sequence[CatalogRecord]) -> List[ThematicCluster]:
    """Group records by any tag they carry.

    Tags that slugify alike ("AI" and "ai") still get distinct cluster ids.

    Args:
        records: Catalog snapshot

    Returns:
        Clusters with at least two members, sorted by strength descending
    """
    used_ids: Set[str] = set()
    clusters = [
        ThematicCluster(
            id=unique_id(f"cluster-{slugify(tag)}", used_ids),
            theme=tag,
            books=tuple(member.id for member in members),
            strength=len(members),
        )
        for tag, members in _group_by_tag(records, lambda record: record.all_tags)
    ]

    logger.debug(f"Detected {len(clusters)} thematic clusters")
    return clusters


def detect_temporal_clusters(records: Sequence[CatalogRecord]) -> List[ThematicCluster]:
    """Group records by temporal context tag.

    Each cluster carries the historical-force and technological-context
    tags found across its members.
    """
    used_ids: Set[str] = set()
    clusters = []
    for tag, members in _group_by_tag(records, lambda record: record.temporal_context_tags):
        forces: Dict[str, None] = {}
        technology: Dict[str, None] = {}
        for member in members:
            for member_tag in member.temporal_context_tags:
                category = classify_tag(member_tag)
                if category is TagCategory.HISTORICAL_FORCES:
                    forces[member_tag] = None
                elif category is TagCategory.TECHNOLOGICAL_CONTEXT:
                    technology[member_tag] = None

        clusters.append(
            ThematicCluster(
                id=unique_id(f"temporal-{slugify(tag)}", used_ids),
                theme=tag,
                books=tuple(member.id for member in members),
                strength=len(members),
                historical_forces=tuple(forces),
                technological_context=tuple(technology),
            )
        )

    logger.debug(f"Detected {len(clusters)} temporal clusters")
    return clusters
