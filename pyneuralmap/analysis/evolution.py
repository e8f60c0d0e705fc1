"""Temporal evolution of conceptual themes across literary eras."""

import logging
from typing import Dict, List, Sequence

from ..catalog import CatalogRecord
from ..models import ConceptEvolution, EvolutionStage
from ..vocabulary import era_rank, literary_eras_of

logger = logging.getLogger(__name__)

MIN_EVOLUTION_ERAS = 2
EVOLUTION_STRENGTH_PER_ERA = 1.5


def track_concept_evolution(records: Sequence[CatalogRecord]) -> List[ConceptEvolution]:
    """Trace each conceptual tag through the literary eras it appears in.

    Args:
        records: Catalog snapshot

    Returns:
        Evolutions of themes spanning at least two eras, sorted by
        evolution strength descending. Timelines follow the canonical era
        order.
    """
    # theme -> era -> record ids
    buckets: Dict[str, Dict[str, List[str]]] = {}
    for record in records or ():
        eras = literary_eras_of(record.context_tags)
        if not eras:
            continue
        for theme in record.tags:
            theme_buckets = buckets.setdefault(theme, {})
            for era in eras:
                members = theme_buckets.setdefault(era, [])
                if record.id not in members:
                    members.append(record.id)

    evolutions = []
    for theme, eras in buckets.items():
        if len(eras) < MIN_EVOLUTION_ERAS:
            continue
        timeline = tuple(
            EvolutionStage(
                era=era,
                book_ids=tuple(eras[era]),
                manifestation=f"{theme} in {era}",
            )
            for era in sorted(eras, key=era_rank)
        )
        evolutions.append(
            ConceptEvolution(
                conceptual_theme=theme,
                timeline=timeline,
                evolution_strength=len(timeline) * EVOLUTION_STRENGTH_PER_ERA,
            )
        )

    evolutions.sort(key=lambda evolution: evolution.evolution_strength, reverse=True)
    logger.debug(f"Tracked {len(evolutions)} evolving themes")
    return evolutions
