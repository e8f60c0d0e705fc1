"""Connection scoring between two entities.

The score accumulates independent components in a fixed order: same
author, shared conceptual tags (capped), shared context/subgenre tags
(capped) and shared era. An era tag in the context overlap is scored as a
subgenre; only a lone shared era earns the smaller era bonus. Publisher
similarity is never read.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..entities import Entity, is_known_author
from ..types import ConnectionReason
from ..vocabulary import is_era_like

# Scoring constants
SCORE_SAME_AUTHOR = 50
SCORE_SHARED_THEME = 10
SCORE_SHARED_SUBGENRE = 15
SCORE_SHARED_ERA = 5

MAX_THEME_CONTRIBUTION = 40
MAX_SUBGENRE_CONTRIBUTION = 45
MIN_CONNECTION_SCORE = 10


@dataclass(frozen=True)
class ConnectionResult:
    """Outcome of scoring a pair of entities."""

    score: float
    reasons: List[ConnectionReason]
    shared_tags: List[str]
    should_connect: bool
    shared_by_reason: Dict[ConnectionReason, List[str]] = field(
        default_factory=dict, compare=False
    )


def get_era(entity: Entity) -> Optional[str]:
    """First context tag of an entity that looks like an era label."""
    for tag in entity.context_tags:
        if is_era_like(tag):
            return tag
    return None


def shared_values(left: Sequence[str], right: Sequence[str]) -> List[str]:
    """Non-blank values present in both sequences, in ``left`` order."""
    right_set = set(right)
    shared = []
    for tag in left:
        if tag in right_set and tag.strip() and tag not in shared:
            shared.append(tag)
    return shared


def calculate_connection_strength(entity_a: Entity, entity_b: Entity) -> ConnectionResult:
    """Score the relationship strength between two entities.

    The result is symmetric in score and reason set; only the order of
    ``shared_tags`` depends on argument order.

    Args:
        entity_a: First entity
        entity_b: Second entity

    Returns:
        ConnectionResult with score, reasons, shared tags and the
        retention decision
    """
    score = 0
    reasons: List[ConnectionReason] = []
    shared_tags: List[str] = []
    shared_by_reason: Dict[ConnectionReason, List[str]] = {}

    # Same author - highest priority
    if (
        is_known_author(entity_a.author)
        and is_known_author(entity_b.author)
        and entity_a.author.strip().lower() == entity_b.author.strip().lower()
    ):
        score += SCORE_SAME_AUTHOR
        reasons.append(ConnectionReason.SAME_AUTHOR)

    # Shared conceptual tags (themes)
    shared_themes = shared_values(entity_a.tags, entity_b.tags)
    if shared_themes:
        score += min(len(shared_themes) * SCORE_SHARED_THEME, MAX_THEME_CONTRIBUTION)
        reasons.append(ConnectionReason.SHARED_THEME)
        shared_tags.extend(shared_themes)
        shared_by_reason[ConnectionReason.SHARED_THEME] = shared_themes

    # Shared context tags (subgenres); a lone common era falls through to the era bonus
    era_a = get_era(entity_a)
    era_b = get_era(entity_b)
    shared_era = era_a if era_a and era_a == era_b else None
    shared_context = shared_values(entity_a.context_tags, entity_b.context_tags)
    if shared_context and shared_context != [shared_era]:
        score += min(
            len(shared_context) * SCORE_SHARED_SUBGENRE, MAX_SUBGENRE_CONTRIBUTION
        )
        reasons.append(ConnectionReason.SHARED_SUBGENRE)
        shared_tags.extend(shared_context)
        shared_by_reason[ConnectionReason.SHARED_SUBGENRE] = shared_context

    # Shared era, unless already counted in the subgenre overlap
    if shared_era and ConnectionReason.SHARED_SUBGENRE not in reasons:
        score += SCORE_SHARED_ERA
        reasons.append(ConnectionReason.SHARED_ERA)
        shared_tags.append(shared_era)
        shared_by_reason[ConnectionReason.SHARED_ERA] = [shared_era]

    should_connect = score >= MIN_CONNECTION_SCORE and len(reasons) > 0

    return ConnectionResult(
        score=score,
        reasons=reasons,
        shared_tags=shared_tags,
        should_connect=should_connect,
        shared_by_reason=shared_by_reason,
    )
