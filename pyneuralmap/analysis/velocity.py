"""Theme velocity, reading velocity and author influence analysis.

Theme velocity measures how quickly each tag is being read over a trailing
window of months (one month is 30 days). Reading velocity is the same
measure for the catalog as a whole. Influence maps weigh the
conceptual and legacy-context overlap between authors' bodies of work.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..catalog import CatalogRecord, as_utc
from ..entities import is_known_author
from ..graph.scoring import shared_values
from ..models import AuthorInfluence, InfluenceLink, ReadingVelocity, ThemeVelocity
from ..types import VelocityTrend

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
SECONDS_PER_MONTH = 30 * SECONDS_PER_DAY
VELOCITY_WINDOW_MONTHS = 6
MIN_THEME_OCCURRENCES = 2

ACCELERATING_RATIO = 1.2
SLOWING_RATIO = 0.8
MIN_SPAN_MONTHS = 0.1
MOMENTUM_WINDOW_DAYS = 30
MOMENTUM_SATURATION = 5

CONCEPT_INFLUENCE_WEIGHT = 2.0
CONTEXT_INFLUENCE_WEIGHT = 1.5
INFLUENCE_TOP_K = 5
DEFAULT_INFLUENCE_LABEL = "Shared themes"


def classify_trend(first_half: float, second_half: float) -> VelocityTrend:
    """Classify the trend between two halves of a reading window.

    Args:
        first_half: Occurrences (or rate) in the earlier half
        second_half: Occurrences (or rate) in the later half

    Returns:
        ACCELERATING when the later half exceeds the earlier by more than
        20%, SLOWING when it falls more than 20% short, otherwise STEADY
    """
    if second_half > first_half * ACCELERATING_RATIO:
        return VelocityTrend.ACCELERATING
    if second_half < first_half * SLOWING_RATIO:
        return VelocityTrend.SLOWING
    return VelocityTrend.STEADY


def calculate_theme_velocity(
    records: Sequence[CatalogRecord],
    now: Optional[datetime] = None,
    window_months: int = VELOCITY_WINDOW_MONTHS,
) -> List[ThemeVelocity]:
    """Compute per-tag reading velocity over the trailing window.

    Records without a creation timestamp are ignored. Tags seen fewer than
    twice are discarded. The window is split at its temporal midpoint to
    derive the trend.

    Args:
        records: Catalog snapshot
        now: Reference time, defaults to the current UTC time
        window_months: Length of the trailing window in months

    Returns:
        Velocities sorted by books per month descending
    """
    now_ts = as_utc(now).timestamp()
    window_seconds = window_months * SECONDS_PER_MONTH
    window_start = now_ts - window_seconds
    window_midpoint = window_start + window_seconds / 2

    occurrences: Dict[str, List[float]] = {}
    for record in records or ():
        if record.created_at is None:
            continue
        stamp = record.created_at.timestamp()
        for tag in record.all_tags:
            occurrences.setdefault(tag, []).append(stamp)

    velocities = []
    for theme, stamps in occurrences.items():
        if len(stamps) < MIN_THEME_OCCURRENCES:
            continue

        times = np.sort(np.asarray(stamps, dtype=float))
        in_window = times[(times >= window_start) & (times <= now_ts)]
        window_count = int(in_window.size)

        if window_count:
            elapsed_months = (now_ts - in_window[0]) / SECONDS_PER_MONTH
            elapsed_months = float(np.clip(elapsed_months, 1.0, max(window_months, 1)))
            books_per_month = round(window_count / elapsed_months, 2)
        else:
            books_per_month = 0.0

        first_half = int(np.count_nonzero(in_window < window_midpoint))
        second_half = window_count - first_half

        velocities.append(
            ThemeVelocity(
                theme=theme,
                books_per_month=books_per_month,
                trend=classify_trend(first_half, second_half),
                window_count=window_count,
                total_count=len(stamps),
            )
        )

    velocities.sort(key=lambda velocity: velocity.books_per_month, reverse=True)
    logger.debug(f"Calculated velocity for {len(velocities)} themes")
    return velocities


def _rate_per_month(times: np.ndarray) -> float:
    span_months = (times[-1] - times[0]) / SECONDS_PER_MONTH
    return times.size / max(span_months, MIN_SPAN_MONTHS)


def calculate_reading_velocity(
    records: Sequence[CatalogRecord], now: Optional[datetime] = None
) -> Optional[ReadingVelocity]:
    """Compute the reading rate of the whole catalog.

    The trend compares the rate of the later half of the dated records
    against the earlier half. Momentum counts additions within the last
    30 days, saturating at five.

    Args:
        records: Catalog snapshot
        now: Reference time for momentum, defaults to the current UTC time

    Returns:
        ReadingVelocity, or None when fewer than two records are dated
    """
    stamps = [record.created_at.timestamp() for record in records or () if record.created_at]
    if len(stamps) < 2:
        return None

    times = np.sort(np.asarray(stamps, dtype=float))
    span_days = (times[-1] - times[0]) / SECONDS_PER_DAY
    split = times.size // 2

    age_days = (as_utc(now).timestamp() - times) / SECONDS_PER_DAY
    recent = int(np.count_nonzero((age_days >= 0) & (age_days < MOMENTUM_WINDOW_DAYS)))

    velocity = ReadingVelocity(
        books_per_month=round(_rate_per_month(times), 2),
        trend=classify_trend(_rate_per_month(times[:split]), _rate_per_month(times[split:])),
        average_days_between_books=round(span_days / (times.size - 1), 1),
        momentum=round(min(recent / MOMENTUM_SATURATION, 1.0), 2),
        book_count=int(times.size),
    )
    logger.debug(f"Reading velocity: {velocity.books_per_month} books/month ({velocity.trend.value})")
    return velocity


def map_author_influences(
    records: Sequence[CatalogRecord], top_k: int = INFLUENCE_TOP_K
) -> List[AuthorInfluence]:
    """Weigh thematic overlap between every pair of authors.

    Args:
        records: Catalog snapshot
        top_k: Maximum outgoing influence links kept per author

    Returns:
        Influence maps in first-seen author order, only for authors with at
        least one influence link
    """
    # name key -> (display name, conceptual tags, context tags)
    authors: Dict[str, Tuple[str, Dict[str, None], Dict[str, None]]] = {}
    for record in records or ():
        if not is_known_author(record.author):
            continue
        key = record.author.strip().lower()
        if key not in authors:
            authors[key] = (record.author.strip(), {}, {})
        _, concepts, contexts = authors[key]
        concepts.update(dict.fromkeys(record.tags))
        contexts.update(dict.fromkeys(record.historical_context_tags))

    influence_maps = []
    for key, (name, concepts, contexts) in authors.items():
        links = []
        for other_key, (other_name, other_concepts, other_contexts) in authors.items():
            if other_key == key:
                continue
            shared_concepts = shared_values(list(concepts), list(other_concepts))
            shared_contexts = shared_values(list(contexts), list(other_contexts))
            weight = (
                len(shared_concepts) * CONCEPT_INFLUENCE_WEIGHT
                + len(shared_contexts) * CONTEXT_INFLUENCE_WEIGHT
            )
            if weight <= 0:
                continue

            label_parts = shared_concepts[:1] + shared_contexts[:1]
            links.append(
                InfluenceLink(
                    target_author=other_name,
                    strength=weight,
                    conceptual_link=" + ".join(label_parts) or DEFAULT_INFLUENCE_LABEL,
                )
            )

        if links:
            links.sort(key=lambda link: link.strength, reverse=True)
            influence_maps.append(
                AuthorInfluence(author=name, influences=tuple(links[:top_k]))
            )

    logger.debug(f"Mapped influences for {len(influence_maps)} authors")
    return influence_maps
