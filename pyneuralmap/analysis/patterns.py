"""Cluster health, reading patterns, constellations, reading DNA and insights.

These are higher-level readings of the cluster, bridge and influence
outputs, meant for the natural-language assistant collaborator.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from ..catalog import CatalogRecord, as_utc
from ..entities import is_known_author, slugify
from ..models import (
    AuthorInfluence,
    ClusterHealth,
    ConceptualBridge,
    GenreShare,
    ReadingDNA,
    ReadingPattern,
    ThematicCluster,
    ThematicConstellation,
)
from ..types import ClusterGrowth, ReadingPatternType, TemporalPreference
from ..vocabulary import filter_conceptual_tags
from .clusters import detect_thematic_clusters

logger = logging.getLogger(__name__)

RECENT_DAYS = 90
EXPANDING_RATIO = 1.3
DORMANT_RATIO = 0.7
CLUSTER_SIZE_SATURATION = 10

CHRONOLOGICAL_THRESHOLD = 0.3
THEMATIC_THRESHOLD = 0.4
AUTHOR_THRESHOLD = 0.3
MIN_PATTERN_RECORDS = 3
MAX_EVIDENCE = 3

MIN_CORE_OCCURRENCES = 3
MAX_CORE_THEMES = 8
MAX_SATELLITES = 5

MIN_DNA_RECORDS = 5
MAX_PROFILE_GENRES = 5
SIGNATURE_GENRES = 3
CLASSIC_BEFORE_YEAR = 1970
MODERN_BEFORE_YEAR = 2000

STRONG_BRIDGE_STRENGTH = 3.0


def classify_growth(earlier: int, later: int) -> ClusterGrowth:
    if later > earlier * EXPANDING_RATIO:
        return ClusterGrowth.EXPANDING
    if later < earlier * DORMANT_RATIO:
        return ClusterGrowth.DORMANT
    return ClusterGrowth.STABLE


def _cluster_growth(members: Sequence[CatalogRecord], now: datetime) -> ClusterGrowth:
    # Split the span from the first addition to now at its midpoint
    stamps = sorted(member.created_at for member in members if member.created_at)
    if not stamps:
        return ClusterGrowth.STABLE
    midpoint = stamps[0] + (now - stamps[0]) / 2
    earlier = sum(1 for stamp in stamps if stamp < midpoint)
    return classify_growth(earlier, len(stamps) - earlier)


def analyze_cluster_health(
    clusters: Sequence[ThematicCluster],
    records: Sequence[CatalogRecord],
    now: Optional[datetime] = None,
) -> List[ClusterHealth]:
    """Score the diversity, recency and growth of each cluster.

    Args:
        clusters: Thematic clusters to assess
        records: Catalog snapshot the clusters were built from
        now: Reference time, defaults to the current UTC time

    Returns:
        Cluster health entries sorted by health score descending
    """
    now = as_utc(now)
    recent_cutoff = now - timedelta(days=RECENT_DAYS)
    records_by_id: Dict[str, CatalogRecord] = {
        record.id: record for record in records or ()
    }

    health = []
    for cluster in clusters or ():
        members = [
            records_by_id[book_id] for book_id in cluster.books if book_id in records_by_id
        ]
        if not members:
            continue

        count = len(members)
        authors = {member.author.strip().lower() for member in members}
        diversity = len(authors) / count
        recent = sum(
            1 for member in members if member.created_at and member.created_at >= recent_cutoff
        )
        recency = recent / count
        size_score = min(count / CLUSTER_SIZE_SATURATION, 1.0)
        health_score = diversity * 0.3 + recency * 0.4 + size_score * 0.3

        health.append(
            ClusterHealth(
                cluster_id=cluster.id,
                name=cluster.theme,
                book_count=count,
                diversity=round(diversity, 2),
                recency=round(recency, 2),
                growth=_cluster_growth(members, now),
                health_score=round(health_score, 2),
            )
        )

    health.sort(key=lambda entry: entry.health_score, reverse=True)
    return health


def _chronological_score(records: Sequence[CatalogRecord]) -> float:
    dated = [
        record
        for record in records
        if record.publication_year is not None and record.created_at is not None
    ]
    if len(dated) < MIN_PATTERN_RECORDS:
        return 0.0
    dated.sort(key=lambda record: record.created_at)
    in_order = sum(
        1
        for previous, current in zip(dated, dated[1:])
        if current.publication_year >= previous.publication_year
    )
    return in_order / (len(dated) - 1)


def _chronological_evidence(records: Sequence[CatalogRecord]) -> List[str]:
    with_years = sorted(
        (record for record in records if record.publication_year is not None),
        key=lambda record: record.publication_year,
    )
    return [f"{record.title} ({record.publication_year})" for record in with_years[:MAX_EVIDENCE]]


def _author_counts(records: Sequence[CatalogRecord]) -> Counter:
    counts: Counter = Counter()
    for record in records:
        if is_known_author(record.author):
            counts[record.author.strip()] += 1
    return counts


def analyze_reading_patterns(
    records: Sequence[CatalogRecord],
    clusters: Optional[Sequence[ThematicCluster]] = None,
) -> List[ReadingPattern]:
    """Detect chronological, thematic and author-driven reading habits.

    Args:
        records: Catalog snapshot
        clusters: Precomputed thematic clusters, detected when omitted

    Returns:
        Reported patterns sorted by confidence descending
    """
    records = list(records or ())
    if len(records) < MIN_PATTERN_RECORDS:
        return []
    if clusters is None:
        clusters = detect_thematic_clusters(records)

    patterns = []

    chronological = _chronological_score(records)
    if chronological > CHRONOLOGICAL_THRESHOLD:
        patterns.append(
            ReadingPattern(
                pattern_type=ReadingPatternType.CHRONOLOGICAL,
                confidence=round(chronological, 2),
                description="Books are read roughly in publication order",
                evidence=tuple(_chronological_evidence(records)),
            )
        )

    clustered_ids = {book_id for cluster in clusters for book_id in cluster.books}
    thematic = sum(1 for record in records if record.id in clustered_ids) / len(records)
    if thematic > THEMATIC_THRESHOLD:
        patterns.append(
            ReadingPattern(
                pattern_type=ReadingPatternType.THEMATIC_DEEP_DIVE,
                confidence=round(thematic, 2),
                description="Themes are explored in depth across several books",
                evidence=tuple(
                    f"{cluster.theme}: {len(cluster.books)} books"
                    for cluster in clusters[:MAX_EVIDENCE]
                ),
            )
        )

    author_counts = _author_counts(records)
    if author_counts:
        repeat_authors = [(name, n) for name, n in author_counts.most_common() if n > 1]
        exploration = len(repeat_authors) / len(author_counts)
        if exploration > AUTHOR_THRESHOLD:
            patterns.append(
                ReadingPattern(
                    pattern_type=ReadingPatternType.AUTHOR_EXPLORATION,
                    confidence=round(exploration, 2),
                    description="Several works by the same authors are explored",
                    evidence=tuple(
                        f"{name}: {n} books" for name, n in repeat_authors[:MAX_EVIDENCE]
                    ),
                )
            )

    patterns.sort(key=lambda pattern: pattern.confidence, reverse=True)
    logger.debug(f"Detected {len(patterns)} reading patterns")
    return patterns


def map_thematic_constellations(
    records: Sequence[CatalogRecord],
) -> List[ThematicConstellation]:
    """Group the catalog around its most frequent official conceptual tags.

    A core theme is an official conceptual tag carried by at least three
    records. Its satellites are the tags most often read alongside it.

    Args:
        records: Catalog snapshot

    Returns:
        Constellations sorted by member count descending
    """
    records = list(records or ())
    core_counts = Counter(
        tag for record in records for tag in filter_conceptual_tags(record.tags)
    )
    core_themes = [
        tag
        for tag, count in core_counts.most_common(MAX_CORE_THEMES)
        if count >= MIN_CORE_OCCURRENCES
    ]

    constellations = []
    for core in core_themes:
        related = Counter(
            tag
            for record in records
            if core in record.tags
            for tag in record.tags
            if tag != core
        )
        satellites = [tag for tag, _ in related.most_common(MAX_SATELLITES)]
        members = [
            record.id
            for record in records
            if core in record.tags or any(tag in record.tags for tag in satellites)
        ]
        if satellites:
            overlap = sum(1 for tag in satellites if tag in core_themes)
            uniqueness = 1 - overlap / len(satellites)
        else:
            uniqueness = 1.0

        constellations.append(
            ThematicConstellation(
                name=core,
                central_themes=(core,),
                satellites=tuple(satellites),
                books=tuple(members),
                density=round(len(members) / len(records), 2),
                uniqueness=round(uniqueness, 2),
            )
        )

    constellations.sort(key=lambda constellation: len(constellation.books), reverse=True)
    logger.debug(f"Mapped {len(constellations)} thematic constellations")
    return constellations


def classify_temporal_preference(average_year: Optional[float]) -> TemporalPreference:
    if average_year is None:
        return TemporalPreference.MIXED
    if average_year < CLASSIC_BEFORE_YEAR:
        return TemporalPreference.CLASSIC
    if average_year < MODERN_BEFORE_YEAR:
        return TemporalPreference.MODERN
    return TemporalPreference.CONTEMPORARY


def generate_reading_dna(records: Sequence[CatalogRecord]) -> Optional[ReadingDNA]:
    """Profile genre mix, publication period and author diversity.

    Args:
        records: Catalog snapshot

    Returns:
        ReadingDNA, or None for catalogs of fewer than five records
    """
    records = list(records or ())
    if len(records) < MIN_DNA_RECORDS:
        return None

    genre_counts = Counter(tag for record in records for tag in record.tags)
    total_tags = sum(genre_counts.values())
    genre_profile = tuple(
        GenreShare(genre=genre, percentage=round(count / total_tags * 100, 1))
        for genre, count in genre_counts.most_common(MAX_PROFILE_GENRES)
    )

    years = [record.publication_year for record in records if record.publication_year is not None]
    average_year = sum(years) / len(years) if years else None
    preference = classify_temporal_preference(average_year)

    authors = {record.author.strip().lower() for record in records}
    diversity = min(len(authors) / len(records), 1.0)
    consistency = max(genre_counts.values(), default=0) / len(records)

    signature = "-".join(
        [
            preference.value,
            *(slugify(share.genre) for share in genre_profile[:SIGNATURE_GENRES]),
            "explorer",
        ]
    )

    return ReadingDNA(
        genre_profile=genre_profile,
        temporal_preference=preference,
        diversity_score=round(diversity, 2),
        exploration_score=round(1 - consistency, 2),
        consistency_score=round(consistency, 2),
        signature=signature,
        average_publication_year=round(average_year, 1) if average_year is not None else None,
    )


def generate_insights(
    clusters: Sequence[ThematicCluster],
    bridges: Sequence[ConceptualBridge],
    patterns: Sequence[ReadingPattern],
    influences: Sequence[AuthorInfluence],
) -> List[str]:
    """Summarize analysis outputs as short sentences."""
    insights = []
    if clusters:
        strongest = clusters[0]
        insights.append(
            f"Strongest cluster: {strongest.theme} with {len(strongest.books)} books"
        )

    strong_bridges = sum(
        1 for bridge in bridges if bridge.strength >= STRONG_BRIDGE_STRENGTH
    )
    if strong_bridges:
        insights.append(f"Found {strong_bridges} strong conceptual bridges")

    if patterns:
        top = patterns[0]
        insights.append(
            f"Dominant reading pattern: {top.pattern_type.value.replace('_', ' ')} "
            f"({top.confidence:.0%} confidence)"
        )

    if influences:
        insights.append(f"Influence maps available for {len(influences)} authors")
    return insights
