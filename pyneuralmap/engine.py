"""Snapshot facade for the neural map engine.

``NeuralMapEngine`` holds one immutable catalog snapshot at a time and
memoizes every derived output against the snapshot's content
fingerprint. Loading an identical snapshot keeps all cached outputs;
loading a changed one drops them.
"""

import hashlib
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from .analysis import (
    analyze_cluster_health,
    analyze_reading_patterns,
    calculate_reading_velocity,
    calculate_theme_velocity,
    detect_temporal_clusters,
    detect_thematic_clusters,
    find_conceptual_bridges,
    find_temporal_bridges,
    generate_insights,
    generate_reading_dna,
    map_author_influences,
    map_thematic_constellations,
    track_concept_evolution,
)
from .catalog import AuthorDirectory, CatalogRecord, normalize_records
from .config import Config
from .entities import Entity, build_entities
from .graph import AdjacencyIndex, GraphBuilder
from .models import (
    AuthorInfluence,
    ClusterHealth,
    ConceptEvolution,
    ConceptualBridge,
    GraphEdge,
    ReadingDNA,
    ReadingPattern,
    ReadingVelocity,
    ThematicCluster,
    ThematicConstellation,
    ThemeVelocity,
)

logger = logging.getLogger(__name__)


def fingerprint_records(records: Iterable[CatalogRecord]) -> str:
    """SHA-256 content fingerprint of a normalized snapshot."""
    payload = json.dumps(
        [record.to_dict() for record in records], sort_keys=True, ensure_ascii=False
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class NeuralMapEngine:
    """Memoizing facade over entity synthesis, the graph and the analyses."""

    def __init__(
        self,
        config: Optional[Config] = None,
        author_directory: Optional[AuthorDirectory] = None,
    ) -> None:
        """Initialize the engine with an empty snapshot.

        Args:
            config: Engine configuration, loaded from the environment if omitted
            author_directory: Optional collaborator used to decorate authors
        """
        self.config = config or Config()
        self.author_directory = author_directory
        self._records: Tuple[CatalogRecord, ...] = ()
        self._fingerprint: Optional[str] = None
        self._cache: Dict[Hashable, Any] = {}
        self._subset_key: Optional[frozenset] = None
        self._cache_hits = 0
        self._cache_misses = 0

    @property
    def records(self) -> Tuple[CatalogRecord, ...]:
        return self._records

    @property
    def fingerprint(self) -> Optional[str]:
        return self._fingerprint

    def load(self, raw_records: Optional[Iterable[Any]]) -> str:
        """Load a catalog snapshot.

        Malformed records are skipped. Cached outputs are kept when the
        normalized snapshot is unchanged.

        Args:
            raw_records: Raw catalog mappings or CatalogRecord values

        Returns:
            Content fingerprint of the loaded snapshot
        """
        records = tuple(normalize_records(raw_records))
        fingerprint = fingerprint_records(records)

        if fingerprint == self._fingerprint:
            logger.debug(f"Catalog snapshot unchanged ({fingerprint[:12]})")
            return fingerprint

        self._records = records
        self._fingerprint = fingerprint
        self._invalidate()
        logger.info(
            f"Loaded catalog snapshot {fingerprint[:12]} with {len(records)} records"
        )
        return fingerprint

    def set_author_directory(self, author_directory: Optional[AuthorDirectory]) -> None:
        """Replace the author directory, dropping cached outputs."""
        self.author_directory = author_directory
        self._invalidate()

    def _invalidate(self) -> None:
        if self._cache:
            logger.info(f"Invalidating {len(self._cache)} cached outputs")
        self._cache.clear()
        self._subset_key = None

    def _cached(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        if key in self._cache:
            self._cache_hits += 1
            logger.debug(f"Cache hit: {key[0] if isinstance(key, tuple) else key}")
            return self._cache[key]
        self._cache_misses += 1
        value = compute()
        self._cache[key] = value
        return value

    def rebuild(self) -> Dict[str, Any]:
        """Drop every cached output and rebuild the full graph.

        Returns:
            Statistics of the rebuilt graph
        """
        logger.info("Rebuilding neural map from the current snapshot")
        self._invalidate()
        entities = self.entities
        edges = self.graph()
        return {
            "fingerprint": self._fingerprint,
            "records": len(self._records),
            "entities": len(entities),
            "edges": len(edges),
        }

    # Graph

    @property
    def entities(self) -> List[Entity]:
        return self._cached(
            "entities",
            lambda: build_entities(
                self._records,
                author_directory=self.author_directory,
                include_authors=self.config.include_author_nodes,
                include_protagonists=self.config.include_protagonist_nodes,
            ),
        )

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        """Look up an entity of the current snapshot by id."""
        entities_by_id = self._cached(
            "entities_by_id", lambda: {entity.id: entity for entity in self.entities}
        )
        return entities_by_id.get(entity_id)

    def visible_entities(self, visible_ids: Optional[Iterable[str]] = None) -> List[Entity]:
        if visible_ids is None:
            return self.entities
        wanted = set(visible_ids)
        return [entity for entity in self.entities if entity.id in wanted]

    def _visible_key(self, visible_ids: Optional[Iterable[str]]) -> Optional[frozenset]:
        if visible_ids is None:
            return None
        key = frozenset(visible_ids)
        # Only the most recent visible subset stays cached
        if key != self._subset_key:
            if self._subset_key is not None:
                self._cache.pop(("graph", self._subset_key), None)
                self._cache.pop(("index", self._subset_key), None)
            self._subset_key = key
        return key

    def graph(self, visible_ids: Optional[Iterable[str]] = None) -> List[GraphEdge]:
        """Edge list for the visible entity set (all entities by default)."""
        key = self._visible_key(visible_ids)
        return self._cached(
            ("graph", key),
            lambda: GraphBuilder(self.config.get_graph_config()).build(
                self.visible_entities(key)
            ),
        )

    def index(self, visible_ids: Optional[Iterable[str]] = None) -> AdjacencyIndex:
        """Adjacency index over the graph of the visible entity set."""
        key = self._visible_key(visible_ids)
        return self._cached(("index", key), lambda: AdjacencyIndex(self.graph(key)))

    # Analyses

    @property
    def thematic_clusters(self) -> List[ThematicCluster]:
        return self._cached(
            "thematic_clusters", lambda: detect_thematic_clusters(self._records)
        )

    @property
    def temporal_clusters(self) -> List[ThematicCluster]:
        return self._cached(
            "temporal_clusters", lambda: detect_temporal_clusters(self._records)
        )

    @property
    def conceptual_bridges(self) -> List[ConceptualBridge]:
        return self._cached(
            "conceptual_bridges", lambda: find_conceptual_bridges(self._records)
        )

    @property
    def temporal_bridges(self) -> List[ConceptualBridge]:
        return self._cached(
            "temporal_bridges", lambda: find_temporal_bridges(self._records)
        )

    def theme_velocity(self, now: Optional[datetime] = None) -> List[ThemeVelocity]:
        """Theme velocity relative to ``now``.

        Without ``now`` the result reflects the time of first computation
        until the snapshot changes or ``rebuild`` is called.
        """
        return self._cached(
            ("theme_velocity", now),
            lambda: calculate_theme_velocity(
                self._records, now=now, window_months=self.config.velocity_window_months
            ),
        )

    @property
    def author_influences(self) -> List[AuthorInfluence]:
        return self._cached(
            "author_influences",
            lambda: map_author_influences(
                self._records, top_k=self.config.influence_top_k
            ),
        )

    @property
    def concept_evolution(self) -> List[ConceptEvolution]:
        return self._cached(
            "concept_evolution", lambda: track_concept_evolution(self._records)
        )

    def cluster_health(self, now: Optional[datetime] = None) -> List[ClusterHealth]:
        return self._cached(
            ("cluster_health", now),
            lambda: analyze_cluster_health(
                self.thematic_clusters, self._records, now=now
            ),
        )

    @property
    def reading_patterns(self) -> List[ReadingPattern]:
        return self._cached(
            "reading_patterns",
            lambda: analyze_reading_patterns(self._records, self.thematic_clusters),
        )

    def reading_velocity(self, now: Optional[datetime] = None) -> Optional[ReadingVelocity]:
        """Catalog-wide reading velocity, cached per reference time."""
        return self._cached(
            ("reading_velocity", now),
            lambda: calculate_reading_velocity(self._records, now=now),
        )

    @property
    def thematic_constellations(self) -> List[ThematicConstellation]:
        return self._cached(
            "thematic_constellations", lambda: map_thematic_constellations(self._records)
        )

    @property
    def reading_dna(self) -> Optional[ReadingDNA]:
        return self._cached("reading_dna", lambda: generate_reading_dna(self._records))

    @property
    def insights(self) -> List[str]:
        return self._cached(
            "insights",
            lambda: generate_insights(
                self.thematic_clusters,
                self.conceptual_bridges,
                self.reading_patterns,
                self.author_influences,
            ),
        )

    def get_status(self) -> Dict[str, Any]:
        """Snapshot and cache statistics."""
        status: Dict[str, Any] = {
            "fingerprint": self._fingerprint,
            "records": len(self._records),
            "cached_outputs": sorted(
                str(key[0] if isinstance(key, tuple) else key) for key in self._cache
            ),
            "cache_hits": self._cache_hits,
            "cache_misses": self._cache_misses,
            "author_directory": type(self.author_directory).__name__
            if self.author_directory is not None
            else None,
            "config": self.config.get_config_summary(),
        }
        if "entities" in self._cache:
            status["entities"] = len(self._cache["entities"])
        if ("graph", None) in self._cache:
            status["edges"] = len(self._cache[("graph", None)])
        return status
