"""Tests for the snapshot-memoizing neural map engine."""

import json
import os
from unittest.mock import patch

import pytest

from conftest import NOW
from pyneuralmap.catalog import StaticAuthorDirectory, normalize_records
from pyneuralmap.config import Config
from pyneuralmap.engine import NeuralMapEngine, fingerprint_records
from pyneuralmap.types import EdgeType, NodeType


@pytest.fixture
def engine(config, sample_raw_catalog):
    """Engine loaded with the sample catalog."""
    engine = NeuralMapEngine(config)
    engine.load(sample_raw_catalog)
    return engine


class TestSnapshotLoading:
    """Test snapshot loading and fingerprinting."""

    def test_load_normalizes_records(self, engine):
        """Loaded records are normalized catalog records."""
        assert len(engine.records) == 5
        assert engine.records[0].title == "Neuromancer"
        assert len(engine.fingerprint) == 64

    def test_fingerprint_is_content_based(self, sample_raw_catalog):
        """Equal content yields equal fingerprints regardless of input shape."""
        records = normalize_records(sample_raw_catalog)
        reordered = [dict(reversed(list(raw.items()))) for raw in sample_raw_catalog]

        assert fingerprint_records(records) == fingerprint_records(
            normalize_records(reordered)
        )
        assert fingerprint_records(records) != fingerprint_records(records[:-1])

    def test_identical_snapshot_keeps_cache(self, engine, sample_raw_catalog):
        """Reloading an unchanged snapshot keeps cached outputs."""
        edges = engine.graph()

        engine.load(list(sample_raw_catalog))

        assert engine.graph() is edges

    def test_changed_snapshot_invalidates_cache(self, engine, sample_raw_catalog):
        """Loading a different snapshot recomputes derived outputs."""
        edges = engine.graph()
        old_fingerprint = engine.fingerprint

        new_fingerprint = engine.load(sample_raw_catalog[:3])

        assert new_fingerprint != old_fingerprint
        assert engine.graph() is not edges
        assert len(engine.records) == 3

    def test_load_tolerates_non_finite_years(self, config):
        """A catalog with an infinite publication year still loads."""
        engine = NeuralMapEngine(config)

        engine.load(json.loads('[{"id": 1, "publication_year": Infinity}, {"id": 2}]'))

        assert [record.id for record in engine.records] == ["1", "2"]
        assert engine.records[0].publication_year is None

    def test_empty_engine(self, config):
        """An engine without a snapshot produces empty outputs."""
        engine = NeuralMapEngine(config)

        assert engine.fingerprint is None
        assert engine.entities == []
        assert engine.graph() == []
        assert engine.insights == []


class TestGraphAccess:
    """Test the graph and adjacency facade."""

    def test_entities(self, engine):
        """Books, authors and protagonists are synthesized."""
        counts = {}
        for entity in engine.entities:
            counts[entity.node_type] = counts.get(entity.node_type, 0) + 1

        assert counts == {NodeType.BOOK: 5, NodeType.AUTHOR: 3, NodeType.PROTAGONIST: 3}
        assert engine.get_entity("book-1").title == "Neuromancer"
        assert engine.get_entity("book-99") is None

    def test_graph_edges(self, engine):
        """The strongest edge joins the two Gibson novels."""
        edges = engine.graph()
        by_key = {edge.key: edge for edge in edges}

        assert edges[0].key == "book-1|book-2"
        assert edges[0].score == 75
        assert edges[0].edge_type is EdgeType.AUTHOR_SHARED
        assert by_key["author-william-gibson|book-1"].score == 40
        assert by_key["book-1|protagonist-case"].score == 35
        assert [edge.score for edge in edges] == sorted(
            (edge.score for edge in edges), reverse=True
        )

    def test_visible_subset(self, engine):
        """Graphs can be built for a subset of visible entities."""
        edges = engine.graph(["book-1", "book-2"])

        assert [edge.key for edge in edges] == ["book-1|book-2"]
        assert engine.graph(["book-2", "book-1"]) is edges

    def test_only_latest_visible_subset_is_cached(self, engine):
        """Switching visible subsets evicts the previous subset's graph and index."""
        full = engine.graph()
        first = engine.graph(["book-1", "book-2"])
        engine.index(["book-1", "book-2"])

        engine.graph(["book-3", "book-5"])
        engine.index(["book-3", "book-5"])

        subset_keys = [
            key
            for key in engine._cache
            if isinstance(key, tuple) and key[0] in ("graph", "index") and key[1] is not None
        ]
        assert len(subset_keys) == 2
        assert engine.graph() is full
        assert engine.graph(["book-1", "book-2"]) is not first

    def test_index(self, engine):
        """The adjacency index reflects the full graph."""
        neighbors = engine.index().get_direct_neighbors("book-1")

        assert "book-2" in neighbors
        assert "author-william-gibson" in neighbors
        assert "protagonist-case" in neighbors
        assert engine.index() is engine.index()

    def test_entity_toggles(self, sample_raw_catalog):
        """Configuration can switch off protagonist synthesis."""
        with patch.dict(os.environ, {}, clear=True):
            with patch("pyneuralmap.config.load_dotenv"):
                config = Config(config_overrides={"include_protagonist_nodes": False})
        engine = NeuralMapEngine(config)
        engine.load(sample_raw_catalog)

        node_types = {entity.node_type for entity in engine.entities}

        assert node_types == {NodeType.BOOK, NodeType.AUTHOR}

    def test_author_directory_decorates_authors(self, engine):
        """Replacing the author directory rebuilds decorated entities."""
        assert engine.get_entity("author-william-gibson").author_record_id is None

        engine.set_author_directory(
            StaticAuthorDirectory({"William Gibson": {"id": "author-7"}})
        )

        assert engine.get_entity("author-william-gibson").author_record_id == "author-7"


class TestAnalyses:
    """Test cached analysis outputs."""

    def test_clusters_and_bridges(self, engine):
        """Cluster and bridge analyses run over the snapshot."""
        assert engine.thematic_clusters[0].theme == "Cyberpunk"
        assert len(engine.temporal_clusters) == 3
        assert engine.conceptual_bridges[0].strength == 3.5
        assert engine.thematic_clusters is engine.thematic_clusters

    def test_time_dependent_analyses_are_keyed_by_reference_time(self, engine):
        """Velocity and health are cached per reference time."""
        velocity = engine.theme_velocity(now=NOW)

        assert engine.theme_velocity(now=NOW) is velocity
        assert velocity[0].books_per_month > 0
        assert len(engine.cluster_health(now=NOW)) == len(engine.thematic_clusters)

    def test_reading_profile_outputs(self, engine):
        """Reading velocity, constellations and DNA are cached per snapshot."""
        velocity = engine.reading_velocity(now=NOW)

        assert engine.reading_velocity(now=NOW) is velocity
        assert velocity.book_count == 5
        assert velocity.momentum == 0.2
        assert [item.name for item in engine.thematic_constellations] == ["Cyberpunk"]
        assert engine.reading_dna.temporal_preference.value == "modern"
        assert engine.reading_dna is engine.reading_dna

    def test_insights(self, engine):
        """Insights summarize the other analyses."""
        assert engine.insights[0] == "Strongest cluster: Cyberpunk with 3 books"
        assert engine.reading_patterns[0].confidence == 1.0
        assert engine.author_influences[0].author == "William Gibson"

    def test_rebuild_and_status(self, engine):
        """Rebuild drops the cache and reports graph statistics."""
        engine.graph()
        engine.graph()

        stats = engine.rebuild()
        status = engine.get_status()

        assert stats["records"] == 5
        assert stats["entities"] == 11
        assert stats["edges"] == len(engine.graph())
        assert status["entities"] == 11
        assert status["edges"] == stats["edges"]
        assert status["cache_hits"] >= 1
        assert "graph" in status["cached_outputs"]
        assert status["config"]["edge_cap"] == 160
        assert status["author_directory"] is None
