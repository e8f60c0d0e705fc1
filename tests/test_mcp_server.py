"""Tests for the MCP server tools and command-line handling."""

import json
import os
from unittest.mock import patch

import pytest

import pyneuralmap.mcp as mcp_module
from pyneuralmap.mcp import (
    _bridges_impl,
    _clusters_impl,
    _connection_breakdown_impl,
    _connection_impl,
    _evolution_impl,
    _graph_impl,
    _influences_impl,
    _insights_impl,
    _load_catalog_impl,
    _neighbors_impl,
    _reading_profile_impl,
    _rebuild_impl,
    _status_impl,
    _top_related_impl,
    _velocity_impl,
    args_to_config_overrides,
    get_engine,
    handle_mcp_errors,
    initialize_engine,
    parse_args,
    read_catalog_file,
    reset_engine,
    validate_choice_param,
    validate_int_param,
    validate_string_param,
)


@pytest.fixture(autouse=True)
def isolated_engine():
    """Reset the engine singleton and isolate it from the environment."""
    reset_engine()
    with patch.dict(os.environ, {}, clear=True):
        with patch("pyneuralmap.config.load_dotenv"):
            yield
    reset_engine()


@pytest.fixture
def catalog_file(tmp_path, sample_raw_catalog):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "records": sample_raw_catalog + [{"title": "No id"}],
                "authors": {"Ursula K. Le Guin": {"id": "author-3", "bio": "Earthsea"}},
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def loaded(catalog_file):
    """Engine loaded through the load_catalog tool."""
    result = _load_catalog_impl(str(catalog_file))
    assert "error" not in result
    return result


def call(impl, *args):
    """Invoke a tool implementation with the server's error handling."""
    return handle_mcp_errors("Test", impl, *args)


class TestValidation:
    """Test parameter validation helpers."""

    def test_validate_string_param(self):
        """Strings are stripped; blanks and non-strings are rejected."""
        assert validate_string_param("  book-1 ", "entity_id") == "book-1"
        with pytest.raises(ValueError, match="cannot be empty"):
            validate_string_param("   ", "entity_id")
        with pytest.raises(ValueError, match="must be a string"):
            validate_string_param(5, "entity_id")

    def test_validate_int_param(self):
        """Integers are range checked and booleans rejected."""
        assert validate_int_param(3, "limit", min_val=1, max_val=5) == 3
        with pytest.raises(ValueError, match="at least 1"):
            validate_int_param(0, "limit", min_val=1)
        with pytest.raises(ValueError, match="at most 5"):
            validate_int_param(6, "limit", max_val=5)
        with pytest.raises(ValueError, match="must be an integer"):
            validate_int_param(True, "limit")

    def test_validate_choice_param(self):
        """Choices are checked against the allowed values."""
        assert validate_choice_param("temporal", "kind", ["thematic", "temporal"]) == "temporal"
        assert validate_choice_param("bogus", "kind", ["thematic"], default="thematic") == "thematic"
        with pytest.raises(ValueError, match="must be one of: thematic, temporal"):
            validate_choice_param("bogus", "kind", ["thematic", "temporal"])

    def test_handle_mcp_errors(self):
        """Exceptions become structured error dictionaries."""

        def fail_validation():
            raise ValueError("bad input")

        def crash():
            raise RuntimeError("boom")

        assert handle_mcp_errors("Op", fail_validation) == {"error": "bad input"}
        assert handle_mcp_errors("Op", crash) == {"error": "Op failed: boom"}


class TestCatalogLoading:
    """Test catalog file reading and the load_catalog tool."""

    def test_read_catalog_object(self, catalog_file):
        """Object catalogs yield records and an author directory."""
        records, directory = read_catalog_file(catalog_file)

        assert len(records) == 6
        assert len(directory) == 1

    def test_read_catalog_list(self, tmp_path, sample_raw_catalog):
        """Plain record lists have no author directory."""
        path = tmp_path / "records.json"
        path.write_text(json.dumps(sample_raw_catalog), encoding="utf-8")

        records, directory = read_catalog_file(path)

        assert len(records) == 5
        assert directory is None

    def test_read_catalog_errors(self, tmp_path):
        """Missing, malformed and wrongly shaped files are rejected."""
        with pytest.raises(ValueError, match="not found"):
            read_catalog_file(tmp_path / "missing.json")

        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="not valid JSON"):
            read_catalog_file(broken)

        wrong = tmp_path / "wrong.json"
        wrong.write_text(json.dumps({"items": []}), encoding="utf-8")
        with pytest.raises(ValueError, match="list of records"):
            read_catalog_file(wrong)

    def test_load_catalog(self, loaded, catalog_file):
        """Loading reports counts and decorates authors."""
        assert loaded["path"] == str(catalog_file.resolve())
        assert loaded["records"] == 5
        assert loaded["skipped"] == 1
        assert loaded["author_profiles"] == 1
        assert len(loaded["fingerprint"]) == 64

        engine = get_engine()
        assert engine.get_entity("author-ursula-k-le-guin").author_record_id == "author-3"

    def test_load_catalog_errors(self, tmp_path):
        """Tool errors are returned, not raised."""
        assert "cannot be empty" in call(_load_catalog_impl, "")["error"]
        assert "not found" in call(_load_catalog_impl, str(tmp_path / "nope.json"))["error"]

    def test_registered_tool_wraps_errors(self):
        """The registered tool function returns structured errors."""
        load_fn = mcp_module.mcp._tool_manager._tools["load_catalog"].fn

        result = load_fn("")

        assert "error" in result


class TestGraphTools:
    """Test graph query tools."""

    def test_graph(self, loaded):
        """The graph tool returns entities and the strongest edges."""
        result = _graph_impl(3)

        assert len(result["entities"]) == 11
        assert len(result["edges"]) == 3
        assert result["total_edges"] >= 3
        assert result["edges"][0]["from_id"] == "book-1"
        assert result["edges"][0]["type"] == "author_shared"

    def test_graph_limit_validation(self, loaded):
        """Limits outside 1..500 are rejected."""
        assert "at least 1" in call(_graph_impl, 0)["error"]
        assert "at most 500" in call(_graph_impl, 501)["error"]

    def test_neighbors(self, loaded):
        """Direct and second-degree neighbor queries."""
        direct = _neighbors_impl("book-1", 1)
        second = _neighbors_impl("book-1", 2)

        assert "book-2" in direct["neighbors"]
        assert direct["count"] == len(direct["neighbors"])
        assert "book-1" not in second["neighbors"]
        assert not set(second["neighbors"]) & set(direct["neighbors"])

    def test_neighbors_validation(self, loaded):
        """Unknown entities and bad degrees are rejected."""
        assert call(_neighbors_impl, "book-99", 1) == {"error": "Unknown entity: book-99"}
        assert "at most 2" in call(_neighbors_impl, "book-1", 3)["error"]

    def test_connection(self, loaded):
        """Connections explain existing edges and report missing ones."""
        connected = _connection_impl("book-2", "book-1")
        missing = _connection_impl("book-2", "book-3")

        assert connected["connected"] is True
        assert connected["score"] == 75
        assert connected["reasons"] == ["same_author", "shared_theme", "shared_era"]
        assert missing == {"entity_a": "book-2", "entity_b": "book-3", "connected": False}

    def test_top_related_and_breakdown(self, loaded):
        """Ranked neighbors and reason breakdown for a book."""
        related = _top_related_impl("book-1", 2)
        breakdown = _connection_breakdown_impl("book-1")

        assert [item["node_id"] for item in related["related"]][0] == "book-2"
        assert len(related["related"]) == 2
        assert breakdown["entity_id"] == "book-1"
        assert breakdown["same_author"] == 1
        assert "Cyberpunk" in breakdown["shared_themes"]
        assert breakdown["shared_eras"] == ["Cyberpunk Era (1980-1995)"]


class TestAnalysisTools:
    """Test analysis tools."""

    def test_clusters(self, loaded):
        """Thematic, temporal and health views are available."""
        thematic = _clusters_impl("thematic")
        temporal = _clusters_impl("temporal")
        health = _clusters_impl("health")

        assert thematic["clusters"][0]["theme"] == "Cyberpunk"
        assert temporal["count"] == 3
        assert health["count"] == thematic["count"]
        assert "error" in call(_clusters_impl, "spatial")

    def test_bridges(self, loaded):
        """Conceptual and temporal bridges are ranked and limited."""
        conceptual = _bridges_impl("conceptual", 2)
        temporal = _bridges_impl("temporal", 20)

        assert len(conceptual["bridges"]) == 2
        assert conceptual["bridges"][0]["strength"] == 3.5
        assert conceptual["total"] >= 2
        assert temporal["kind"] == "temporal"
        assert "must be one of" in call(_bridges_impl, "other", 5)["error"]

    def test_velocity_influences_evolution(self, loaded):
        """Velocity, influence and evolution tools serialize their results."""
        velocity = _velocity_impl(5)
        influences = _influences_impl()
        evolution = _evolution_impl()

        assert len(velocity["themes"]) <= 5
        assert influences["authors"][0]["author"] == "William Gibson"
        assert influences["count"] == len(influences["authors"])
        assert evolution["count"] == len(evolution["themes"])

    def test_insights(self, loaded):
        """Insights come with the detected reading patterns."""
        result = _insights_impl()

        assert result["insights"][0] == "Strongest cluster: Cyberpunk with 3 books"
        assert result["patterns"][0]["type"] == "thematic_deep_dive"

    def test_reading_profile(self, loaded):
        """The reading profile bundles velocity, DNA and constellations."""
        result = _reading_profile_impl()

        assert result["velocity"]["book_count"] == 5
        assert result["dna"]["signature"].startswith("modern-cyberpunk-")
        assert [item["name"] for item in result["constellations"]] == ["Cyberpunk"]

    def test_reading_profile_for_small_catalog(self, tmp_path):
        """Small catalogs report no DNA instead of failing."""
        path = tmp_path / "small.json"
        path.write_text(json.dumps([{"id": 1, "created_at": "2026-01-01T00:00:00Z"}]), encoding="utf-8")
        _load_catalog_impl(str(path))

        result = _reading_profile_impl()

        assert result == {"velocity": None, "dna": None, "constellations": []}

    def test_status(self, loaded):
        """Status lists the server tools and the snapshot."""
        result = _status_impl()

        assert result["records"] == 5
        assert result["mcp_server"]["name"] == "PyNeuralMap"
        assert "rebuild" in result["mcp_server"]["mcp_functions"]
        assert "reading_profile" in result["mcp_server"]["mcp_functions"]

    def test_rebuild_requires_confirmation(self, loaded):
        """Rebuild only runs when explicitly confirmed."""
        refused = _rebuild_impl(False)
        done = _rebuild_impl(True)

        assert refused["success"] is False
        assert "confirmation" in refused["error"]
        assert done["success"] is True
        assert done["records"] == 5
        assert done["entities"] == 11
        assert "must be a boolean" in call(_rebuild_impl, "yes")["error"]


class TestEngineSingleton:
    """Test the engine singleton."""

    def test_initialize_is_idempotent(self):
        """Repeated initialization returns the same engine."""
        assert get_engine() is None

        first = initialize_engine({"influence_top_k": 2})
        second = initialize_engine()

        assert first is second
        assert first.config.influence_top_k == 2

    def test_reset(self):
        """Resetting drops the singleton."""
        initialize_engine()
        reset_engine()

        assert get_engine() is None


class TestCommandLine:
    """Test argument parsing and override conversion."""

    def test_defaults(self):
        """No arguments produce no overrides."""
        args = parse_args([])

        assert args.catalog is None
        assert args.verbose is False
        assert args_to_config_overrides(args) == {}

    def test_overrides(self):
        """Arguments map onto configuration overrides."""
        args = parse_args(
            [
                "--catalog",
                "./catalog.json",
                "--large-graph-threshold",
                "120",
                "--bucket-window-size",
                "10",
                "--max-visible-connections",
                "40",
                "--velocity-window-months",
                "3",
                "--influence-top-k",
                "7",
                "--no-author-nodes",
                "--no-protagonist-nodes",
                "--verbose",
            ]
        )

        overrides = args_to_config_overrides(args)

        assert overrides == {
            "catalog_path": "./catalog.json",
            "large_graph_threshold": 120,
            "bucket_window_size": 10,
            "max_visible_connections": 40,
            "velocity_window_months": 3,
            "influence_top_k": 7,
            "include_author_nodes": False,
            "include_protagonist_nodes": False,
        }
        assert args.verbose is True

    def test_invalid_integer_argument(self):
        """Non-integer numeric arguments are rejected by argparse."""
        with pytest.raises(SystemExit):
            parse_args(["--large-graph-threshold", "many"])
