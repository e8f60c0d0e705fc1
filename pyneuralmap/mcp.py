"""FastMCP server for PyNeuralMap.

This module exposes the in-process neural map engine to an assistant
collaborator. It owns the only I/O in the project: reading a catalog
snapshot from a JSON file. Every tool validates its parameters and
returns a structured ``{"error": ...}`` dictionary instead of raising.
"""

import argparse
import json
import logging
import signal
import sys
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

from fastmcp import FastMCP

from .catalog import StaticAuthorDirectory
from .config import Config
from .engine import NeuralMapEngine

logger = logging.getLogger(__name__)

# Thread-safe singleton engine
_engine_lock = Lock()
_engine_instance: Optional[NeuralMapEngine] = None

MAX_RESULT_LIMIT = 500
CLUSTER_KINDS = ["thematic", "temporal", "health"]
BRIDGE_KINDS = ["conceptual", "temporal"]


# Common MCP validation and error handling utilities
def validate_string_param(value: Any, param_name: str, allow_empty: bool = False) -> str:
    """Validate string parameter for MCP functions.

    Args:
        value: Value to validate
        param_name: Name of the parameter for error messages
        allow_empty: Whether to allow empty strings

    Returns:
        Validated string value

    Raises:
        ValueError: If validation fails
    """
    if not isinstance(value, str):
        raise ValueError(f"{param_name} must be a string")

    if not allow_empty and not value.strip():
        raise ValueError(f"{param_name} cannot be empty")

    return value.strip() if not allow_empty else value


def validate_int_param(
    value: Any,
    param_name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """Validate integer parameter for MCP functions.

    Raises:
        ValueError: If the value is not an integer or is out of range
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{param_name} must be an integer")

    if min_val is not None and value < min_val:
        raise ValueError(f"{param_name} must be at least {min_val}")

    if max_val is not None and value > max_val:
        raise ValueError(f"{param_name} must be at most {max_val}")

    return value


def validate_choice_param(
    value: Any, param_name: str, valid_choices: List[str], default: Optional[str] = None
) -> str:
    """Validate choice parameter for MCP functions.

    Args:
        value: Value to validate
        param_name: Name of the parameter for error messages
        valid_choices: List of valid choices
        default: Default value if invalid (optional)

    Returns:
        Validated choice value

    Raises:
        ValueError: If validation fails and no default provided
    """
    if not isinstance(value, str) or value not in valid_choices:
        if default is not None:
            logger.warning(f"Invalid {param_name} '{value}', using default '{default}'")
            return default
        raise ValueError(f"{param_name} must be one of: {', '.join(valid_choices)}")
    return value


def handle_mcp_errors(operation_name: str, func_impl, *args):
    """Common error handling for MCP functions.

    Args:
        operation_name: Name of the operation for error messages
        func_impl: The actual implementation function to call
        *args: Arguments to pass to the function

    Returns:
        Result from function or structured error dict
    """
    try:
        return func_impl(*args)
    except ValueError as e:
        error_msg = str(e)
        logger.warning(f"{operation_name} validation error: {error_msg}")
        return {"error": error_msg}
    except Exception as e:
        error_msg = f"{operation_name} failed: {str(e)}"
        logger.error(error_msg)
        return {"error": error_msg}


def read_catalog_file(path: Path) -> Tuple[List[Any], Optional[StaticAuthorDirectory]]:
    """Read a catalog snapshot file.

    The file holds either a list of records or an object with ``records``
    and an optional ``authors`` mapping of name to profile.

    Raises:
        ValueError: If the file is missing or not a valid catalog
    """
    if not path.is_file():
        raise ValueError(f"Catalog file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Catalog file is not valid JSON: {e}") from e

    if isinstance(data, list):
        return data, None
    if isinstance(data, dict) and isinstance(data.get("records"), list):
        authors = data.get("authors")
        directory = StaticAuthorDirectory(authors) if isinstance(authors, dict) else None
        return data["records"], directory
    raise ValueError("Catalog must be a list of records or an object with 'records'")


def initialize_engine(config_overrides: Optional[Dict[str, Any]] = None) -> NeuralMapEngine:
    """Initialize the NeuralMapEngine with thread-safe singleton pattern.

    Args:
        config_overrides: Optional dictionary of configuration overrides from CLI args

    Returns:
        NeuralMapEngine instance
    """
    global _engine_instance

    with _engine_lock:
        if _engine_instance is None:
            config = Config(config_overrides=config_overrides)
            _engine_instance = NeuralMapEngine(config)
            logger.info("NeuralMapEngine initialized successfully")
            if config_overrides:
                logger.info(
                    f"Applied CLI configuration overrides: {list(config_overrides.keys())}"
                )

    return _engine_instance


def get_engine() -> Optional[NeuralMapEngine]:
    """Get the current engine instance without initialization."""
    with _engine_lock:
        return _engine_instance


def reset_engine() -> None:
    """Reset the engine singleton - primarily for testing."""
    global _engine_instance
    with _engine_lock:
        _engine_instance = None


def _require_entity(engine: NeuralMapEngine, entity_id: Any) -> str:
    entity_id = validate_string_param(entity_id, "entity_id")
    if engine.get_entity(entity_id) is None:
        raise ValueError(f"Unknown entity: {entity_id}")
    return entity_id


# Create FastMCP application
mcp = FastMCP("PyNeuralMap")


def _load_catalog_impl(path: str) -> Dict[str, Any]:
    """Implementation for load_catalog with validation and business logic."""
    path = validate_string_param(path, "path")
    catalog_path = Path(path).expanduser().resolve()
    records, directory = read_catalog_file(catalog_path)

    engine = initialize_engine()
    engine.set_author_directory(directory)
    fingerprint = engine.load(records)

    logger.info(f"Loaded catalog from {catalog_path}: {len(engine.records)} records")
    return {
        "path": str(catalog_path),
        "fingerprint": fingerprint,
        "records": len(engine.records),
        "skipped": len(records) - len(engine.records),
        "author_profiles": len(directory) if directory is not None else 0,
    }


@mcp.tool
def load_catalog(path: str) -> Dict[str, Any]:
    """Load a catalog snapshot from a JSON file.

    Args:
        path: Path to a JSON file holding a list of records, or an object
            with "records" and an optional "authors" profile mapping

    Returns:
        Dictionary with the snapshot fingerprint and record counts
    """
    return handle_mcp_errors("Catalog loading", _load_catalog_impl, path)


def _status_impl() -> Dict[str, Any]:
    result = initialize_engine().get_status()
    result["mcp_server"] = {
        "name": "PyNeuralMap",
        "version": "0.1.0",
        "mcp_functions": [
            "load_catalog",
            "status",
            "graph",
            "neighbors",
            "connection",
            "top_related",
            "connection_breakdown",
            "clusters",
            "bridges",
            "velocity",
            "influences",
            "evolution",
            "insights",
            "reading_profile",
            "rebuild",
        ],
    }
    return result


@mcp.tool
def status() -> Dict[str, Any]:
    """Get snapshot, cache and configuration status."""
    return handle_mcp_errors("Status", _status_impl)


def _graph_impl(limit: int) -> Dict[str, Any]:
    limit = validate_int_param(limit, "limit", min_val=1, max_val=MAX_RESULT_LIMIT)
    engine = initialize_engine()
    edges = engine.graph()
    return {
        "entities": [entity.to_dict() for entity in engine.entities],
        "edges": [edge.to_dict() for edge in edges[:limit]],
        "total_edges": len(edges),
    }


@mcp.tool
def graph(limit: int = 160) -> Dict[str, Any]:
    """Get the neural map entities and the strongest edges.

    Args:
        limit: Maximum number of edges to return (default: 160)

    Returns:
        Dictionary with entities, edges sorted by score and the edge total
    """
    return handle_mcp_errors("Graph", _graph_impl, limit)


def _neighbors_impl(entity_id: str, degree: int) -> Dict[str, Any]:
    engine = initialize_engine()
    entity_id = _require_entity(engine, entity_id)
    degree = validate_int_param(degree, "degree", min_val=1, max_val=2)

    index = engine.index()
    if degree == 1:
        neighbors = index.get_direct_neighbors(entity_id)
    else:
        neighbors = index.get_second_degree_neighbors(entity_id)
    return {
        "entity_id": entity_id,
        "degree": degree,
        "neighbors": neighbors,
        "count": len(neighbors),
    }


@mcp.tool
def neighbors(entity_id: str, degree: int = 1) -> Dict[str, Any]:
    """List direct (degree 1) or strict second-degree (degree 2) neighbors.

    Args:
        entity_id: Entity id, e.g. "book-42" or "author-ursula-k-le-guin"
        degree: 1 for direct neighbors, 2 for neighbors exactly two hops away
    """
    return handle_mcp_errors("Neighbors", _neighbors_impl, entity_id, degree)


def _connection_impl(entity_a: str, entity_b: str) -> Dict[str, Any]:
    engine = initialize_engine()
    entity_a = _require_entity(engine, entity_a)
    entity_b = _require_entity(engine, entity_b)

    summary = engine.index().get_edge_data(entity_a, entity_b)
    result: Dict[str, Any] = {
        "entity_a": entity_a,
        "entity_b": entity_b,
        "connected": summary is not None,
    }
    if summary is not None:
        result.update(summary.to_dict())
    return result


@mcp.tool
def connection(entity_a: str, entity_b: str) -> Dict[str, Any]:
    """Explain the edge between two entities, if one exists."""
    return handle_mcp_errors("Connection", _connection_impl, entity_a, entity_b)


def _top_related_impl(entity_id: str, limit: int) -> Dict[str, Any]:
    engine = initialize_engine()
    entity_id = _require_entity(engine, entity_id)
    limit = validate_int_param(limit, "limit", min_val=1, max_val=MAX_RESULT_LIMIT)

    related = engine.index().get_top_related(entity_id, limit)
    return {
        "entity_id": entity_id,
        "related": [item.to_dict() for item in related],
    }


@mcp.tool
def top_related(entity_id: str, limit: int = 4) -> Dict[str, Any]:
    """Get the direct neighbors of an entity ranked by edge score."""
    return handle_mcp_errors("Top related", _top_related_impl, entity_id, limit)


def _connection_breakdown_impl(entity_id: str) -> Dict[str, Any]:
    engine = initialize_engine()
    entity_id = _require_entity(engine, entity_id)
    breakdown = engine.index().get_connection_breakdown(entity_id)
    return {"entity_id": entity_id, **breakdown.to_dict()}


@mcp.tool
def connection_breakdown(entity_id: str) -> Dict[str, Any]:
    """Aggregate the reasons connecting an entity to its neighbors."""
    return handle_mcp_errors(
        "Connection breakdown", _connection_breakdown_impl, entity_id
    )


def _clusters_impl(kind: str) -> Dict[str, Any]:
    kind = validate_choice_param(kind, "kind", CLUSTER_KINDS)
    engine = initialize_engine()
    if kind == "thematic":
        items = [cluster.to_dict() for cluster in engine.thematic_clusters]
    elif kind == "temporal":
        items = [cluster.to_dict() for cluster in engine.temporal_clusters]
    else:
        items = [health.to_dict() for health in engine.cluster_health()]
    return {"kind": kind, "clusters": items, "count": len(items)}


@mcp.tool
def clusters(kind: str = "thematic") -> Dict[str, Any]:
    """Get thematic or temporal clusters, or thematic cluster health.

    Args:
        kind: 'thematic' (default), 'temporal' or 'health'
    """
    return handle_mcp_errors("Clusters", _clusters_impl, kind)


def _bridges_impl(kind: str, limit: int) -> Dict[str, Any]:
    kind = validate_choice_param(kind, "kind", BRIDGE_KINDS)
    limit = validate_int_param(limit, "limit", min_val=1, max_val=MAX_RESULT_LIMIT)
    engine = initialize_engine()
    found = engine.conceptual_bridges if kind == "conceptual" else engine.temporal_bridges
    return {
        "kind": kind,
        "bridges": [bridge.to_dict() for bridge in found[:limit]],
        "total": len(found),
    }


@mcp.tool
def bridges(kind: str = "conceptual", limit: int = 20) -> Dict[str, Any]:
    """Get the strongest conceptual or cross-era temporal bridges.

    Args:
        kind: 'conceptual' (default) or 'temporal'
        limit: Maximum number of bridges to return (default: 20)
    """
    return handle_mcp_errors("Bridges", _bridges_impl, kind, limit)


def _velocity_impl(limit: int) -> Dict[str, Any]:
    limit = validate_int_param(limit, "limit", min_val=1, max_val=MAX_RESULT_LIMIT)
    velocities = initialize_engine().theme_velocity()
    return {
        "themes": [velocity.to_dict() for velocity in velocities[:limit]],
        "total": len(velocities),
    }


@mcp.tool
def velocity(limit: int = 10) -> Dict[str, Any]:
    """Get the fastest-moving themes over the trailing window."""
    return handle_mcp_errors("Velocity", _velocity_impl, limit)


def _influences_impl() -> Dict[str, Any]:
    maps = initialize_engine().author_influences
    return {"authors": [item.to_dict() for item in maps], "count": len(maps)}


@mcp.tool
def influences() -> Dict[str, Any]:
    """Get weighted author-to-author influence maps."""
    return handle_mcp_errors("Influences", _influences_impl)


def _evolution_impl() -> Dict[str, Any]:
    evolutions = initialize_engine().concept_evolution
    return {
        "themes": [evolution.to_dict() for evolution in evolutions],
        "count": len(evolutions),
    }


@mcp.tool
def evolution() -> Dict[str, Any]:
    """Trace conceptual themes across literary eras."""
    return handle_mcp_errors("Evolution", _evolution_impl)


def _insights_impl() -> Dict[str, Any]:
    engine = initialize_engine()
    return {
        "insights": engine.insights,
        "patterns": [pattern.to_dict() for pattern in engine.reading_patterns],
    }


@mcp.tool
def insights() -> Dict[str, Any]:
    """Get natural-language insights and detected reading patterns."""
    return handle_mcp_errors("Insights", _insights_impl)


def _reading_profile_impl() -> Dict[str, Any]:
    engine = initialize_engine()
    reading_velocity = engine.reading_velocity()
    reading_dna = engine.reading_dna
    constellations = engine.thematic_constellations
    return {
        "velocity": reading_velocity.to_dict() if reading_velocity else None,
        "dna": reading_dna.to_dict() if reading_dna else None,
        "constellations": [item.to_dict() for item in constellations],
    }


@mcp.tool
def reading_profile() -> Dict[str, Any]:
    """Get the reader's overall velocity, reading DNA and thematic constellations."""
    return handle_mcp_errors("Reading profile", _reading_profile_impl)


def _rebuild_impl(confirm: bool) -> Dict[str, Any]:
    if not isinstance(confirm, bool):
        raise ValueError("confirm must be a boolean")
    if not confirm:
        return {
            "success": False,
            "error": (
                "Rebuild requires explicit confirmation. Set confirm=True to proceed."
            ),
        }
    stats = initialize_engine().rebuild()
    logger.info(f"Rebuild completed: {stats}")
    return {"success": True, **stats}


@mcp.tool
def rebuild(confirm: bool = False) -> Dict[str, Any]:
    """Drop all cached outputs and recompute the graph from the snapshot.

    Args:
        confirm: Safety confirmation - must be True to proceed (default: False)
    """
    return handle_mcp_errors("Rebuild", _rebuild_impl, confirm)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the MCP server."""
    parser = argparse.ArgumentParser(
        prog="pyneuralmap",
        description="PyNeuralMap MCP Server - Entity-relationship graph over a reading catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  # Start server with a catalog snapshot
  pyneuralmap --catalog ./catalog.json

  # Tune the large-graph heuristics
  pyneuralmap --catalog ./catalog.json --large-graph-threshold 120 --bucket-window-size 10

Configuration priority: CLI arguments > Environment variables > Defaults
        """,
    )

    parser.add_argument(
        "--catalog",
        type=str,
        help="JSON catalog snapshot to load at startup (overrides PYNEURALMAP_CATALOG_PATH)",
    )

    # Graph heuristics
    parser.add_argument(
        "--large-graph-threshold",
        type=int,
        help="Book count above which bucketed candidate generation is used (default: 60)",
    )
    parser.add_argument(
        "--bucket-window-size",
        type=int,
        help="Members compared per tag bucket on large graphs (default: 6)",
    )
    parser.add_argument(
        "--max-visible-connections",
        type=int,
        help="Visible connection budget; the edge cap is twice this (default: 80)",
    )

    # Analysis settings
    parser.add_argument(
        "--velocity-window-months",
        type=int,
        help="Trailing window for theme velocity (default: 6)",
    )
    parser.add_argument(
        "--influence-top-k",
        type=int,
        help="Influence links kept per author (default: 5)",
    )

    # Entity synthesis
    parser.add_argument(
        "--no-author-nodes",
        action="store_true",
        help="Do not synthesize author entities",
    )
    parser.add_argument(
        "--no-protagonist-nodes",
        action="store_true",
        help="Do not synthesize protagonist entities",
    )

    # Verbose logging
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Minimize logging output (WARNING level only)",
    )

    return parser.parse_args(argv)


def args_to_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Convert CLI arguments to configuration overrides dictionary."""
    overrides: Dict[str, Any] = {}

    if args.catalog:
        overrides["catalog_path"] = args.catalog

    for key in (
        "large_graph_threshold",
        "bucket_window_size",
        "max_visible_connections",
        "velocity_window_months",
        "influence_top_k",
    ):
        value = getattr(args, key, None)
        if value is not None:
            overrides[key] = value

    if args.no_author_nodes:
        overrides["include_author_nodes"] = False
    if args.no_protagonist_nodes:
        overrides["include_protagonist_nodes"] = False

    return overrides


def setup_logging(args: argparse.Namespace) -> None:
    """Setup logging level based on CLI arguments."""
    if args.quiet:
        level = logging.WARNING
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,  # Reconfigure existing loggers
    )


def cleanup_handler(signum, frame):
    """Handle shutdown signals."""
    logger.info("Received shutdown signal, shutting down")
    sys.exit(0)


def main():
    """Main entry point for the MCP server."""
    args = parse_args()
    setup_logging(args)

    signal.signal(signal.SIGINT, cleanup_handler)
    signal.signal(signal.SIGTERM, cleanup_handler)

    logger.info("Starting PyNeuralMap MCP Server...")

    config_overrides = args_to_config_overrides(args)
    if config_overrides:
        logger.info(f"Using CLI configuration overrides: {list(config_overrides.keys())}")

    try:
        engine = initialize_engine(config_overrides)

        if engine.config.catalog_path:
            result = handle_mcp_errors(
                "Catalog loading", _load_catalog_impl, str(engine.config.catalog_path)
            )
            if "error" in result:
                logger.error(f"Initial catalog load failed: {result['error']}")
        else:
            logger.info("No catalog configured, waiting for load_catalog")

        logger.info("MCP server ready and listening for requests...")
        mcp.run()

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        cleanup_handler(signal.SIGINT, None)
    except Exception as e:
        logger.error(f"Server startup failed: {e}")
        raise


if __name__ == "__main__":
    main()
