"""Configuration management for PyNeuralMap.

This module handles environment variable configuration and validation for
the neural map engine and its MCP server, including the graph-building
heuristics, analysis window sizes and entity synthesis switches.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .graph.builder import GraphBuildSettings


class Config:
    """Configuration manager for the PyNeuralMap engine.

    Loads and validates environment variables for the graph builder
    heuristics and the catalog analyses.
    """

    def __init__(
        self,
        env_file: Optional[str] = None,
        config_overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize configuration from environment variables with optional CLI overrides.

        Args:
            env_file: Optional path to .env file to load
            config_overrides: Optional dictionary of configuration overrides from CLI arguments
        """
        self.config_overrides = config_overrides or {}
        # Load environment variables from .env file if it exists
        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path(".env")
            if env_path.exists():
                load_dotenv(env_path)

        # Graph building heuristics (CLI overrides have priority)
        self.large_graph_threshold = self._get_int_config(
            "PYNEURALMAP_LARGE_GRAPH_THRESHOLD",
            60,
            override_key="large_graph_threshold",
        )
        self.bucket_window_size = self._get_int_config(
            "PYNEURALMAP_BUCKET_WINDOW_SIZE",
            6,
            override_key="bucket_window_size",
        )
        self.max_visible_connections = self._get_int_config(
            "PYNEURALMAP_MAX_VISIBLE_CONNECTIONS",
            80,
            override_key="max_visible_connections",
        )

        # Analysis settings
        self.velocity_window_months = self._get_int_config(
            "PYNEURALMAP_VELOCITY_WINDOW_MONTHS",
            6,
            override_key="velocity_window_months",
        )
        self.influence_top_k = self._get_int_config(
            "PYNEURALMAP_INFLUENCE_TOP_K", 5, override_key="influence_top_k"
        )

        # Entity synthesis
        self.include_author_nodes = self._get_bool_config(
            "PYNEURALMAP_INCLUDE_AUTHOR_NODES",
            True,
            override_key="include_author_nodes",
        )
        self.include_protagonist_nodes = self._get_bool_config(
            "PYNEURALMAP_INCLUDE_PROTAGONIST_NODES",
            True,
            override_key="include_protagonist_nodes",
        )

        # Catalog snapshot file for the MCP server
        self.catalog_path = self._get_path_config(
            "PYNEURALMAP_CATALOG_PATH", override_key="catalog_path"
        )

        # Validate configuration
        self._validate_config()

    def _get_config(
        self, env_key: str, default: Any, override_key: Optional[str] = None
    ) -> Any:
        """Get configuration value with CLI override priority.

        Priority: CLI override > Environment variable > Default

        Args:
            env_key: Environment variable key
            default: Default value if neither override nor env var is set
            override_key: Key in config_overrides dictionary

        Returns:
            Configuration value with proper priority
        """
        if override_key and self.config_overrides.get(override_key) is not None:
            return self.config_overrides[override_key]
        return os.getenv(env_key, default)

    def _get_bool_config(
        self, key: str, default: bool, override_key: Optional[str] = None
    ) -> bool:
        """Get boolean configuration value with CLI override priority."""
        if override_key and self.config_overrides.get(override_key) is not None:
            return bool(self.config_overrides[override_key])

        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def _get_int_config(
        self, key: str, default: int, override_key: Optional[str] = None
    ) -> int:
        """Get integer configuration value with CLI override priority."""
        if override_key and self.config_overrides.get(override_key) is not None:
            try:
                return int(self.config_overrides[override_key])
            except (ValueError, TypeError):
                return default

        value = os.getenv(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def _get_path_config(
        self, key: str, override_key: Optional[str] = None
    ) -> Optional[Path]:
        """Get optional path configuration value with CLI override priority."""
        value = self._get_config(key, None, override_key=override_key)
        if not value:
            return None
        return Path(value).expanduser().resolve()

    def _validate_config(self) -> None:
        """Validate configuration values."""
        if self.large_graph_threshold <= 0:
            raise ValueError("Large graph threshold must be positive")
        if self.bucket_window_size < 2:
            raise ValueError("Bucket window size must be at least 2")
        if self.max_visible_connections <= 0:
            raise ValueError("Max visible connections must be positive")
        if self.velocity_window_months <= 0:
            raise ValueError("Velocity window must be positive")
        if self.influence_top_k <= 0:
            raise ValueError("Influence top-k must be positive")

    def get_graph_config(self) -> GraphBuildSettings:
        """Get the graph builder heuristics."""
        return GraphBuildSettings(
            large_graph_threshold=self.large_graph_threshold,
            bucket_window_size=self.bucket_window_size,
            max_visible_connections=self.max_visible_connections,
        )

    def get_config_summary(self) -> Dict[str, Any]:
        """Get configuration summary for logging and status reporting."""
        return {
            "large_graph_threshold": self.large_graph_threshold,
            "bucket_window_size": self.bucket_window_size,
            "max_visible_connections": self.max_visible_connections,
            "edge_cap": self.max_visible_connections * 2,
            "velocity_window_months": self.velocity_window_months,
            "influence_top_k": self.influence_top_k,
            "include_author_nodes": self.include_author_nodes,
            "include_protagonist_nodes": self.include_protagonist_nodes,
            "catalog_path": str(self.catalog_path) if self.catalog_path else None,
        }
