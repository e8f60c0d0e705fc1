"""Graph construction and querying for PyNeuralMap."""

from .adjacency import AdjacencyIndex
from .builder import GraphBuilder, GraphBuildSettings, build_graph
from .scoring import ConnectionResult, calculate_connection_strength

__all__ = [
    "AdjacencyIndex",
    "ConnectionResult",
    "GraphBuildSettings",
    "GraphBuilder",
    "build_graph",
    "calculate_connection_strength",
]
