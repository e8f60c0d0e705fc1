"""PyNeuralMap - an entity-relationship graph engine for a reading catalog."""

from importlib import metadata as _metadata

from .catalog import AuthorDirectory, AuthorProfile, CatalogRecord, StaticAuthorDirectory
from .config import Config
from .engine import NeuralMapEngine
from .entities import Entity
from .types import ConnectionReason, EdgeType, NodeType

try:  # pragma: no cover - exercised when installed as a package
    __version__ = _metadata.version("pyneuralmap")
except _metadata.PackageNotFoundError:  # pragma: no cover - local editable installs
    __version__ = "0.1.0"

__license__ = "MIT"

__all__ = [
    "AuthorDirectory",
    "AuthorProfile",
    "CatalogRecord",
    "Config",
    "ConnectionReason",
    "EdgeType",
    "Entity",
    "NeuralMapEngine",
    "NodeType",
    "StaticAuthorDirectory",
    "__version__",
]
