"""Test configuration and fixtures for PyNeuralMap."""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from pyneuralmap.catalog import CatalogRecord
from pyneuralmap.config import Config
from pyneuralmap.entities import Entity
from pyneuralmap.types import NodeType

# Fixed reference time for time-dependent analyses
NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


def make_record(
    record_id,
    title=None,
    author="Ann Author",
    tags=(),
    temporal=(),
    historical=(),
    year=None,
    created_at=None,
    protagonist=None,
):
    """Build a normalized catalog record with sensible defaults."""
    return CatalogRecord(
        id=str(record_id),
        title=title or f"Book {record_id}",
        author=author,
        tags=tuple(tags),
        temporal_context_tags=tuple(temporal),
        historical_context_tags=tuple(historical),
        publication_year=year,
        created_at=created_at,
        protagonist=protagonist,
    )


def make_book(entity_id, author="Ann Author", tags=(), context=(), title=None):
    """Build a book entity directly, bypassing record synthesis."""
    return Entity(
        id=entity_id,
        node_type=NodeType.BOOK,
        title=title or entity_id,
        author=author,
        tags=tuple(tags),
        context_tags=tuple(context),
    )


@pytest.fixture
def config():
    """Provide a default configuration isolated from the environment."""
    with patch.dict(os.environ, {}, clear=True):
        with patch("pyneuralmap.config.load_dotenv"):
            yield Config()


@pytest.fixture
def sample_raw_catalog():
    """Provide a small raw catalog as delivered by the persistence layer."""
    return [
        {
            "id": 1,
            "title": "Neuromancer",
            "author": "William Gibson",
            "tags": ["Cyberpunk", "Neural Interface", "Mega-Corporate Systems"],
            "temporal_context_tags": [
                "Cyberpunk Era (1980-1995)",
                "Reagan Era (1980s)",
                "PC Revolution (1980s)",
            ],
            "historical_context_tags": None,
            "publication_year": 1984,
            "created_at": "2026-01-10T12:00:00Z",
            "protagonist": "Case",
        },
        {
            "id": 2,
            "title": "Count Zero",
            "author": "William Gibson",
            "tags": ["Cyberpunk", "Mega-Corporate Systems"],
            "temporal_context_tags": ["Cyberpunk Era (1980-1995)"],
            "publication_year": 1986,
            "created_at": "2026-02-15T12:00:00Z",
        },
        {
            "id": 3,
            "title": "The Left Hand of Darkness",
            "author": "Ursula K. Le Guin",
            "tags": ["Off-Earth Civilisations", "Dream Logic"],
            "temporal_context_tags": [
                "New Wave (1960-1975)",
                "Counterculture Movement (1960s)",
            ],
            "publication_year": 1969,
            "created_at": "2026-03-01T12:00:00Z",
            "protagonist": "Genly Ai",
        },
        {
            "id": 4,
            "title": "Snow Crash",
            "author": "Neal Stephenson",
            "tags": ["Cyberpunk", "Neural Interface"],
            "temporal_context_tags": ["Post-Cyberpunk (1995-2010)", "PC Revolution (1980s)"],
            "publication_year": 1992,
            "created_at": "2026-04-20T12:00:00Z",
            "protagonist": "Hiro Protagonist",
        },
        {
            "id": 5,
            "title": "The Dispossessed",
            "author": "Ursula K. Le Guin",
            "tags": ["Utopian Collapse", "Off-Earth Civilisations"],
            "temporal_context_tags": ["New Wave (1960-1975)", "Cold War Tensions"],
            "historical_context_tags": ["Cold War"],
            "publication_year": 1974,
            "created_at": "2026-05-05T12:00:00Z",
        },
    ]


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line(
        "markers", "integration: marks tests that exercise several components together"
    )
