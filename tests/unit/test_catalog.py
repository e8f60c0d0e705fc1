"""Tests for catalog record normalization."""

import json
from datetime import datetime, timedelta, timezone

from pyneuralmap.catalog import (
    AuthorProfile,
    CatalogRecord,
    StaticAuthorDirectory,
    as_utc,
    normalize_record,
    normalize_records,
    parse_timestamp,
)


class TestNormalizeRecord:
    """Test normalization of single raw records."""

    def test_full_record(self, sample_raw_catalog):
        """A well-formed mapping becomes a CatalogRecord."""
        record = normalize_record(sample_raw_catalog[0])

        assert isinstance(record, CatalogRecord)
        assert record.id == "1"
        assert record.title == "Neuromancer"
        assert record.tags == ("Cyberpunk", "Neural Interface", "Mega-Corporate Systems")
        assert record.historical_context_tags == ()
        assert record.publication_year == 1984
        assert record.created_at == datetime(2026, 1, 10, 12, tzinfo=timezone.utc)
        assert record.protagonist == "Case"

    def test_null_and_missing_tags_are_empty(self):
        """Null, missing and string-valued tag arrays become empty tuples."""
        record = normalize_record(
            {"id": 7, "title": "T", "author": "A", "tags": None, "temporal_context_tags": "AI"}
        )

        assert record.tags == ()
        assert record.temporal_context_tags == ()
        assert record.historical_context_tags == ()

    def test_tags_are_trimmed_and_deduplicated(self):
        """Blank and non-string tags are dropped, duplicates collapsed."""
        record = normalize_record(
            {"id": 1, "title": "T", "author": "A", "tags": [" AI ", "AI", "", 3, "Space"]}
        )
        assert record.tags == ("AI", "Space")

    def test_missing_fields_get_placeholders(self):
        """Missing title and author fall back to placeholder values."""
        record = normalize_record({"id": "x"})

        assert record.title == "Unknown Title"
        assert record.author == "Unknown Author"
        assert record.publication_year is None
        assert record.created_at is None

    def test_malformed_records_are_rejected(self):
        """Records without an id or that are not mappings yield None."""
        assert normalize_record({"title": "No id"}) is None
        assert normalize_record({"id": "  "}) is None
        assert normalize_record("not a record") is None

    def test_invalid_year(self):
        """Unparseable and boolean years are dropped."""
        assert normalize_record({"id": 1, "publication_year": "soon"}).publication_year is None
        assert normalize_record({"id": 1, "publication_year": True}).publication_year is None
        assert normalize_record({"id": 1, "publication_year": "1969"}).publication_year == 1969

    def test_non_finite_year(self):
        """Infinite and NaN years from lenient JSON are dropped, not raised."""
        raw = json.loads('[{"id": 1, "publication_year": Infinity}, {"id": 2, "publication_year": NaN}]')

        records = normalize_records(raw)

        assert [record.id for record in records] == ["1", "2"]
        assert records[0].publication_year is None
        assert records[1].publication_year is None
        assert normalize_record({"id": 3, "publication_year": float("-inf")}).publication_year is None

    def test_context_and_all_tags(self):
        """Derived tag views merge taxonomies without duplicates."""
        record = CatalogRecord(
            id="1",
            title="T",
            author="A",
            tags=("AI",),
            temporal_context_tags=("Cold War Tensions",),
            historical_context_tags=("Cold War Tensions", "Cold War"),
        )

        assert record.context_tags == ("Cold War Tensions", "Cold War")
        assert record.all_tags == ("AI", "Cold War Tensions", "Cold War")


class TestNormalizeRecords:
    """Test normalization of record collections."""

    def test_skips_malformed_and_duplicates(self, sample_raw_catalog):
        """Malformed records are dropped and the first duplicate id wins."""
        raw = sample_raw_catalog + [{"title": "No id"}, {"id": 1, "title": "Dupe"}]

        records = normalize_records(raw)

        assert [record.id for record in records] == ["1", "2", "3", "4", "5"]
        assert records[0].title == "Neuromancer"

    def test_empty_input(self):
        """None and empty inputs produce no records."""
        assert normalize_records(None) == []
        assert normalize_records([]) == []


class TestTimestamps:
    """Test timestamp parsing."""

    def test_parse_zulu_and_offsets(self):
        """Zulu and offset timestamps become aware UTC datetimes."""
        assert parse_timestamp("2026-01-10T12:00:00Z") == datetime(
            2026, 1, 10, 12, tzinfo=timezone.utc
        )
        parsed = parse_timestamp("2026-01-10T14:00:00+02:00")
        assert parsed == datetime(2026, 1, 10, 12, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_values_are_treated_as_utc(self):
        """Naive datetimes and strings are assumed to be UTC."""
        assert parse_timestamp(datetime(2026, 1, 1)).tzinfo is timezone.utc
        assert parse_timestamp("2026-01-01T00:00:00").tzinfo is timezone.utc

    def test_invalid_values(self):
        """Unparseable values yield None."""
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(12345) is None

    def test_as_utc(self):
        """Reference times are normalized to aware UTC."""
        assert as_utc(datetime(2026, 1, 1)).tzinfo is timezone.utc
        assert as_utc().tzinfo is not None


class TestStaticAuthorDirectory:
    """Test the in-memory author directory."""

    def test_lookup_is_case_insensitive(self):
        """Names match regardless of case and keep the requested spelling."""
        directory = StaticAuthorDirectory(
            {
                "Ursula K. Le Guin": {"id": "a-1", "bio": "Anarchist utopias"},
                "William Gibson": AuthorProfile(id="a-2"),
                "No Id": {"bio": "ignored"},
            }
        )

        matches = directory.lookup(["ursula k. le guin", "Neal Stephenson"])

        assert len(directory) == 2
        assert list(matches) == ["ursula k. le guin"]
        assert matches["ursula k. le guin"].id == "a-1"
        assert matches["ursula k. le guin"].bio == "Anarchist utopias"
