"""Catalog record normalization for PyNeuralMap.

Catalog records arrive from an external persistence collaborator as loose
mappings. This module turns them into immutable ``CatalogRecord`` values,
treating null or missing tag arrays as empty and dropping records that
cannot be identified.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogRecord:
    """A user's tracked work with its tags and metadata."""

    id: str
    title: str
    author: str
    tags: Tuple[str, ...] = ()
    temporal_context_tags: Tuple[str, ...] = ()
    historical_context_tags: Tuple[str, ...] = ()
    publication_year: Optional[int] = None
    created_at: Optional[datetime] = None
    protagonist: Optional[str] = None
    protagonist_portrait_url: Optional[str] = None
    protagonist_intro: Optional[str] = None

    @property
    def context_tags(self) -> Tuple[str, ...]:
        """Temporal and legacy historical context tags, deduplicated."""
        return _unique(self.temporal_context_tags + self.historical_context_tags)

    @property
    def all_tags(self) -> Tuple[str, ...]:
        """Every tag the record carries across all taxonomies."""
        return _unique(
            self.tags + self.temporal_context_tags + self.historical_context_tags
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "tags": list(self.tags),
            "temporal_context_tags": list(self.temporal_context_tags),
            "historical_context_tags": list(self.historical_context_tags),
            "publication_year": self.publication_year,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "protagonist": self.protagonist,
            "protagonist_portrait_url": self.protagonist_portrait_url,
            "protagonist_intro": self.protagonist_intro,
        }


@dataclass(frozen=True)
class AuthorProfile:
    """External author-directory entry used to decorate author entities."""

    id: str
    portrait_url: Optional[str] = None
    bio: Optional[str] = None


class AuthorDirectory(ABC):
    """Abstract author-directory collaborator."""

    @abstractmethod
    def lookup(self, names: Iterable[str]) -> Dict[str, AuthorProfile]:
        """Look up author profiles by name.

        Args:
            names: Distinct author names

        Returns:
            Mapping of matched name to profile; unmatched names are absent
        """
        pass


class StaticAuthorDirectory(AuthorDirectory):
    """In-memory author directory with case-insensitive name matching."""

    def __init__(self, profiles: Optional[Mapping[str, Any]] = None):
        self._profiles: Dict[str, AuthorProfile] = {}
        for name, profile in (profiles or {}).items():
            if isinstance(profile, AuthorProfile):
                self._profiles[name.lower()] = profile
            elif isinstance(profile, Mapping) and profile.get("id") is not None:
                self._profiles[name.lower()] = AuthorProfile(
                    id=str(profile["id"]),
                    portrait_url=profile.get("portrait_url"),
                    bio=profile.get("bio"),
                )

    def lookup(self, names: Iterable[str]) -> Dict[str, AuthorProfile]:
        matches = {}
        for name in names:
            profile = self._profiles.get(name.lower())
            if profile is not None:
                matches[name] = profile
        return matches

    def __len__(self) -> int:
        return len(self._profiles)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a creation timestamp into an aware UTC datetime.

    Args:
        value: ISO-8601 string or datetime

    Returns:
        Aware datetime, or None when the value cannot be interpreted
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning(f"Unparseable created_at timestamp: {value!r}")
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def as_utc(moment: Optional[datetime] = None) -> datetime:
    """Aware UTC reference time, defaulting to now."""
    if moment is None:
        return datetime.now(timezone.utc)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def normalize_record(raw: Any) -> Optional[CatalogRecord]:
    """Normalize a raw catalog mapping into a CatalogRecord.

    Returns None for malformed records (non-mappings or missing ``id``).
    """
    if isinstance(raw, CatalogRecord):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning(f"Skipping non-mapping catalog record: {type(raw).__name__}")
        return None

    record_id = raw.get("id")
    if record_id is None or not str(record_id).strip():
        logger.warning(f"Skipping catalog record without id: {raw.get('title')!r}")
        return None

    return CatalogRecord(
        id=str(record_id).strip(),
        title=_clean_str(raw.get("title")) or "Unknown Title",
        author=_clean_str(raw.get("author")) or "Unknown Author",
        tags=_clean_tags(raw.get("tags")),
        temporal_context_tags=_clean_tags(raw.get("temporal_context_tags")),
        historical_context_tags=_clean_tags(raw.get("historical_context_tags")),
        publication_year=_clean_year(raw.get("publication_year")),
        created_at=parse_timestamp(raw.get("created_at")),
        protagonist=_clean_str(raw.get("protagonist")),
        protagonist_portrait_url=_clean_str(raw.get("protagonist_portrait_url")),
        protagonist_intro=_clean_str(raw.get("protagonist_intro")),
    )


def normalize_records(raw_records: Optional[Iterable[Any]]) -> List[CatalogRecord]:
    """Normalize a collection of raw records, dropping malformed ones.

    Records are deduplicated by id; the first occurrence wins.
    """
    if not raw_records:
        return []

    records: List[CatalogRecord] = []
    seen_ids = set()
    skipped = 0
    for raw in raw_records:
        record = normalize_record(raw)
        if record is None:
            skipped += 1
            continue
        if record.id in seen_ids:
            logger.warning(f"Skipping duplicate catalog record id: {record.id}")
            skipped += 1
            continue
        seen_ids.add(record.id)
        records.append(record)

    if skipped:
        logger.info(f"Normalized {len(records)} catalog records ({skipped} skipped)")
    return records


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_tags(value: Any) -> Tuple[str, ...]:
    if not value or isinstance(value, str):
        return ()
    try:
        items = list(value)
    except TypeError:
        return ()
    return _unique(tag.strip() for tag in items if isinstance(tag, str) and tag.strip())


def _clean_year(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(items))
