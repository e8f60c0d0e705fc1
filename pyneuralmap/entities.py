"""Entity model and entity synthesis for the neural map.

An entity is a tagged union over three variants discriminated by
``node_type``: books come straight from catalog records, while author and
protagonist entities are synthesized, at most one per distinct name.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .catalog import AuthorDirectory, AuthorProfile, CatalogRecord
from .types import NodeType
from .vocabulary import UNKNOWN_AUTHOR

logger = logging.getLogger(__name__)

AUTHOR_DISPLAY_TAG_LIMIT = 3


@dataclass(frozen=True)
class Entity:
    """A node in the neural map.

    Common fields apply to every variant. ``transmission_id`` is set for
    books, ``author_record_id``/``portrait_url``/``bio`` for authors and
    ``book_title``/``portrait_url``/``intro`` for protagonists.
    """

    id: str
    node_type: NodeType
    title: str
    author: str
    tags: Tuple[str, ...] = ()
    context_tags: Tuple[str, ...] = ()
    # Book variant
    transmission_id: Optional[str] = None
    # Author variant
    author_record_id: Optional[str] = None
    bio: Optional[str] = None
    # Protagonist variant
    book_title: Optional[str] = None
    intro: Optional[str] = None
    # Shared decoration
    portrait_url: Optional[str] = None
    # Layout position, owned by the rendering collaborator
    position: Optional[Tuple[float, float]] = None

    @property
    def is_book(self) -> bool:
        return self.node_type is NodeType.BOOK

    def to_dict(self) -> Dict[str, Any]:
        """Convert entity to dictionary representation."""
        data: Dict[str, Any] = {
            "id": self.id,
            "node_type": self.node_type.value,
            "title": self.title,
            "author": self.author,
            "tags": list(self.tags),
            "context_tags": list(self.context_tags),
        }
        if self.node_type is NodeType.BOOK:
            data["transmission_id"] = self.transmission_id
        elif self.node_type is NodeType.AUTHOR:
            data.update(
                {
                    "author_record_id": self.author_record_id,
                    "portrait_url": self.portrait_url,
                    "bio": self.bio,
                }
            )
        elif self.node_type is NodeType.PROTAGONIST:
            data.update(
                {
                    "book_title": self.book_title,
                    "portrait_url": self.portrait_url,
                    "intro": self.intro,
                }
            )
        if self.position is not None:
            data["position"] = list(self.position)
        return data


def book_entity(record: CatalogRecord) -> Entity:
    """Create the book entity for a catalog record."""
    return Entity(
        id=f"book-{record.id}",
        node_type=NodeType.BOOK,
        title=record.title,
        author=record.author,
        tags=record.tags,
        context_tags=record.context_tags,
        transmission_id=record.id,
    )


def is_known_author(name: Optional[str]) -> bool:
    """Whether an author name is usable for matching (non-blank, non-sentinel)."""
    return bool(name and name.strip()) and name.strip() != UNKNOWN_AUTHOR


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "unnamed"


def build_entities(
    records: Sequence[CatalogRecord],
    author_directory: Optional[AuthorDirectory] = None,
    include_authors: bool = True,
    include_protagonists: bool = True,
) -> List[Entity]:
    """Synthesize the full entity set for a catalog snapshot.

    Args:
        records: Normalized catalog records
        author_directory: Optional collaborator used to decorate authors
        include_authors: Whether to synthesize author entities
        include_protagonists: Whether to synthesize protagonist entities

    Returns:
        Book entities followed by author and protagonist entities
    """
    used_ids: Set[str] = set()
    entities: List[Entity] = []

    for record in records:
        entity = book_entity(record)
        if entity.id in used_ids:
            continue
        used_ids.add(entity.id)
        entities.append(entity)

    if include_authors:
        entities.extend(_build_author_entities(records, author_directory, used_ids))
    if include_protagonists:
        entities.extend(_build_protagonist_entities(records, used_ids))

    logger.debug(
        f"Built {len(entities)} entities from {len(records)} catalog records"
    )
    return entities


def _build_author_entities(
    records: Sequence[CatalogRecord],
    author_directory: Optional[AuthorDirectory],
    used_ids: Set[str],
) -> List[Entity]:
    # name key -> (display name, aggregated tags)
    authors: Dict[str, Tuple[str, Dict[str, None]]] = {}
    for record in records:
        if not is_known_author(record.author):
            continue
        key = record.author.strip().lower()
        if key not in authors:
            authors[key] = (record.author.strip(), {})
        authors[key][1].update(dict.fromkeys(record.tags))

    if not authors:
        return []

    profiles = _lookup_profiles(
        author_directory, [name for name, _ in authors.values()]
    )

    entities = []
    for name, tags in authors.values():
        profile = profiles.get(name)
        entities.append(
            Entity(
                id=unique_id(f"author-{slugify(name)}", used_ids),
                node_type=NodeType.AUTHOR,
                title=name,
                author=name,
                tags=tuple(tags)[:AUTHOR_DISPLAY_TAG_LIMIT],
                author_record_id=profile.id if profile else None,
                portrait_url=profile.portrait_url if profile else None,
                bio=profile.bio if profile else None,
            )
        )
    return entities


def _build_protagonist_entities(
    records: Sequence[CatalogRecord], used_ids: Set[str]
) -> List[Entity]:
    entities = []
    seen_names: Set[str] = set()
    for record in records:
        if not record.protagonist:
            continue
        key = record.protagonist.lower()
        if key in seen_names:
            continue
        seen_names.add(key)
        entities.append(
            Entity(
                id=unique_id(f"protagonist-{slugify(record.protagonist)}", used_ids),
                node_type=NodeType.PROTAGONIST,
                title=record.protagonist,
                author=record.author,
                tags=record.tags,
                context_tags=record.context_tags,
                book_title=record.title,
                portrait_url=record.protagonist_portrait_url,
                intro=record.protagonist_intro,
            )
        )
    return entities


def _lookup_profiles(
    author_directory: Optional[AuthorDirectory], names: Iterable[str]
) -> Dict[str, AuthorProfile]:
    if author_directory is None:
        return {}
    try:
        return author_directory.lookup(names) or {}
    except Exception as e:
        logger.warning(f"Author directory lookup failed: {e}")
        return {}


def unique_id(candidate: str, used_ids: Set[str]) -> str:
    entity_id = candidate
    suffix = 2
    while entity_id in used_ids:
        entity_id = f"{candidate}-{suffix}"
        suffix += 1
    used_ids.add(entity_id)
    return entity_id
