"""Graph construction for the neural map.

Book-to-book candidates come from exhaustive pairwise scoring on small
graphs and from bucketed candidate generation on large ones. Structural
authorship and membership edges are added on top, then the edge set is
sorted by score and capped.

Bucketed candidate generation is a sparsification heuristic: books are
grouped by author and by tag, every pair inside an author bucket is
scored, but only the first ``bucket_window_size`` members of a tag bucket
are compared. Pairs outside that window are never scored, so recall is
traded for a bounded amount of work per call.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..entities import Entity, is_known_author
from ..models import GraphEdge
from ..types import ConnectionReason, EdgeType, NodeType
from .scoring import ConnectionResult, calculate_connection_strength

logger = logging.getLogger(__name__)

LARGE_GRAPH_THRESHOLD = 60
BUCKET_WINDOW_SIZE = 6
MAX_VISIBLE_CONNECTIONS = 80

SCORE_AUTHORSHIP = 40
SCORE_PROTAGONIST_BOOK = 35
SCORE_PROTAGONIST_AUTHOR = 25

# Scores are divided by this to get the display strength
STRENGTH_SCALE = 50.0


@dataclass(frozen=True)
class GraphBuildSettings:
    """Tunable heuristics of the graph builder."""

    large_graph_threshold: int = LARGE_GRAPH_THRESHOLD
    bucket_window_size: int = BUCKET_WINDOW_SIZE
    max_visible_connections: int = MAX_VISIBLE_CONNECTIONS

    @property
    def edge_cap(self) -> int:
        return self.max_visible_connections * 2


def describe_reasons(
    reasons: Sequence[ConnectionReason],
    shared_by_reason: Dict[ConnectionReason, Sequence[str]],
) -> str:
    """Human-readable explanation of an edge's reasons."""
    labels = []
    for reason in reasons:
        tags = list(shared_by_reason.get(reason, ()))
        if reason is ConnectionReason.SAME_AUTHOR:
            labels.append("Same author")
        elif reason is ConnectionReason.SHARED_THEME:
            labels.append(f"Themes: {', '.join(tags[:2])}")
        elif reason is ConnectionReason.SHARED_SUBGENRE:
            labels.append(f"Subgenres: {', '.join(tags[:2])}")
        elif reason is ConnectionReason.SHARED_ERA:
            labels.append(f"Era: {tags[-1] if tags else 'shared'}")
        elif reason is ConnectionReason.WROTE:
            labels.append("Wrote")
        elif reason is ConnectionReason.APPEARS_IN:
            labels.append("Appears in")
    return " • ".join(labels)


def create_edge(from_id: str, to_id: str, result: ConnectionResult) -> GraphEdge:
    """Create a scored book-to-book edge from a connection result."""
    primary_reason = result.reasons[0]
    if primary_reason is ConnectionReason.SAME_AUTHOR:
        edge_type = EdgeType.AUTHOR_SHARED
    else:
        edge_type = EdgeType.THEME_SHARED

    shared_by_reason = {
        reason: tuple(tags) for reason, tags in result.shared_by_reason.items()
    }
    return GraphEdge(
        from_id=from_id,
        to_id=to_id,
        edge_type=edge_type,
        score=result.score,
        reasons=tuple(result.reasons),
        shared_tags=tuple(result.shared_tags),
        strength=result.score / STRENGTH_SCALE,
        label=describe_reasons(result.reasons, result.shared_by_reason),
        shared_by_reason=shared_by_reason,
    )


def create_structural_edge(
    from_id: str, to_id: str, edge_type: EdgeType, score: float, reason: ConnectionReason
) -> GraphEdge:
    """Create a fixed-score authorship or membership edge."""
    return GraphEdge(
        from_id=from_id,
        to_id=to_id,
        edge_type=edge_type,
        score=score,
        reasons=(reason,),
        strength=score / STRENGTH_SCALE,
        label=describe_reasons((reason,), {}),
    )


class GraphBuilder:
    """Builds the capped, deduplicated edge set for a visible entity set."""

    def __init__(self, settings: Optional[GraphBuildSettings] = None):
        self.settings = settings or GraphBuildSettings()
        self.last_strategy: Optional[str] = None

    def build(self, entities: Iterable[Entity]) -> List[GraphEdge]:
        """Build the final edge list.

        Args:
            entities: Visible book, author and protagonist entities

        Returns:
            Edges sorted by score descending, capped at twice the maximum
            visible connections
        """
        books, authors, protagonists = self._partition(entities)
        if len(books) + len(authors) + len(protagonists) < 2:
            self.last_strategy = None
            return []

        edges_map: Dict[str, GraphEdge] = {}

        if len(books) <= self.settings.large_graph_threshold:
            self.last_strategy = "pairwise"
            for edge in self._pairwise_edges(books):
                _keep_best(edges_map, edge)
        else:
            self.last_strategy = "bucketed"
            for edge in self._bucketed_edges(books):
                _keep_best(edges_map, edge)

        for edge in self._authorship_edges(authors, books):
            _keep_best(edges_map, edge)
        for edge in self._membership_edges(protagonists, books, authors):
            _keep_best(edges_map, edge)

        candidate_edges = sorted(edges_map.values(), key=lambda e: e.score, reverse=True)
        edges = candidate_edges[: self.settings.edge_cap]

        logger.info(
            f"Built neural map graph: {len(books)} books, {len(authors)} authors, "
            f"{len(protagonists)} protagonists, {len(edges)} edges "
            f"({len(candidate_edges)} candidates, {self.last_strategy} strategy)"
        )
        return edges

    def _partition(
        self, entities: Iterable[Entity]
    ) -> Tuple[List[Entity], List[Entity], List[Entity]]:
        partitions: Dict[NodeType, List[Entity]] = {
            NodeType.BOOK: [],
            NodeType.AUTHOR: [],
            NodeType.PROTAGONIST: [],
        }
        seen_ids = set()
        for entity in entities or ():
            if not entity.id or entity.id in seen_ids:
                continue
            seen_ids.add(entity.id)
            partitions[entity.node_type].append(entity)
        return (
            partitions[NodeType.BOOK],
            partitions[NodeType.AUTHOR],
            partitions[NodeType.PROTAGONIST],
        )

    def _pairwise_edges(self, books: Sequence[Entity]) -> Iterable[GraphEdge]:
        for i in range(len(books)):
            for j in range(i + 1, len(books)):
                result = calculate_connection_strength(books[i], books[j])
                if result.should_connect:
                    yield create_edge(books[i].id, books[j].id, result)

    def _bucketed_edges(self, books: Sequence[Entity]) -> Iterable[GraphEdge]:
        author_buckets, tag_buckets = group_by_attributes(books)
        window = self.settings.bucket_window_size

        logger.debug(
            f"Bucketed candidate generation: {len(author_buckets)} author buckets, "
            f"{len(tag_buckets)} tag buckets, window {window}"
        )

        for members in author_buckets.values():
            yield from self._bucket_pairs(members)

        for members in tag_buckets.values():
            yield from self._bucket_pairs(members[:window])

    def _bucket_pairs(self, members: Sequence[Entity]) -> Iterable[GraphEdge]:
        if len(members) < 2:
            return
        yield from self._pairwise_edges(members)

    def _authorship_edges(
        self, authors: Sequence[Entity], books: Sequence[Entity]
    ) -> Iterable[GraphEdge]:
        for author in authors:
            name = author.title.strip().lower()
            for book in books:
                if is_known_author(book.author) and book.author.strip().lower() == name:
                    yield create_structural_edge(
                        author.id,
                        book.id,
                        EdgeType.AUTHORSHIP,
                        SCORE_AUTHORSHIP,
                        ConnectionReason.WROTE,
                    )

    def _membership_edges(
        self,
        protagonists: Sequence[Entity],
        books: Sequence[Entity],
        authors: Sequence[Entity],
    ) -> Iterable[GraphEdge]:
        books_by_title: Dict[str, Entity] = {}
        for book in books:
            books_by_title.setdefault(book.title.strip().lower(), book)
        authors_by_name: Dict[str, Entity] = {}
        for author in authors:
            authors_by_name.setdefault(author.title.strip().lower(), author)

        for protagonist in protagonists:
            book = books_by_title.get((protagonist.book_title or "").strip().lower())
            if book is not None:
                yield create_structural_edge(
                    protagonist.id,
                    book.id,
                    EdgeType.MEMBERSHIP,
                    SCORE_PROTAGONIST_BOOK,
                    ConnectionReason.APPEARS_IN,
                )
            author = authors_by_name.get((protagonist.author or "").strip().lower())
            if author is not None and is_known_author(protagonist.author):
                yield create_structural_edge(
                    protagonist.id,
                    author.id,
                    EdgeType.MEMBERSHIP,
                    SCORE_PROTAGONIST_AUTHOR,
                    ConnectionReason.APPEARS_IN,
                )


def group_by_attributes(
    books: Sequence[Entity],
) -> Tuple[Dict[str, List[Entity]], Dict[str, List[Entity]]]:
    """Group books into author and tag buckets for candidate generation.

    Bucket members keep the order in which books were supplied.
    """
    author_buckets: Dict[str, List[Entity]] = {}
    tag_buckets: Dict[str, List[Entity]] = {}

    for book in books:
        if is_known_author(book.author):
            author_buckets.setdefault(book.author.strip().lower(), []).append(book)

        for tag in dict.fromkeys(book.tags + book.context_tags):
            if tag.strip():
                tag_buckets.setdefault(tag, []).append(book)

    return author_buckets, tag_buckets


def build_graph(
    entities: Iterable[Entity], settings: Optional[GraphBuildSettings] = None
) -> List[GraphEdge]:
    """Build the neural map edge list for a set of visible entities."""
    return GraphBuilder(settings).build(entities)


def _keep_best(edges_map: Dict[str, GraphEdge], edge: GraphEdge) -> None:
    key = edge.key
    existing = edges_map.get(key)
    if existing is None or existing.score < edge.score:
        edges_map[key] = edge
