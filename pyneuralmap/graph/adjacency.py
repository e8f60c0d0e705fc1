"""Adjacency index over a built neural map graph.

The index precomputes a neighbor map and an edge-summary map keyed by
canonical pair key. All queries are pure reads over those two maps.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..models import (
    ConnectionBreakdown,
    EdgeSummary,
    GraphEdge,
    RelatedEntity,
    pair_key,
)
from ..types import ConnectionReason


class AdjacencyIndex:
    """Read-only neighbor and edge lookup for a graph.

    Neighbor lists keep the order in which edges were supplied, which for
    builder output is score descending.
    """

    def __init__(self, edges: Optional[Iterable[GraphEdge]] = None) -> None:
        """Build the index from an edge list."""
        # entity id -> ordered neighbor ids
        self._neighbors: Dict[str, List[str]] = defaultdict(list)
        # canonical pair key -> edge summary
        self._edges: Dict[str, EdgeSummary] = {}

        for edge in edges or ():
            self._add_edge(edge)

    def _add_edge(self, edge: GraphEdge) -> None:
        if edge.from_id == edge.to_id:
            return
        key = edge.key
        existing = self._edges.get(key)
        if existing is not None:
            if existing.score >= edge.score:
                return
        else:
            self._neighbors[edge.from_id].append(edge.to_id)
            self._neighbors[edge.to_id].append(edge.from_id)

        self._edges[key] = EdgeSummary(
            reasons=edge.reasons,
            shared_tags=edge.shared_tags,
            score=edge.score,
            shared_by_reason=dict(edge.shared_by_reason),
        )

    def get_direct_neighbors(self, entity_id: str) -> List[str]:
        """Get ids directly connected to an entity.

        Args:
            entity_id: Entity to look up

        Returns:
            Neighbor ids, empty when the entity has no edges
        """
        return list(self._neighbors.get(entity_id, ()))

    def get_second_degree_neighbors(self, entity_id: str) -> List[str]:
        """Get ids reachable in exactly two hops.

        The entity itself and its direct neighbors are excluded.
        """
        direct = self._neighbors.get(entity_id, ())
        excluded = set(direct)
        excluded.add(entity_id)

        second_degree: List[str] = []
        seen = set()
        for neighbor_id in direct:
            for candidate in self._neighbors.get(neighbor_id, ()):
                if candidate in excluded or candidate in seen:
                    continue
                seen.add(candidate)
                second_degree.append(candidate)
        return second_degree

    def get_edge_data(self, entity_a: str, entity_b: str) -> Optional[EdgeSummary]:
        """Get the stored summary of the edge between two entities, if any."""
        return self._edges.get(pair_key(entity_a, entity_b))

    def get_top_related(self, entity_id: str, limit: int = 4) -> List[RelatedEntity]:
        """Get direct neighbors ranked by edge score.

        Args:
            entity_id: Entity to look up
            limit: Maximum number of neighbors to return

        Returns:
            Neighbors sorted by score descending
        """
        related = [
            RelatedEntity(
                node_id=neighbor_id,
                score=self._edges[pair_key(entity_id, neighbor_id)].score,
            )
            for neighbor_id in self._neighbors.get(entity_id, ())
        ]
        related.sort(key=lambda item: item.score, reverse=True)
        return related[: max(limit, 0)]

    def get_connection_breakdown(self, entity_id: str) -> ConnectionBreakdown:
        """Aggregate the reasons connecting an entity to its neighbors."""
        neighbors = self._neighbors.get(entity_id, ())
        same_author = 0
        themes: Dict[str, None] = {}
        subgenres: Dict[str, None] = {}
        eras: Dict[str, None] = {}

        for neighbor_id in neighbors:
            summary = self._edges[pair_key(entity_id, neighbor_id)]
            if ConnectionReason.SAME_AUTHOR in summary.reasons:
                same_author += 1
            by_reason = summary.shared_by_reason
            themes.update(dict.fromkeys(by_reason.get(ConnectionReason.SHARED_THEME, ())))
            subgenres.update(
                dict.fromkeys(by_reason.get(ConnectionReason.SHARED_SUBGENRE, ()))
            )
            eras.update(dict.fromkeys(by_reason.get(ConnectionReason.SHARED_ERA, ())))

        return ConnectionBreakdown(
            same_author=same_author,
            shared_themes=tuple(themes),
            shared_subgenres=tuple(subgenres),
            shared_eras=tuple(eras),
            total=len(neighbors),
        )

    def get_stats(self) -> Dict[str, int]:
        """Get index statistics."""
        return {
            "total_entities": len(self._neighbors),
            "total_edges": len(self._edges),
        }

    def __len__(self) -> int:
        return len(self._edges)
