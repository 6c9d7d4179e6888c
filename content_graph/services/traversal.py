"""
Traversal Engine - bounded, cycle-safe neighbourhood discovery.

Breadth-first walk from a seed node. Each frontier entry carries the path
(tuple of node ids) from the seed, and a neighbour already on that path is
never expanded again. Edges are walked in both directions regardless of
their stored direction. One store query is issued per depth level.

Results are de-duplicated by node id at the minimum depth the node was
reached, and each node lists the relationships incident to it that were
seen during the walk.
"""

import logging
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Sequence, Tuple

from ..lib.graph_store import GraphStore, require_store
from ..models.graph import RelatedNode, RelatedNodes, Relationship

logger = logging.getLogger(__name__)

# Hard ceiling on traversal depth, whatever the caller asks for
MAX_TRAVERSAL_DEPTH = 5


class TraversalEngine:
    """Walks the graph outward from a seed node."""

    def __init__(self, store: Optional[GraphStore]):
        self.store = store

    def get_related_nodes(
        self,
        node_id: int,
        max_depth: int = 2,
        relationship_types: Optional[Sequence[str]] = None
    ) -> RelatedNodes:
        """
        Nodes reachable from ``node_id`` within ``max_depth`` hops.

        Args:
            node_id: Seed node id
            max_depth: Hop limit, clamped to [0, MAX_TRAVERSAL_DEPTH]
            relationship_types: Only expand along these edge types (all when None)

        Returns:
            RelatedNodes ordered by depth, then node creation. A missing seed
            yields an empty result rather than an error.

        Raises:
            ConfigurationError: No store configured
        """
        store = require_store(self.store)
        depth_limit = max(0, min(int(max_depth), MAX_TRAVERSAL_DEPTH))
        types = list(relationship_types) if relationship_types else None

        seed = store.get_node(node_id)
        if seed is None:
            logger.info(f"Traversal seed {node_id} not found; returning empty result")
            return RelatedNodes()

        min_depth: Dict[int, int] = {seed.id: 0}
        seen_edges: Dict[int, Dict[int, Relationship]] = defaultdict(dict)
        frontier: Deque[Tuple[int, Tuple[int, ...]]] = deque([(seed.id, (seed.id,))])
        depth = 0

        while frontier and depth < depth_limit:
            level_ids = {current for current, _ in frontier}
            adjacency: Dict[int, List[Tuple[int, Relationship]]] = defaultdict(list)
            for rel in store.incident_relationships(level_ids, types):
                adjacency[rel.from_node_id].append((rel.to_node_id, rel))
                if rel.to_node_id != rel.from_node_id:
                    adjacency[rel.to_node_id].append((rel.from_node_id, rel))

            next_frontier: Deque[Tuple[int, Tuple[int, ...]]] = deque()
            while frontier:
                current, path = frontier.popleft()
                for neighbour, rel in adjacency.get(current, ()):
                    seen_edges[current][rel.id] = rel
                    seen_edges[neighbour][rel.id] = rel
                    if neighbour in path:
                        continue
                    # Reached earlier at this depth or shallower: nothing new below it
                    if neighbour in min_depth and min_depth[neighbour] <= depth + 1:
                        continue
                    min_depth[neighbour] = depth + 1
                    next_frontier.append((neighbour, path + (neighbour,)))

            frontier = next_frontier
            depth += 1

        nodes = store.get_nodes(min_depth.keys())
        related = [
            RelatedNode(
                **node.model_dump(),
                depth=min_depth[node.id],
                relationships=[
                    seen_edges[node.id][rel_id]
                    for rel_id in sorted(seen_edges.get(node.id, {}))
                ],
            )
            for node in nodes.values()
        ]
        related.sort(key=lambda n: (n.depth, n.created_at, n.id))

        logger.debug(
            f"Traversal from {node_id} (depth={depth_limit}, types={types}) "
            f"found {len(related)} node(s)"
        )
        return RelatedNodes(nodes=related, total_count=len(related))
