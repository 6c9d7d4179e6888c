"""
Abstract graph store.

A store persists nodes and relationships and answers the handful of read
queries the engine needs. Traversal, similarity linking and ingestion live
above this layer and only talk to a store through these methods, so the
Postgres and in-memory implementations are interchangeable.

Implementations must:
- upsert nodes on ``(type, name)`` and relationships on ``(from, to, type)``
  with last-writer-wins semantics
- reject relationships whose endpoints do not exist with ``StorageError``
- never hold a connection past the end of a call
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ...models.graph import Node, Properties, Relationship
from ..errors import ConfigurationError


def require_store(store: Optional["GraphStore"]) -> "GraphStore":
    """Return the store or raise ConfigurationError when none is configured."""
    if store is None:
        raise ConfigurationError("Graph store not configured")
    return store


class GraphStore(ABC):
    """Persistence interface for the knowledge graph."""

    @abstractmethod
    def upsert_node(
        self,
        node_type: str,
        name: str,
        properties: Properties,
        embedding: Optional[List[float]] = None
    ) -> Node:
        """Insert a node or replace properties/embedding of the existing one."""

    @abstractmethod
    def upsert_relationship(
        self,
        from_node_id: int,
        to_node_id: int,
        relationship_type: str,
        properties: Properties,
        weight: float
    ) -> Relationship:
        """Insert a relationship or replace properties/weight of the existing one."""

    @abstractmethod
    def get_nodes(self, node_ids: Iterable[int]) -> Dict[int, Node]:
        """Batch-fetch nodes by id. Missing ids are absent from the result."""

    def get_node(self, node_id: int) -> Optional[Node]:
        return self.get_nodes([node_id]).get(node_id)

    @abstractmethod
    def incident_relationships(
        self,
        node_ids: Iterable[int],
        relationship_types: Optional[Sequence[str]] = None
    ) -> List[Relationship]:
        """Relationships with either endpoint in ``node_ids``, ordered by id."""

    @abstractmethod
    def nearest_neighbors(
        self,
        node_type: str,
        embedding: List[float],
        exclude_node_id: int,
        limit: int
    ) -> List[Tuple[Node, float]]:
        """Same-type nodes with embeddings, by ascending cosine distance.

        Returns ``(node, distance)`` pairs; distance is in [0, 2].
        """

    @abstractmethod
    def connection_rankings(
        self,
        node_type: str,
        limit: int
    ) -> List[Tuple[Node, int, float]]:
        """``(node, connection_count, avg_weight)`` for connected nodes of a type.

        Ordered by count desc, then average weight desc.
        """

    @abstractmethod
    def node_type_counts(self) -> List[Tuple[str, int]]:
        """``(node_type, count)`` ordered by count desc."""

    @abstractmethod
    def relationship_type_stats(self) -> List[Tuple[str, int, float]]:
        """``(relationship_type, count, avg_weight)`` ordered by count desc."""

    def initialize_schema(self) -> None:
        """Create tables/indexes if the backend needs them."""

    def close(self) -> None:
        """Release pooled resources."""
