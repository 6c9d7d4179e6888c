"""
In-memory graph store.

Same semantics as the Postgres store (unique keys, last-writer-wins upserts,
referential integrity on relationships, cosine-distance neighbour search)
without a database. Used for local development (GRAPH_STORE=memory) and the
test suite.
"""

import copy
import logging
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ...models.graph import Node, Properties, Relationship
from ..datetime_utils import utcnow
from ..errors import StorageError
from ..similarity_calculator import batch_cosine_similarity
from .base import GraphStore

logger = logging.getLogger(__name__)


class InMemoryGraphStore(GraphStore):
    """Thread-safe dictionary-backed store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._nodes: Dict[int, Node] = {}
        self._node_keys: Dict[Tuple[str, str], int] = {}
        self._relationships: Dict[int, Relationship] = {}
        self._relationship_keys: Dict[Tuple[int, int, str], int] = {}
        self._next_node_id = 1
        self._next_relationship_id = 1

    def upsert_node(
        self,
        node_type: str,
        name: str,
        properties: Properties,
        embedding: Optional[List[float]] = None
    ) -> Node:
        now = utcnow()
        key = (node_type, name)
        properties = copy.deepcopy(properties or {})
        embedding = [float(x) for x in embedding] if embedding is not None else None

        with self._lock:
            existing_id = self._node_keys.get(key)
            if existing_id is not None:
                existing = self._nodes[existing_id]
                node = existing.model_copy(update={
                    "properties": properties,
                    "embedding": embedding,
                    "updated_at": now,
                })
            else:
                node = Node(
                    id=self._next_node_id,
                    type=node_type,
                    name=name,
                    properties=properties,
                    embedding=embedding,
                    created_at=now,
                    updated_at=now,
                )
                self._next_node_id += 1
                self._node_keys[key] = node.id
            self._nodes[node.id] = node
            return node.model_copy(deep=True)

    def upsert_relationship(
        self,
        from_node_id: int,
        to_node_id: int,
        relationship_type: str,
        properties: Properties,
        weight: float
    ) -> Relationship:
        now = utcnow()
        key = (from_node_id, to_node_id, relationship_type)
        properties = copy.deepcopy(properties or {})

        with self._lock:
            # Mirrors the foreign key constraints of the relational schema
            for endpoint in (from_node_id, to_node_id):
                if endpoint not in self._nodes:
                    raise StorageError(
                        f"Relationship endpoint does not exist: node {endpoint}"
                    )

            existing_id = self._relationship_keys.get(key)
            if existing_id is not None:
                rel = self._relationships[existing_id].model_copy(update={
                    "properties": properties,
                    "weight": float(weight),
                    "created_at": now,
                })
            else:
                rel = Relationship(
                    id=self._next_relationship_id,
                    from_node_id=from_node_id,
                    to_node_id=to_node_id,
                    type=relationship_type,
                    properties=properties,
                    weight=float(weight),
                    created_at=now,
                )
                self._next_relationship_id += 1
                self._relationship_keys[key] = rel.id
            self._relationships[rel.id] = rel
            return rel.model_copy(deep=True)

    def get_nodes(self, node_ids: Iterable[int]) -> Dict[int, Node]:
        with self._lock:
            return {
                node_id: self._nodes[node_id].model_copy(deep=True)
                for node_id in node_ids
                if node_id in self._nodes
            }

    def incident_relationships(
        self,
        node_ids: Iterable[int],
        relationship_types: Optional[Sequence[str]] = None
    ) -> List[Relationship]:
        ids = set(node_ids)
        types = set(relationship_types) if relationship_types else None
        with self._lock:
            return [
                rel.model_copy(deep=True)
                for rel_id, rel in sorted(self._relationships.items())
                if (rel.from_node_id in ids or rel.to_node_id in ids)
                and (types is None or rel.type in types)
            ]

    def nearest_neighbors(
        self,
        node_type: str,
        embedding: List[float],
        exclude_node_id: int,
        limit: int
    ) -> List[Tuple[Node, float]]:
        with self._lock:
            candidates = [
                node for node in self._nodes.values()
                if node.type == node_type
                and node.id != exclude_node_id
                and node.embedding is not None
                and len(node.embedding) == len(embedding)
            ]
            candidates = [node.model_copy(deep=True) for node in candidates]

        if not candidates:
            return []

        similarities = batch_cosine_similarity(
            np.asarray(embedding, dtype=float),
            np.asarray([node.embedding for node in candidates], dtype=float)
        )
        scored = [
            (node, 1.0 - float(sim))
            for node, sim in zip(candidates, similarities)
            if not np.isnan(sim)
        ]
        scored.sort(key=lambda pair: (pair[1], pair[0].id))
        return scored[:limit]

    def connection_rankings(
        self,
        node_type: str,
        limit: int
    ) -> List[Tuple[Node, int, float]]:
        weights: Dict[int, List[float]] = defaultdict(list)
        with self._lock:
            for rel in self._relationships.values():
                endpoints = {rel.from_node_id, rel.to_node_id}
                for node_id in endpoints:
                    if self._nodes[node_id].type == node_type:
                        weights[node_id].append(rel.weight)
            ranked = [
                (self._nodes[node_id].model_copy(deep=True), len(w), sum(w) / len(w))
                for node_id, w in weights.items()
            ]

        ranked.sort(key=lambda row: (-row[1], -row[2], row[0].id))
        return ranked[:limit]

    def node_type_counts(self) -> List[Tuple[str, int]]:
        counts: Dict[str, int] = defaultdict(int)
        with self._lock:
            for node in self._nodes.values():
                counts[node.type] += 1
        return sorted(counts.items(), key=lambda row: (-row[1], row[0]))

    def relationship_type_stats(self) -> List[Tuple[str, int, float]]:
        weights: Dict[str, List[float]] = defaultdict(list)
        with self._lock:
            for rel in self._relationships.values():
                weights[rel.type].append(rel.weight)
        stats = [(t, len(w), sum(w) / len(w)) for t, w in weights.items()]
        return sorted(stats, key=lambda row: (-row[1], row[0]))
