"""
Similarity Linker - materializes SIMILAR_TO edges from embedding distance.

Greedy and one-directional: a node is linked to its nearest same-type
neighbours, nothing is written from the neighbour back to the node.
"""

import logging
from typing import List, Optional

from ..lib.graph_store import GraphStore, require_store
from ..models.graph import Node, Relationship, RelationshipType
from .graph_writer import GraphWriter

logger = logging.getLogger(__name__)


class SimilarityLinker:
    """Links a node to its most similar same-type nodes."""

    # Candidates considered per node
    CANDIDATE_LIMIT = 5

    # Similarity must exceed this to create an edge
    SIMILARITY_THRESHOLD = 0.7

    def __init__(self, store: Optional[GraphStore], writer: GraphWriter):
        self.store = store
        self.writer = writer

    def link_similar(self, node: Node) -> List[Relationship]:
        """
        Upsert ``similar_to`` edges from ``node`` to its close neighbours.

        Args:
            node: Node to link; nodes without an embedding are skipped

        Returns:
            Created or updated relationships (empty when nothing qualifies)
        """
        if not node.embedding:
            return []

        store = require_store(self.store)
        neighbours = store.nearest_neighbors(
            node.type, node.embedding, node.id, self.CANDIDATE_LIMIT
        )

        relationships = []
        for candidate, distance in neighbours:
            similarity = 1.0 - distance
            # NaN (zero-norm stored vector) never qualifies
            if not similarity > self.SIMILARITY_THRESHOLD:
                continue
            relationships.append(self.writer.upsert_relationship(
                node.id,
                candidate.id,
                RelationshipType.SIMILAR_TO.value,
                {"similarity": similarity},
                similarity
            ))

        if relationships:
            logger.info(f"Linked node {node.id} to {len(relationships)} similar {node.type} node(s)")
        return relationships
