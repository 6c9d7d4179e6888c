"""
Graph Writer - validated node and relationship upserts.

Thin layer over the GraphStore that:
- rejects malformed input with ValidationError before touching the store
- fills in a node's embedding from the configured provider when the caller
  did not supply one (soft-fail: no embedding on provider error)
"""

import json
import logging
import math
from typing import List, Optional

from ..lib.embedding_providers import EmbeddingProvider, embed_text
from ..lib.errors import ValidationError
from ..lib.graph_store import GraphStore, require_store
from ..models.graph import Node, Properties, Relationship

logger = logging.getLogger(__name__)


def node_embedding_text(name: str, properties: Properties) -> str:
    """Text embedded for a node: its name followed by its JSON properties."""
    return f"{name} {json.dumps(properties, default=str)}"


class GraphWriter:
    """Validated writes against a graph store."""

    def __init__(
        self,
        store: Optional[GraphStore],
        embedding_provider: Optional[EmbeddingProvider] = None
    ):
        self.store = store
        self.embedding_provider = embedding_provider

    def upsert_node(
        self,
        node_type: str,
        name: str,
        properties: Optional[Properties] = None,
        embedding: Optional[List[float]] = None
    ) -> Node:
        """
        Create or replace the node identified by ``(node_type, name)``.

        Raises:
            ValidationError: Empty type/name or non-mapping properties
            ConfigurationError: No store configured
            StorageError: Store write failed
        """
        if not isinstance(node_type, str) or not node_type.strip():
            raise ValidationError("Node type is required")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"Node name is required (type={node_type})")
        if properties is None:
            properties = {}
        if not isinstance(properties, dict):
            raise ValidationError("Node properties must be a mapping")

        store = require_store(self.store)

        if embedding is None:
            embedding = embed_text(self.embedding_provider, node_embedding_text(name, properties))

        node = store.upsert_node(node_type, name, properties, embedding)
        logger.debug(f"Upserted node {node.id} ({node_type}:{name})")
        return node

    def upsert_relationship(
        self,
        from_node_id: int,
        to_node_id: int,
        relationship_type: str,
        properties: Optional[Properties] = None,
        weight: float = 1.0
    ) -> Relationship:
        """
        Create or replace the relationship identified by ``(from, to, type)``.

        Endpoint existence is enforced by the store, not checked here.

        Raises:
            ValidationError: Bad ids, empty type, or non-finite weight
            ConfigurationError: No store configured
            StorageError: Store write failed (including dangling endpoints)
        """
        for label, node_id in (("from", from_node_id), ("to", to_node_id)):
            if isinstance(node_id, bool) or not isinstance(node_id, int):
                raise ValidationError(f"Relationship {label}_node_id must be an integer")
        if not isinstance(relationship_type, str) or not relationship_type.strip():
            raise ValidationError("Relationship type is required")
        if properties is None:
            properties = {}
        if not isinstance(properties, dict):
            raise ValidationError("Relationship properties must be a mapping")
        try:
            weight = float(weight)
        except (TypeError, ValueError):
            raise ValidationError(f"Relationship weight must be numeric, got {weight!r}")
        if not math.isfinite(weight):
            raise ValidationError("Relationship weight must be finite")

        store = require_store(self.store)
        rel = store.upsert_relationship(
            from_node_id, to_node_id, relationship_type, properties, weight
        )
        logger.debug(
            f"Upserted relationship {rel.id}: {from_node_id} -[{relationship_type}]-> {to_node_id}"
        )
        return rel
