"""
Knowledge Graph Service - the single entry point used by routes and the CLI.

Wires the store and embedding provider into the writer, linker, traversal,
recommendation, statistics and ingestion components. Both dependencies are
injected; construct one service per application and share it.

Usage:
    from content_graph.lib.graph_store import create_graph_store
    from content_graph.lib.embedding_providers import get_embedding_provider

    service = KnowledgeGraphService(create_graph_store(), get_embedding_provider())
    summary = service.process_system_event({"type": "...", "data": {...}})
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..lib.embedding_providers import EmbeddingProvider
from ..lib.graph_store import GraphStore, require_store
from ..models.graph import (
    GraphStatistics,
    Node,
    Properties,
    Recommendation,
    RelatedNodes,
    Relationship,
    SystemEvent,
    UpdateSummary,
)
from .graph_writer import GraphWriter
from .ingestion import EventDispatcher
from .recommendations import RecommendationEngine
from .similarity_linker import SimilarityLinker
from .statistics import StatisticsAggregator
from .traversal import TraversalEngine

logger = logging.getLogger(__name__)


class KnowledgeGraphService:
    """Facade over the knowledge graph engine."""

    def __init__(
        self,
        store: Optional[GraphStore],
        embedding_provider: Optional[EmbeddingProvider] = None
    ):
        self.store = store
        self.embedding_provider = embedding_provider

        self.writer = GraphWriter(store, embedding_provider)
        self.linker = SimilarityLinker(store, self.writer)
        self.traversal = TraversalEngine(store)
        self.recommendations = RecommendationEngine(store)
        self.statistics = StatisticsAggregator(store)
        self.dispatcher = EventDispatcher(self.writer, self.linker)

        provider_name = embedding_provider.get_provider_name() if embedding_provider else "none"
        logger.info(
            f"Knowledge graph service ready (store={type(store).__name__}, embeddings={provider_name})"
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def upsert_node(
        self,
        node_type: str,
        name: str,
        properties: Optional[Properties] = None,
        embedding: Optional[List[float]] = None
    ) -> Node:
        return self.writer.upsert_node(node_type, name, properties, embedding)

    def upsert_relationship(
        self,
        from_node_id: int,
        to_node_id: int,
        relationship_type: str,
        properties: Optional[Properties] = None,
        weight: float = 1.0
    ) -> Relationship:
        return self.writer.upsert_relationship(
            from_node_id, to_node_id, relationship_type, properties, weight
        )

    def process_system_event(
        self,
        event: Union[SystemEvent, Mapping[str, Any]]
    ) -> UpdateSummary:
        return self.dispatcher.process_system_event(event)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_node(self, node_id: int) -> Optional[Node]:
        return require_store(self.store).get_node(node_id)

    def get_related_nodes(
        self,
        node_id: int,
        max_depth: int = 2,
        relationship_types: Optional[Sequence[str]] = None
    ) -> RelatedNodes:
        return self.traversal.get_related_nodes(node_id, max_depth, relationship_types)

    def get_recommendations(
        self,
        node_type: str,
        limit: int = 10,
        user_context: Optional[Dict[str, Any]] = None
    ) -> List[Recommendation]:
        return self.recommendations.get_recommendations(node_type, limit, user_context)

    def get_graph_statistics(self) -> GraphStatistics:
        return self.statistics.get_graph_statistics()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize_schema(self):
        require_store(self.store).initialize_schema()

    def close(self):
        if self.store is not None:
            self.store.close()
