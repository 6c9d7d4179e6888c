"""
Recommendation Engine - ranks nodes of a type by how connected they are.

Ranking is structural only: relationship count, then mean relationship
weight. ``user_context`` is accepted so callers can pass it through today;
it does not influence ranking.
"""

import logging
from typing import Any, Dict, List, Optional

from ..lib.errors import ValidationError
from ..lib.graph_store import GraphStore, require_store
from ..models.graph import Recommendation

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 100


class RecommendationEngine:
    def __init__(self, store: Optional[GraphStore]):
        self.store = store

    def get_recommendations(
        self,
        node_type: str,
        limit: int = 10,
        user_context: Optional[Dict[str, Any]] = None
    ) -> List[Recommendation]:
        """
        Most connected nodes of ``node_type``.

        Nodes without any relationship are not returned.

        Raises:
            ValidationError: Empty node type or non-positive limit
            ConfigurationError: No store configured
        """
        if not node_type:
            raise ValidationError("Node type is required")
        if limit < 1:
            raise ValidationError(f"Limit must be positive, got {limit}")

        store = require_store(self.store)
        rows = store.connection_rankings(node_type, min(limit, MAX_RECOMMENDATIONS))

        return [
            Recommendation(
                **node.model_dump(),
                connection_strength=count,
                avg_weight=avg_weight,
            )
            for node, count, avg_weight in rows
        ]
