"""Statistics Aggregator - node and relationship counts by type."""

from typing import Optional

from ..lib.datetime_utils import utcnow
from ..lib.graph_store import GraphStore, require_store
from ..models.graph import (
    GraphStatistics,
    NodeStatistics,
    RelationshipStatistics,
    RelationshipTypeStats,
    TypeCount,
)


class StatisticsAggregator:
    def __init__(self, store: Optional[GraphStore]):
        self.store = store

    def get_graph_statistics(self) -> GraphStatistics:
        store = require_store(self.store)

        node_rows = store.node_type_counts()
        rel_rows = store.relationship_type_stats()

        return GraphStatistics(
            nodes=NodeStatistics(
                total=sum(count for _, count in node_rows),
                by_type=[TypeCount(type=t, count=c) for t, c in node_rows],
            ),
            relationships=RelationshipStatistics(
                total=sum(count for _, count, _ in rel_rows),
                by_type=[
                    RelationshipTypeStats(type=t, count=c, avg_weight=w)
                    for t, c, w in rel_rows
                ],
            ),
            last_updated=utcnow(),
        )
