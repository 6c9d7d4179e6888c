"""
Pydantic models for the knowledge graph.

Nodes and relationships are the persisted entities; the remaining models are
read projections (traversal, recommendations, statistics) and the ingestion
summary returned by the event dispatcher.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, JsonValue


Properties = Dict[str, JsonValue]


class NodeType(str, Enum):
    """Node types produced by the ingestion pipelines.

    The store accepts any non-empty type string; these are the ones the
    engine itself writes.
    """
    POST = "post"
    CATEGORY = "category"
    TAG = "tag"
    AUTHOR = "author"
    GAME = "game"
    PLAYER = "player"
    ACHIEVEMENT = "achievement"
    SPORTS_TEAM = "sports_team"
    SPORTS_PLAYER = "sports_player"
    CHAT_CONVERSATION = "chat_conversation"
    DOCUMENT = "document"
    CONCEPT = "concept"


class RelationshipType(str, Enum):
    """Relationship types known to the engine (open set, like NodeType)."""
    AUTHORED_BY = "authored_by"
    CATEGORIZED_AS = "categorized_as"
    TAGGED_WITH = "tagged_with"
    RELATED_TO = "related_to"
    PART_OF = "part_of"
    SIMILAR_TO = "similar_to"
    PLAYED_BY = "played_by"
    ACHIEVED_BY = "achieved_by"
    COMPETES_IN = "competes_in"
    MENTIONS = "mentions"
    REFERENCES = "references"
    FOLLOWS = "follows"
    INTERACTS_WITH = "interacts_with"


class Node(BaseModel):
    """A typed, named entity. ``(type, name)`` is unique."""

    id: int = Field(..., description="Store-assigned surrogate key")
    type: str = Field(..., description="Node type (e.g., post, concept)")
    name: str = Field(..., description="Identity key, unique per type")
    properties: Properties = Field(default_factory=dict)
    embedding: Optional[List[float]] = Field(None, description="Embedding vector, if one was available")
    created_at: datetime
    updated_at: datetime


class Relationship(BaseModel):
    """A directed, typed, weighted edge. ``(from, to, type)`` is unique."""

    id: int
    from_node_id: int
    to_node_id: int
    type: str
    properties: Properties = Field(default_factory=dict)
    weight: float = 1.0
    created_at: datetime


class RelatedNode(Node):
    """A node discovered by traversal, with the edges incident to it."""

    depth: int = Field(..., description="Minimum hop count from the seed")
    relationships: List[Relationship] = Field(default_factory=list)


class RelatedNodes(BaseModel):
    nodes: List[RelatedNode] = Field(default_factory=list)
    total_count: int = 0


class Recommendation(Node):
    connection_strength: int = Field(..., description="Incident relationship count")
    avg_weight: float = Field(..., description="Mean weight of incident relationships")


class TypeCount(BaseModel):
    type: str
    count: int


class RelationshipTypeStats(TypeCount):
    avg_weight: float


class NodeStatistics(BaseModel):
    total: int = 0
    by_type: List[TypeCount] = Field(default_factory=list)


class RelationshipStatistics(BaseModel):
    total: int = 0
    by_type: List[RelationshipTypeStats] = Field(default_factory=list)


class GraphStatistics(BaseModel):
    nodes: NodeStatistics
    relationships: RelationshipStatistics
    last_updated: datetime


class UpdateSummary(BaseModel):
    """Result of one ingestion pipeline run.

    ``steps_completed < steps_total`` means the pipeline stopped part way;
    the writes listed here persisted and re-running the event is safe.
    """

    nodes: List[Node] = Field(default_factory=list)
    relationships: List[Relationship] = Field(default_factory=list)
    concepts: List[Node] = Field(default_factory=list)
    steps_total: int = 0
    steps_completed: int = 0

    @property
    def complete(self) -> bool:
        return self.steps_completed == self.steps_total


class SystemEvent(BaseModel):
    """Domain event envelope sent by producers."""

    type: str = Field(..., min_length=1, description="Event type, e.g. game_session_completed")
    data: Dict[str, Any] = Field(..., description="Event payload")

    class Config:
        json_schema_extra = {
            "example": {
                "type": "game_session_completed",
                "data": {
                    "gameType": "chess",
                    "userId": "u1",
                    "score": 500,
                    "achievements": ["first_win"]
                }
            }
        }


class NodeUpsertRequest(BaseModel):
    """Request to create or replace a node."""

    type: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1)
    properties: Properties = Field(default_factory=dict)
    embedding: Optional[List[float]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "type": "concept",
                "name": "blockchain",
                "properties": {"confidence": 0.4}
            }
        }


class RelationshipUpsertRequest(BaseModel):
    """Request to create or replace a relationship."""

    from_node_id: int
    to_node_id: int
    relationship_type: str = Field(..., min_length=1, max_length=100)
    properties: Properties = Field(default_factory=dict)
    weight: float = 1.0

    class Config:
        json_schema_extra = {
            "example": {
                "from_node_id": 12,
                "to_node_id": 40,
                "relationship_type": "related_to",
                "weight": 0.6
            }
        }
