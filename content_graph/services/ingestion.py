"""
Event Dispatcher & ingestion pipelines.

A domain event ``{type, data}`` is mapped to a planner that turns the payload
into an ordered list of idempotent steps:

- NodeStep: upsert a node and remember it under a plan-local key
- RelationshipStep: upsert an edge between two previously keyed nodes
- LinkSimilarStep: run the similarity linker on a keyed node

Planning validates the whole payload first, so malformed events are rejected
before anything is written. Execution is deliberately not transactional:
steps run in order, and on the first hard error the exception is re-raised
with ``partial`` set to the UpdateSummary of what did persist. Every step is
an upsert, so re-sending the same event is the recovery path.

Event types:
- blog_post_created / blog_post_updated
- game_session_completed
- sports_data_updated
- chat_conversation_created
Anything else is logged and yields an empty summary.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..lib.concept_extractor import extract_concepts
from ..lib.datetime_utils import isoformat_utc, utcnow
from ..lib.errors import GraphError, ValidationError
from ..models.graph import (
    Node,
    NodeType,
    Properties,
    RelationshipType,
    SystemEvent,
    UpdateSummary,
)
from .graph_writer import GraphWriter
from .similarity_linker import SimilarityLinker

logger = logging.getLogger(__name__)

TAG_WEIGHT = 0.8
COMPETITION_WEIGHT = 0.9
SPORTS_LEAGUES = ("nfl", "nba", "mlb")


# =============================================================================
# Plan steps
# =============================================================================

@dataclass(frozen=True)
class NodeStep:
    key: str
    node_type: str
    name: str
    properties: Properties = field(default_factory=dict)
    # Which UpdateSummary list the node is reported in
    bucket: str = "nodes"


@dataclass(frozen=True)
class RelationshipStep:
    from_key: str
    to_key: str
    relationship_type: str
    properties: Properties = field(default_factory=dict)
    weight: float = 1.0


@dataclass(frozen=True)
class LinkSimilarStep:
    key: str


Step = Union[NodeStep, RelationshipStep, LinkSimilarStep]


# =============================================================================
# Payload helpers
# =============================================================================

def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{what} must be an object")
    return value


def _require_name(value: Any, what: str) -> str:
    """Identity keys may arrive as strings or numbers; both become strings."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{what} is required")
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{what} is required")
    return value


def _optional_list(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{what} must be a list")
    return value


def _concept_steps(
    source_key: str,
    text: str,
    context: Optional[str] = None
) -> List[Step]:
    """Concept nodes plus ``mentions`` edges for keywords found in text."""
    steps: List[Step] = []
    for concept in extract_concepts(text):
        concept_key = f"concept:{concept.name}"
        steps.append(NodeStep(
            key=concept_key,
            node_type=NodeType.CONCEPT.value,
            name=concept.name,
            properties={
                "confidence": concept.confidence,
                "context": context or concept.context,
            },
            bucket="concepts",
        ))
        steps.append(RelationshipStep(
            from_key=source_key,
            to_key=concept_key,
            relationship_type=RelationshipType.MENTIONS.value,
            properties={"confidence": concept.confidence},
            weight=concept.confidence,
        ))
    return steps


# =============================================================================
# Planners
# =============================================================================

def plan_blog_post(data: Mapping[str, Any]) -> List[Step]:
    """Post, author, category, tags, mentioned concepts, then similar posts."""
    slug = _require_name(data.get("slug"), "Blog post slug")
    content = data.get("content") or ""
    if not isinstance(content, str):
        raise ValidationError("Blog post content must be a string")

    steps: List[Step] = [NodeStep(
        key="post",
        node_type=NodeType.POST.value,
        name=slug,
        properties={
            "title": data.get("title"),
            "summary": data.get("summary"),
            "content": content,
            "published_at": data.get("publishedAt"),
            "reading_time": data.get("readingTime"),
            "status": data.get("status"),
        },
    )]

    author = data.get("author")
    if author:
        if isinstance(author, str):
            author = {"name": author}
        author = _require_mapping(author, "Blog post author")
        steps.append(NodeStep(
            key="author",
            node_type=NodeType.AUTHOR.value,
            name=_require_name(author.get("name"), "Author name"),
            properties={"bio": author.get("bio"), "avatar": author.get("avatar")},
        ))
        steps.append(RelationshipStep("post", "author", RelationshipType.AUTHORED_BY.value))

    category = data.get("category")
    if category:
        steps.append(NodeStep(
            key="category",
            node_type=NodeType.CATEGORY.value,
            name=_require_name(category, "Blog post category"),
            properties={"type": "blog_category"},
        ))
        steps.append(RelationshipStep("post", "category", RelationshipType.CATEGORIZED_AS.value))

    for i, tag in enumerate(_optional_list(data.get("tags"), "Blog post tags")):
        tag_key = f"tag:{i}"
        steps.append(NodeStep(
            key=tag_key,
            node_type=NodeType.TAG.value,
            name=_require_name(tag, "Tag"),
            properties={"type": "blog_tag"},
        ))
        steps.append(RelationshipStep(
            "post", tag_key, RelationshipType.TAGGED_WITH.value, weight=TAG_WEIGHT
        ))

    steps.extend(_concept_steps("post", content))
    steps.append(LinkSimilarStep("post"))
    return steps


def plan_game_session(data: Mapping[str, Any]) -> List[Step]:
    """Game, player, the play itself, and any unlocked achievements."""
    game_type = _require_name(data.get("gameType"), "Game type")
    user_id = _require_name(data.get("userId"), "User id")
    score = data.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError("Game session score must be a number")

    steps: List[Step] = [
        NodeStep(
            key="game",
            node_type=NodeType.GAME.value,
            name=game_type,
            properties={
                "category": "game",
                "difficulty": data.get("difficulty") or "medium",
            },
        ),
        NodeStep(
            key="player",
            node_type=NodeType.PLAYER.value,
            name=user_id,
            properties={
                "level": data.get("playerLevel") or 1,
                "total_score": data.get("totalScore") or 0,
            },
        ),
        RelationshipStep(
            "player",
            "game",
            RelationshipType.PLAYED_BY.value,
            properties={
                "score": score,
                "level": data.get("levelReached"),
                "time_played_seconds": data.get("timePlayedSeconds"),
                "completed_at": data.get("completedAt"),
            },
            # Score normalized to a [0, 1] weight
            weight=max(0.0, min(score / 1000, 1.0)),
        ),
    ]

    unlocked_at = isoformat_utc(utcnow())
    for i, achievement_id in enumerate(_optional_list(data.get("achievements"), "Achievements")):
        achievement_key = f"achievement:{i}"
        steps.append(NodeStep(
            key=achievement_key,
            node_type=NodeType.ACHIEVEMENT.value,
            name=_require_name(achievement_id, "Achievement id"),
            properties={"game_type": game_type},
        ))
        steps.append(RelationshipStep(
            "player",
            achievement_key,
            RelationshipType.ACHIEVED_BY.value,
            properties={"unlocked_at": unlocked_at},
        ))
    return steps


def _team_step(key: str, team: Any, sport: str) -> NodeStep:
    team = _require_mapping(team, "Team")
    return NodeStep(
        key=key,
        node_type=NodeType.SPORTS_TEAM.value,
        name=_require_name(team.get("name"), "Team name"),
        properties={
            "sport": sport,
            "abbreviation": team.get("abbreviation"),
            "logo": team.get("logo"),
        },
    )


def plan_sports_data(data: Mapping[str, Any]) -> List[Step]:
    """Both teams of every fixture plus a ``competes_in`` edge home → away."""
    steps: List[Step] = []
    for league in SPORTS_LEAGUES:
        for i, game in enumerate(_optional_list(data.get(league), f"{league} games")):
            game = _require_mapping(game, f"{league} game")
            home = _require_mapping(game.get("homeTeam"), "homeTeam")
            away = _require_mapping(game.get("awayTeam"), "awayTeam")
            home_key = f"{league}:{i}:home"
            away_key = f"{league}:{i}:away"

            steps.append(_team_step(home_key, home, league.upper()))
            steps.append(_team_step(away_key, away, league.upper()))
            steps.append(RelationshipStep(
                home_key,
                away_key,
                RelationshipType.COMPETES_IN.value,
                properties={
                    "game_id": game.get("id"),
                    "home_score": home.get("score"),
                    "away_score": away.get("score"),
                    "status": game.get("status"),
                    "start_time": game.get("startTime"),
                    "venue": game.get("venue"),
                },
                weight=COMPETITION_WEIGHT,
            ))
    return steps


def plan_chat_conversation(data: Mapping[str, Any]) -> List[Step]:
    """Conversation node plus concepts mentioned across its messages."""
    conversation_id = _require_name(data.get("id"), "Conversation id")
    messages = _optional_list(data.get("messages"), "Conversation messages")

    contents = []
    for message in messages:
        message = _require_mapping(message, "Message")
        content = message.get("content")
        if isinstance(content, str):
            contents.append(content)

    steps: List[Step] = [NodeStep(
        key="conversation",
        node_type=NodeType.CHAT_CONVERSATION.value,
        name=f"conversation_{conversation_id}",
        properties={
            "title": data.get("title"),
            "profile": data.get("profile"),
            "provider": data.get("provider"),
            "model": data.get("model"),
            "created_at": data.get("createdAt"),
        },
    )]
    steps.extend(_concept_steps(
        "conversation", " ".join(contents), context=NodeType.CHAT_CONVERSATION.value
    ))
    return steps


Planner = Callable[[Mapping[str, Any]], List[Step]]

EVENT_PLANNERS: Dict[str, Planner] = {
    "blog_post_created": plan_blog_post,
    "blog_post_updated": plan_blog_post,
    "game_session_completed": plan_game_session,
    "sports_data_updated": plan_sports_data,
    "chat_conversation_created": plan_chat_conversation,
}


# =============================================================================
# Dispatcher
# =============================================================================

class EventDispatcher:
    """Routes domain events to their pipeline and executes the plan."""

    def __init__(self, writer: GraphWriter, linker: SimilarityLinker):
        self.writer = writer
        self.linker = linker

    def process_system_event(
        self,
        event: Union[SystemEvent, Mapping[str, Any]]
    ) -> UpdateSummary:
        """
        Ingest one domain event.

        Raises:
            ValidationError: Missing event type, or malformed payload (nothing written)
            ConfigurationError / StorageError: From the first failing step;
                ``exc.partial`` holds the summary of completed steps
        """
        if isinstance(event, SystemEvent):
            event_type, data = event.type, event.data
        else:
            event = _require_mapping(event, "Event")
            event_type, data = event.get("type"), event.get("data")

        if not isinstance(event_type, str) or not event_type:
            raise ValidationError("Event type is required")

        planner = EVENT_PLANNERS.get(event_type)
        if planner is None:
            logger.info(f"Unknown event type for knowledge graph: {event_type}")
            return UpdateSummary()

        steps = planner(_require_mapping(data, f"{event_type} data"))
        summary = self.execute(steps)
        logger.info(
            f"Processed {event_type}: {len(summary.nodes)} node(s), "
            f"{len(summary.relationships)} relationship(s), {len(summary.concepts)} concept(s)"
        )
        return summary

    def execute(self, steps: List[Step]) -> UpdateSummary:
        """Run plan steps in order; see module docstring for failure semantics."""
        summary = UpdateSummary(steps_total=len(steps))
        nodes: Dict[str, Node] = {}

        try:
            for step in steps:
                if isinstance(step, NodeStep):
                    node = self.writer.upsert_node(step.node_type, step.name, step.properties)
                    nodes[step.key] = node
                    getattr(summary, step.bucket).append(node)
                elif isinstance(step, RelationshipStep):
                    summary.relationships.append(self.writer.upsert_relationship(
                        nodes[step.from_key].id,
                        nodes[step.to_key].id,
                        step.relationship_type,
                        step.properties,
                        step.weight,
                    ))
                elif isinstance(step, LinkSimilarStep):
                    summary.relationships.extend(self.linker.link_similar(nodes[step.key]))
                summary.steps_completed += 1
        except GraphError as e:
            logger.error(
                f"Ingestion stopped after {summary.steps_completed}/{summary.steps_total} steps: {e}"
            )
            e.partial = summary
            raise

        return summary
