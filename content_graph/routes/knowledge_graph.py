"""
Knowledge Graph Routes - HTTP surface over KnowledgeGraphService.

Thin layer that handles:
- Query/body parsing
- Translating GraphError subclasses into HTTP status codes
"""

import json
import logging
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import APIRouter, Body, HTTPException, Query, Request, status

from ..lib.errors import ConfigurationError, GraphError, StorageError, ValidationError
from ..models.graph import (
    GraphStatistics,
    Node,
    NodeUpsertRequest,
    Recommendation,
    RelatedNodes,
    Relationship,
    RelationshipUpsertRequest,
    UpdateSummary,
)
from ..services.graph_service import KnowledgeGraphService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge-graph", tags=["knowledge-graph"])


def get_graph_service(request: Request) -> KnowledgeGraphService:
    """The service built at startup (see main.lifespan)."""
    service = getattr(request.app.state, "graph_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Knowledge graph service not initialized"
        )
    return service


def _error_detail(e: GraphError, message: str) -> Any:
    """Plain message, or message plus the writes that landed before a pipeline stopped."""
    if e.partial is None:
        return message
    return {"message": message, "partial": e.partial.model_dump(mode="json")}


def _raise_http(e: GraphError, action: str) -> NoReturn:
    if isinstance(e, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_detail(e, str(e))
        )
    if isinstance(e, ConfigurationError):
        logger.error(f"Failed to {action}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_error_detail(e, str(e))
        )
    if isinstance(e, StorageError):
        logger.error(f"Failed to {action}: {e}")
    else:
        logger.error(f"Failed to {action}: {e}", exc_info=True)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=_error_detail(e, f"Failed to {action}")
    )


@router.get("/stats", response_model=GraphStatistics, summary="Graph statistics")
def get_stats(request: Request):
    """Node and relationship counts grouped by type."""
    service = get_graph_service(request)
    try:
        return service.get_graph_statistics()
    except GraphError as e:
        _raise_http(e, "get graph statistics")


@router.get(
    "/nodes/{node_id}/related",
    response_model=RelatedNodes,
    summary="Related nodes"
)
def get_related_nodes(
    node_id: int,
    request: Request,
    depth: int = Query(2, description="Maximum hops from the node (clamped to 0-5)"),
    relationship_types: Optional[str] = Query(
        None, description="Comma-separated relationship types to follow"
    )
):
    """
    Nodes reachable from `node_id` within `depth` hops.

    Edges are followed in both directions. An unknown `node_id` returns an
    empty result.
    """
    service = get_graph_service(request)
    types: Optional[List[str]] = None
    if relationship_types:
        types = [t.strip() for t in relationship_types.split(",") if t.strip()] or None

    try:
        return service.get_related_nodes(node_id, depth, types)
    except GraphError as e:
        _raise_http(e, "get related nodes")


@router.get(
    "/recommendations/{node_type}",
    response_model=List[Recommendation],
    summary="Most connected nodes of a type"
)
def get_recommendations(
    node_type: str,
    request: Request,
    limit: int = Query(10, ge=1, le=100, description="Maximum results"),
    user_context: Optional[str] = Query(None, description="JSON object describing the caller")
):
    service = get_graph_service(request)

    context: Optional[Dict[str, Any]] = None
    if user_context:
        try:
            context = json.loads(user_context)
        except json.JSONDecodeError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="user_context must be valid JSON"
            )

    try:
        return service.get_recommendations(node_type, limit, context)
    except GraphError as e:
        _raise_http(e, "get recommendations")


@router.post("/events", response_model=UpdateSummary, summary="Ingest a domain event")
def process_event(request: Request, event: Dict[str, Any] = Body(...)):
    """
    Run the ingestion pipeline for `{type, data}`.

    Unknown event types are accepted and produce an empty summary.
    """
    if not event.get("type") or event.get("data") is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event type and data are required"
        )

    service = get_graph_service(request)
    try:
        return service.process_system_event(event)
    except GraphError as e:
        if e.partial is not None:
            logger.warning(
                f"Event {event['type']} partially applied: "
                f"{e.partial.steps_completed}/{e.partial.steps_total} steps"
            )
        _raise_http(e, "process event")


@router.post(
    "/nodes",
    response_model=Node,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update a node"
)
def upsert_node(request: Request, body: Dict[str, Any] = Body(...)):
    if not body.get("type") or not body.get("name"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Node type and name are required"
        )
    try:
        node_request = NodeUpsertRequest(**body)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    service = get_graph_service(request)
    try:
        return service.upsert_node(
            node_request.type,
            node_request.name,
            node_request.properties,
            node_request.embedding
        )
    except GraphError as e:
        _raise_http(e, "upsert node")


@router.post(
    "/relationships",
    response_model=Relationship,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update a relationship"
)
def upsert_relationship(request: Request, body: RelationshipUpsertRequest):
    """Both endpoints must already exist; dangling ids fail with 500."""
    service = get_graph_service(request)
    try:
        return service.upsert_relationship(
            body.from_node_id,
            body.to_node_id,
            body.relationship_type,
            body.properties,
            body.weight
        )
    except GraphError as e:
        _raise_http(e, "upsert relationship")


@router.get("/health", summary="Knowledge graph health")
def health(request: Request):
    service = getattr(request.app.state, "graph_service", None)
    return {
        "status": "healthy" if service is not None else "unavailable",
        "store": type(service.store).__name__ if service and service.store else None,
        "embeddings": (
            service.embedding_provider.get_provider_name()
            if service and service.embedding_provider else None
        ),
    }
