"""Unit tests for the KnowledgeGraphService facade."""

from unittest.mock import MagicMock

import pytest

from content_graph.lib.errors import ConfigurationError
from content_graph.services.graph_service import KnowledgeGraphService


def test_upsert_node_twice_keeps_one_row(service, store):
    first = service.upsert_node("concept", "blockchain", {"confidence": 0.1})
    second = service.upsert_node("concept", "blockchain", {"confidence": 0.5, "context": "x"})

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert store.get_node(first.id).properties == {"confidence": 0.5, "context": "x"}
    assert store.node_type_counts() == [("concept", 1)]


def test_upsert_relationship_twice_keeps_latest(service, store):
    a = service.upsert_node("post", "a")
    b = service.upsert_node("post", "b")

    service.upsert_relationship(a.id, b.id, "related_to", {"v": 1}, 0.2)
    rel = service.upsert_relationship(a.id, b.id, "related_to", {"v": 2}, 0.7)

    stored = store.incident_relationships([a.id])
    assert len(stored) == 1
    assert stored[0].id == rel.id
    assert (stored[0].weight, stored[0].properties) == (0.7, {"v": 2})


def test_every_operation_requires_a_store():
    service = KnowledgeGraphService(None)
    with pytest.raises(ConfigurationError):
        service.upsert_node("post", "a")
    with pytest.raises(ConfigurationError):
        service.upsert_relationship(1, 2, "related_to")
    with pytest.raises(ConfigurationError):
        service.get_related_nodes(1)
    with pytest.raises(ConfigurationError):
        service.get_recommendations("post")
    with pytest.raises(ConfigurationError):
        service.get_graph_statistics()
    with pytest.raises(ConfigurationError):
        service.process_system_event({
            "type": "game_session_completed",
            "data": {"gameType": "chess", "userId": "u1", "score": 1},
        })


def test_close_releases_store():
    store = MagicMock()
    KnowledgeGraphService(store).close()
    store.close.assert_called_once()
