"""Unit tests for SimilarityLinker."""

from unittest.mock import MagicMock

import pytest

from content_graph.services.graph_writer import GraphWriter
from content_graph.services.similarity_linker import SimilarityLinker


@pytest.fixture
def linker(store):
    return SimilarityLinker(store, GraphWriter(store))


def test_node_without_embedding_links_nothing(linker, store):
    node = store.upsert_node("post", "plain", {})
    store.upsert_node("post", "other", {}, [1.0, 0.0])
    assert linker.link_similar(node) == []


def test_links_only_above_threshold(linker, store):
    seed = store.upsert_node("post", "seed", {}, [1.0, 0.0])
    close = store.upsert_node("post", "close", {}, [1.0, 0.1])
    store.upsert_node("post", "loose", {}, [0.6, 0.8])  # similarity 0.6

    rels = linker.link_similar(seed)

    assert [(r.from_node_id, r.to_node_id) for r in rels] == [(seed.id, close.id)]
    assert rels[0].type == "similar_to"
    assert rels[0].weight == pytest.approx(rels[0].properties["similarity"])
    assert rels[0].weight > 0.7


def test_at_most_five_links(linker, store):
    seed = store.upsert_node("post", "seed", {}, [1.0, 0.0])
    for i in range(8):
        store.upsert_node("post", f"twin{i}", {}, [1.0, 0.01 * i])

    assert len(linker.link_similar(seed)) == 5


def test_other_types_never_linked(linker, store):
    seed = store.upsert_node("post", "seed", {}, [1.0, 0.0])
    store.upsert_node("tag", "same-vector", {}, [1.0, 0.0])
    assert linker.link_similar(seed) == []


def test_one_directional(linker, store):
    seed = store.upsert_node("post", "seed", {}, [1.0, 0.0])
    twin = store.upsert_node("post", "twin", {}, [1.0, 0.05])

    linker.link_similar(seed)

    rels = store.incident_relationships([seed.id, twin.id])
    assert [(r.from_node_id, r.to_node_id) for r in rels] == [(seed.id, twin.id)]


def test_relinking_is_idempotent(linker, store):
    seed = store.upsert_node("post", "seed", {}, [1.0, 0.0])
    store.upsert_node("post", "twin", {}, [1.0, 0.05])

    first = linker.link_similar(seed)
    second = linker.link_similar(seed)

    assert [r.id for r in first] == [r.id for r in second]
    assert store.relationship_type_stats()[0][1] == 1


def test_nan_distance_links_nothing(store):
    seed = store.upsert_node("post", "seed", {}, [1.0, 0.0])
    blank = store.upsert_node("post", "blank", {}, [0.0, 0.0])
    stub_store = MagicMock()
    stub_store.nearest_neighbors.return_value = [(blank, float("nan"))]
    linker = SimilarityLinker(stub_store, GraphWriter(stub_store))

    assert linker.link_similar(seed) == []
    stub_store.upsert_relationship.assert_not_called()
