"""
Unit tests for PostgresGraphStore.

All tests mock the connection pool since the real store needs PostgreSQL
with pgvector. They pin down the SQL contract (upsert conflict targets,
vector casts, schema qualification) and the connection discipline.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from content_graph.lib.errors import ConfigurationError, StorageError

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def node_row(**overrides):
    row = {
        "id": 1,
        "node_type": "post",
        "name": "hello",
        "properties": {"title": "Hello"},
        "embedding": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


def relationship_row(**overrides):
    row = {
        "id": 7,
        "from_node_id": 1,
        "to_node_id": 2,
        "relationship_type": "tagged_with",
        "properties": {},
        "weight": 0.8,
        "created_at": NOW,
    }
    row.update(overrides)
    return row


@pytest.fixture
def mock_pool():
    with patch('content_graph.lib.graph_store.postgres.pool') as mock_pool_module:
        pool_instance = MagicMock()
        conn = MagicMock()
        cursor = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cursor
        pool_instance.getconn.return_value = conn
        mock_pool_module.ThreadedConnectionPool.return_value = pool_instance
        yield mock_pool_module, pool_instance, conn, cursor


@pytest.fixture
def store(mock_pool):
    from content_graph.lib.graph_store.postgres import PostgresGraphStore
    return PostgresGraphStore(
        host="localhost",
        port=5432,
        database="content",
        user="graph",
        password="secret",
        schema="frameworx",
        statement_timeout_ms=5000,
        connect_timeout=3,
    )


class TestConstruction:

    def test_pool_carries_timeouts(self, store, mock_pool):
        mock_pool_module = mock_pool[0]
        kwargs = mock_pool_module.ThreadedConnectionPool.call_args.kwargs
        assert kwargs["connect_timeout"] == 3
        assert kwargs["options"] == "-c statement_timeout=5000"

    def test_missing_password_is_configuration_error(self, mock_pool):
        from content_graph.lib.graph_store.postgres import PostgresGraphStore
        with pytest.raises(ConfigurationError):
            PostgresGraphStore("localhost", 5432, "content", "graph", None)

    def test_invalid_schema_rejected(self, mock_pool):
        from content_graph.lib.graph_store.postgres import PostgresGraphStore
        with pytest.raises(ConfigurationError):
            PostgresGraphStore("localhost", 5432, "content", "graph", "pw", schema="x; DROP TABLE y")

    def test_unreachable_server_is_storage_error(self, mock_pool):
        from content_graph.lib.graph_store.postgres import PostgresGraphStore
        mock_pool[0].ThreadedConnectionPool.side_effect = psycopg2.OperationalError("refused")
        with pytest.raises(StorageError):
            PostgresGraphStore("localhost", 5432, "content", "graph", "pw")


class TestConnectionDiscipline:

    def test_success_commits_and_returns_connection(self, store, mock_pool):
        _, pool_instance, conn, cursor = mock_pool
        cursor.fetchall.return_value = []

        store.node_type_counts()

        conn.commit.assert_called_once()
        pool_instance.putconn.assert_called_once_with(conn)

    def test_database_error_rolls_back_and_wraps(self, store, mock_pool):
        _, pool_instance, conn, cursor = mock_pool
        cursor.execute.side_effect = psycopg2.IntegrityError("fk violation")

        with pytest.raises(StorageError) as exc_info:
            store.upsert_relationship(1, 999, "related_to", {}, 1.0)

        assert "fk violation" in str(exc_info.value)
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        pool_instance.putconn.assert_called_once_with(conn)

    def test_close_closes_pool(self, store, mock_pool):
        store.close()
        mock_pool[1].closeall.assert_called_once()


class TestQueries:

    def test_upsert_node_sql_and_parameters(self, store, mock_pool):
        cursor = mock_pool[3]
        cursor.fetchone.return_value = node_row(embedding="[0.5,0.25]")

        node = store.upsert_node("post", "hello", {"title": "Hello"}, [0.5, 0.25])

        query, params = cursor.execute.call_args.args
        assert "INSERT INTO frameworx.knowledge_nodes" in query
        assert "ON CONFLICT (node_type, name)" in query
        assert "%s::vector" in query
        assert params[0] == "post"
        assert params[1] == "hello"
        assert params[2].adapted == {"title": "Hello"}
        assert params[3] == "[0.5, 0.25]"
        assert node.embedding == [0.5, 0.25]

    def test_upsert_node_without_embedding_sends_null(self, store, mock_pool):
        cursor = mock_pool[3]
        cursor.fetchone.return_value = node_row()

        node = store.upsert_node("post", "hello", {"title": "Hello"})

        assert cursor.execute.call_args.args[1][3] is None
        assert node.embedding is None

    def test_upsert_relationship_conflict_target(self, store, mock_pool):
        cursor = mock_pool[3]
        cursor.fetchone.return_value = relationship_row()

        rel = store.upsert_relationship(1, 2, "tagged_with", {}, 0.8)

        query = cursor.execute.call_args.args[0]
        assert "ON CONFLICT (from_node_id, to_node_id, relationship_type)" in query
        assert rel.type == "tagged_with"
        assert rel.weight == 0.8

    def test_incident_relationships_type_filter(self, store, mock_pool):
        cursor = mock_pool[3]
        cursor.fetchall.return_value = [relationship_row()]

        rels = store.incident_relationships([1, 1, 2], ["tagged_with"])

        query, params = cursor.execute.call_args.args
        assert "relationship_type = ANY(%s)" in query
        assert query.strip().endswith("ORDER BY r.id")
        assert params == ([1, 2], [1, 2], ["tagged_with"])
        assert [r.id for r in rels] == [7]

    def test_incident_relationships_empty_ids_skip_query(self, store, mock_pool):
        assert store.incident_relationships([]) == []
        mock_pool[3].execute.assert_not_called()

    def test_nearest_neighbors_uses_cosine_operator(self, store, mock_pool):
        cursor = mock_pool[3]
        cursor.fetchall.return_value = [node_row(id=2, embedding="[1.0,0.0]", distance=0.1)]

        result = store.nearest_neighbors("post", [1.0, 0.0], 1, 5)

        query, params = cursor.execute.call_args.args
        assert "<=>" in query
        assert "vector_dims(n.embedding) = vector_dims(%s::vector)" in query
        assert params == ("[1.0, 0.0]", 1, "post", "[1.0, 0.0]", "[1.0, 0.0]", 5)
        assert result[0][0].id == 2
        assert result[0][1] == pytest.approx(0.1)

    def test_nearest_neighbors_drops_nan_distance(self, store, mock_pool):
        cursor = mock_pool[3]
        cursor.fetchall.return_value = [
            node_row(id=2, embedding="[0.0,0.0]", distance=float("nan")),
            node_row(id=3, name="close", embedding="[1.0,0.1]", distance=0.05),
        ]

        result = store.nearest_neighbors("post", [1.0, 0.0], 1, 5)

        assert [node.id for node, _ in result] == [3]

    def test_connection_rankings_rows(self, store, mock_pool):
        cursor = mock_pool[3]
        cursor.fetchall.return_value = [node_row(connection_strength=3, avg_weight=0.5)]

        rows = store.connection_rankings("post", 10)

        assert "GROUP BY n.id" in cursor.execute.call_args.args[0]
        node, count, avg = rows[0]
        assert (node.name, count, avg) == ("hello", 3, 0.5)

    def test_initialize_schema_creates_tables(self, store, mock_pool):
        cursor = mock_pool[3]

        store.initialize_schema()

        statements = [call.args[0] for call in cursor.execute.call_args_list]
        assert statements[0] == "CREATE EXTENSION IF NOT EXISTS vector"
        assert any("frameworx.knowledge_nodes" in s and "UNIQUE (node_type, name)" in s for s in statements)
        assert any("REFERENCES frameworx.knowledge_nodes(id)" in s for s in statements)
