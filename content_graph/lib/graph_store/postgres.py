"""
PostgreSQL graph store (psycopg2 + pgvector).

Two tables in a configurable schema:
- knowledge_nodes: unique (node_type, name), JSONB properties, pgvector embedding
- knowledge_relationships: unique (from_node_id, to_node_id, relationship_type),
  foreign keys to knowledge_nodes

Key infrastructure:
- ThreadedConnectionPool for thread-safe connection reuse
- _connection(): scoped checkout with commit/rollback and guaranteed return
- statement_timeout set per session so every query carries a deadline
- psycopg2 errors are wrapped in StorageError at this boundary
"""

import json
import logging
import math
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2 import extras, pool

from ...models.graph import Node, Properties, Relationship
from ..errors import ConfigurationError, StorageError
from .base import GraphStore

logger = logging.getLogger(__name__)

# Schema names are interpolated into SQL, so restrict them to plain identifiers
_VALID_SCHEMA_RE = re.compile(r'^[a-z_][a-z0-9_]{0,62}$')

_NODE_COLUMNS = """
    n.id, n.node_type, n.name, n.properties,
    n.embedding::text AS embedding, n.created_at, n.updated_at
"""

_RELATIONSHIP_COLUMNS = """
    r.id, r.from_node_id, r.to_node_id, r.relationship_type,
    r.properties, r.weight, r.created_at
"""


def _vector_literal(embedding: Optional[List[float]]) -> Optional[str]:
    """pgvector accepts the JSON array text form ('[0.1,0.2]')."""
    if embedding is None:
        return None
    return json.dumps([float(x) for x in embedding])


def _row_to_node(row: Dict[str, Any]) -> Node:
    embedding = row.get("embedding")
    if isinstance(embedding, str):
        embedding = json.loads(embedding)
    return Node(
        id=row["id"],
        type=row["node_type"],
        name=row["name"],
        properties=row.get("properties") or {},
        embedding=embedding,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_relationship(row: Dict[str, Any]) -> Relationship:
    return Relationship(
        id=row["id"],
        from_node_id=row["from_node_id"],
        to_node_id=row["to_node_id"],
        type=row["relationship_type"],
        properties=row.get("properties") or {},
        weight=float(row["weight"]),
        created_at=row["created_at"],
    )


class PostgresGraphStore(GraphStore):
    """Graph store backed by PostgreSQL with the pgvector extension."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: Optional[str],
        schema: str = "frameworx",
        statement_timeout_ms: int = 30000,
        connect_timeout: int = 10,
        minconn: int = 1,
        maxconn: int = 10
    ):
        """
        Create the connection pool.

        Raises:
            ConfigurationError: If connection details or the schema name are invalid
            StorageError: If PostgreSQL cannot be reached
        """
        if not all([host, port, database, user, password]):
            raise ConfigurationError(
                "Missing PostgreSQL connection details. Set POSTGRES_HOST, "
                "POSTGRES_PORT, POSTGRES_DB, POSTGRES_USER and POSTGRES_PASSWORD."
            )
        if not _VALID_SCHEMA_RE.match(schema):
            raise ConfigurationError(f"Invalid schema name: {schema!r}")

        self.schema = schema
        self.host = host
        self.port = port

        try:
            self.pool = pool.ThreadedConnectionPool(
                minconn,
                maxconn,
                host=host,
                port=port,
                database=database,
                user=user,
                password=password,
                connect_timeout=connect_timeout,
                options=f"-c statement_timeout={int(statement_timeout_ms)}"
            )
        except psycopg2.OperationalError as e:
            raise StorageError(f"Cannot connect to PostgreSQL at {host}:{port}: {e}") from e

        logger.info(
            f"Graph store connected to {host}:{port}/{database} "
            f"(schema={schema}, statement_timeout={statement_timeout_ms}ms)"
        )

    @contextmanager
    def _connection(self) -> Iterator[Any]:
        """Check out a connection; commit on success, roll back on error, always return it."""
        try:
            conn = self.pool.getconn()
        except psycopg2.Error as e:
            raise StorageError(f"Could not acquire database connection: {e}") from e

        try:
            yield conn
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Graph store query failed: {e}")
            raise StorageError(str(e).strip()) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def _fetch_all(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        with self._connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(query, params)
                return [dict(row) for row in cur.fetchall()]

    def _fetch_one(self, query: str, params: Optional[tuple] = None) -> Optional[Dict[str, Any]]:
        with self._connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
                return dict(row) if row else None

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def initialize_schema(self) -> None:
        s = self.schema
        statements = [
            "CREATE EXTENSION IF NOT EXISTS vector",
            f"CREATE SCHEMA IF NOT EXISTS {s}",
            f"""
            CREATE TABLE IF NOT EXISTS {s}.knowledge_nodes (
                id BIGSERIAL PRIMARY KEY,
                node_type TEXT NOT NULL,
                name TEXT NOT NULL,
                properties JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                embedding vector,
                created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (node_type, name)
            )
            """,
            f"""
            CREATE TABLE IF NOT EXISTS {s}.knowledge_relationships (
                id BIGSERIAL PRIMARY KEY,
                from_node_id BIGINT NOT NULL REFERENCES {s}.knowledge_nodes(id),
                to_node_id BIGINT NOT NULL REFERENCES {s}.knowledge_nodes(id),
                relationship_type TEXT NOT NULL,
                properties JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                weight DOUBLE PRECISION NOT NULL DEFAULT 1.0,
                created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (from_node_id, to_node_id, relationship_type)
            )
            """,
            f"CREATE INDEX IF NOT EXISTS idx_kn_type ON {s}.knowledge_nodes (node_type)",
            f"CREATE INDEX IF NOT EXISTS idx_kr_from ON {s}.knowledge_relationships (from_node_id)",
            f"CREATE INDEX IF NOT EXISTS idx_kr_to ON {s}.knowledge_relationships (to_node_id)",
            f"CREATE INDEX IF NOT EXISTS idx_kr_type ON {s}.knowledge_relationships (relationship_type)",
        ]
        with self._connection() as conn:
            with conn.cursor() as cur:
                for statement in statements:
                    cur.execute(statement)
        logger.info(f"Graph schema '{s}' initialized")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def upsert_node(
        self,
        node_type: str,
        name: str,
        properties: Properties,
        embedding: Optional[List[float]] = None
    ) -> Node:
        query = f"""
            INSERT INTO {self.schema}.knowledge_nodes AS n (node_type, name, properties, embedding)
            VALUES (%s, %s, %s, %s::vector)
            ON CONFLICT (node_type, name)
            DO UPDATE SET
                properties = EXCLUDED.properties,
                embedding = EXCLUDED.embedding,
                updated_at = CURRENT_TIMESTAMP
            RETURNING {_NODE_COLUMNS}
        """
        row = self._fetch_one(query, (
            node_type,
            name,
            extras.Json(properties or {}),
            _vector_literal(embedding),
        ))
        return _row_to_node(row)

    def upsert_relationship(
        self,
        from_node_id: int,
        to_node_id: int,
        relationship_type: str,
        properties: Properties,
        weight: float
    ) -> Relationship:
        query = f"""
            INSERT INTO {self.schema}.knowledge_relationships AS r
                (from_node_id, to_node_id, relationship_type, properties, weight)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (from_node_id, to_node_id, relationship_type)
            DO UPDATE SET
                properties = EXCLUDED.properties,
                weight = EXCLUDED.weight,
                created_at = CURRENT_TIMESTAMP
            RETURNING {_RELATIONSHIP_COLUMNS}
        """
        row = self._fetch_one(query, (
            from_node_id,
            to_node_id,
            relationship_type,
            extras.Json(properties or {}),
            float(weight),
        ))
        return _row_to_relationship(row)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_nodes(self, node_ids: Iterable[int]) -> Dict[int, Node]:
        ids = list(dict.fromkeys(node_ids))
        if not ids:
            return {}
        rows = self._fetch_all(
            f"SELECT {_NODE_COLUMNS} FROM {self.schema}.knowledge_nodes n WHERE n.id = ANY(%s)",
            (ids,)
        )
        return {row["id"]: _row_to_node(row) for row in rows}

    def incident_relationships(
        self,
        node_ids: Iterable[int],
        relationship_types: Optional[Sequence[str]] = None
    ) -> List[Relationship]:
        ids = list(dict.fromkeys(node_ids))
        if not ids:
            return []

        query = f"""
            SELECT {_RELATIONSHIP_COLUMNS}
            FROM {self.schema}.knowledge_relationships r
            WHERE (r.from_node_id = ANY(%s) OR r.to_node_id = ANY(%s))
        """
        params: List[Any] = [ids, ids]
        if relationship_types:
            query += " AND r.relationship_type = ANY(%s)"
            params.append(list(relationship_types))
        query += " ORDER BY r.id"

        return [_row_to_relationship(row) for row in self._fetch_all(query, tuple(params))]

    def nearest_neighbors(
        self,
        node_type: str,
        embedding: List[float],
        exclude_node_id: int,
        limit: int
    ) -> List[Tuple[Node, float]]:
        vector = _vector_literal(embedding)
        query = f"""
            SELECT {_NODE_COLUMNS}, n.embedding <=> %s::vector AS distance
            FROM {self.schema}.knowledge_nodes n
            WHERE n.id != %s
              AND n.node_type = %s
              AND n.embedding IS NOT NULL
              AND vector_dims(n.embedding) = vector_dims(%s::vector)
            ORDER BY n.embedding <=> %s::vector, n.id
            LIMIT %s
        """
        rows = self._fetch_all(
            query, (vector, exclude_node_id, node_type, vector, vector, limit)
        )
        # <=> yields NaN against zero-norm vectors
        return [
            (_row_to_node(row), float(row["distance"]))
            for row in rows
            if row.get("distance") is not None and not math.isnan(row["distance"])
        ]

    def connection_rankings(
        self,
        node_type: str,
        limit: int
    ) -> List[Tuple[Node, int, float]]:
        query = f"""
            SELECT {_NODE_COLUMNS},
                   COUNT(r.id) AS connection_strength,
                   AVG(r.weight) AS avg_weight
            FROM {self.schema}.knowledge_nodes n
            JOIN {self.schema}.knowledge_relationships r
              ON (n.id = r.from_node_id OR n.id = r.to_node_id)
            WHERE n.node_type = %s
            GROUP BY n.id
            ORDER BY connection_strength DESC, avg_weight DESC, n.id
            LIMIT %s
        """
        rows = self._fetch_all(query, (node_type, limit))
        return [
            (_row_to_node(row), int(row["connection_strength"]), float(row["avg_weight"]))
            for row in rows
        ]

    def node_type_counts(self) -> List[Tuple[str, int]]:
        rows = self._fetch_all(f"""
            SELECT node_type, COUNT(*) AS count
            FROM {self.schema}.knowledge_nodes
            GROUP BY node_type
            ORDER BY count DESC, node_type
        """)
        return [(row["node_type"], int(row["count"])) for row in rows]

    def relationship_type_stats(self) -> List[Tuple[str, int, float]]:
        rows = self._fetch_all(f"""
            SELECT relationship_type, COUNT(*) AS count, AVG(weight) AS avg_weight
            FROM {self.schema}.knowledge_relationships
            GROUP BY relationship_type
            ORDER BY count DESC, relationship_type
        """)
        return [
            (row["relationship_type"], int(row["count"]), float(row["avg_weight"]))
            for row in rows
        ]

    def close(self) -> None:
        self.pool.closeall()
