"""
Graph store package.

    from content_graph.lib.graph_store import create_graph_store
    store = create_graph_store()          # honours GRAPH_STORE
    store = create_graph_store("memory")  # explicit
"""

import logging
from typing import Optional

from ...config import Config
from ..errors import ConfigurationError
from .base import GraphStore, require_store
from .memory import InMemoryGraphStore

logger = logging.getLogger(__name__)


def create_graph_store(store_name: Optional[str] = None) -> GraphStore:
    """
    Build the configured graph store.

    Args:
        store_name: "postgres" or "memory" (defaults to GRAPH_STORE env var)

    Raises:
        ConfigurationError: Unknown store name or missing connection settings
        StorageError: PostgreSQL unreachable
    """
    store_name = (store_name or Config.graph_store()).lower()

    if store_name == "memory":
        logger.info("Using in-memory graph store")
        return InMemoryGraphStore()

    if store_name == "postgres":
        # Imported lazily so the memory store works without libpq available
        from .postgres import PostgresGraphStore

        return PostgresGraphStore(
            host=Config.postgres_host(),
            port=Config.postgres_port(),
            database=Config.postgres_db(),
            user=Config.postgres_user(),
            password=Config.postgres_password(),
            schema=Config.graph_schema(),
            statement_timeout_ms=Config.postgres_statement_timeout_ms(),
            connect_timeout=Config.postgres_connect_timeout(),
        )

    raise ConfigurationError(
        f"Unknown graph store: {store_name}. Use 'postgres' or 'memory'"
    )


__all__ = ["GraphStore", "InMemoryGraphStore", "create_graph_store", "require_store"]
