"""
Pytest fixtures for the content graph tests.

Provides common fixtures for:
- In-memory graph store and mock embedding provider
- KnowledgeGraphService wired to both
- FastAPI test client bound to that service
- Sample event payloads
"""

import os
from typing import Any, Dict, Generator

import pytest
from fastapi.testclient import TestClient

# Set test environment before imports
os.environ["GRAPH_STORE"] = "memory"
os.environ["EMBEDDING_PROVIDER"] = "none"

from content_graph.lib.embedding_providers import MockEmbeddingProvider
from content_graph.lib.graph_store import InMemoryGraphStore
from content_graph.services.graph_service import KnowledgeGraphService


# ============================================================================
# Store / Provider Fixtures
# ============================================================================

@pytest.fixture
def store() -> InMemoryGraphStore:
    """Fresh, empty in-memory store per test."""
    return InMemoryGraphStore()


@pytest.fixture
def mock_embeddings() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def service(store) -> KnowledgeGraphService:
    """Service without embeddings (similarity linking is a no-op)."""
    return KnowledgeGraphService(store)


@pytest.fixture
def embedding_service(store, mock_embeddings) -> KnowledgeGraphService:
    """Service with deterministic mock embeddings."""
    return KnowledgeGraphService(store, mock_embeddings)


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================

@pytest.fixture
def api_client(service) -> Generator[TestClient, None, None]:
    """
    FastAPI test client whose routes use the ``service`` fixture.

    Usage:
        def test_stats(api_client):
            response = api_client.get("/knowledge-graph/stats")
            assert response.status_code == 200
    """
    from content_graph.main import app

    with TestClient(app) as client:
        app.state.graph_service = service
        yield client


# ============================================================================
# Test Data Fixtures
# ============================================================================

@pytest.fixture
def game_session_event() -> Dict[str, Any]:
    return {
        "type": "game_session_completed",
        "data": {
            "gameType": "chess",
            "userId": "u1",
            "score": 500,
            "levelReached": 3,
            "timePlayedSeconds": 420,
            "completedAt": "2024-05-01T12:00:00Z",
            "achievements": ["first_win"],
        },
    }


@pytest.fixture
def blog_post_event() -> Dict[str, Any]:
    content = (
        "Blockchain ledgers store transactions. Every blockchain keeps a ledger "
        "that nodes replicate, and each ledger entry references earlier blockchain "
        "blocks."
    )
    return {
        "type": "blog_post_created",
        "data": {
            "slug": "intro-to-blockchain",
            "title": "Intro to Blockchain",
            "summary": "Ledgers explained",
            "content": content,
            "publishedAt": "2024-04-01T09:00:00Z",
            "readingTime": 4,
            "status": "published",
            "author": {"name": "Ada", "bio": "Writes about ledgers"},
            "category": "technology",
            "tags": ["crypto", "databases"],
        },
    }


@pytest.fixture
def sports_event() -> Dict[str, Any]:
    return {
        "type": "sports_data_updated",
        "data": {
            "nfl": [{
                "id": "g-1",
                "status": "final",
                "startTime": "2024-09-08T17:00:00Z",
                "venue": "Arrowhead",
                "homeTeam": {"name": "Chiefs", "abbreviation": "KC", "score": 27},
                "awayTeam": {"name": "Ravens", "abbreviation": "BAL", "score": 20},
            }],
            "nba": [{
                "id": "g-2",
                "homeTeam": {"name": "Celtics", "abbreviation": "BOS"},
                "awayTeam": {"name": "Knicks", "abbreviation": "NYK"},
            }],
        },
    }


@pytest.fixture
def chat_event() -> Dict[str, Any]:
    return {
        "type": "chat_conversation_created",
        "data": {
            "id": "c-9",
            "title": "Python help",
            "provider": "openai",
            "model": "gpt-4o",
            "messages": [
                {"role": "user", "content": "How do python generators work?"},
                {"role": "assistant", "content": "Python generators yield values lazily."},
            ],
        },
    }


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "api: API endpoint tests")


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their location."""
    for item in items:
        if "tests/api" in item.nodeid:
            item.add_marker(pytest.mark.api)

        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)

        if not any(marker.name in ["integration", "api"] for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
