"""
Embedding provider abstraction.

Providers turn text into a fixed-length vector. The graph engine treats
embeddings as optional: ``embed_text()`` logs provider failures and returns
None so a missing or failing provider never breaks a write.

Providers:
- openai: OpenAI embeddings API (requires OPENAI_API_KEY)
- mock: deterministic hash-based vectors, no network (tests, development)
- none: no provider; nodes are stored without embeddings
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..config import Config
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Longest input forwarded to the embeddings API
MAX_EMBEDDING_INPUT_CHARS = 8000


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers"""

    @abstractmethod
    def generate_embedding(self, text: str) -> Dict[str, Any]:
        """Return dict with 'embedding' (vector) and 'tokens' (usage info)"""
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        pass

    @abstractmethod
    def get_embedding_model(self) -> str:
        pass


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embeddings (text-embedding-ada-002 by default)"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        embedding_model: Optional[str] = None,
        max_retries: int = 2,
        timeout: float = 30.0
    ):
        from openai import OpenAI

        self.api_key = api_key or Config.openai_api_key()
        if not self.api_key:
            raise ConfigurationError(
                "OpenAI API key not found. Set OPENAI_API_KEY or use EMBEDDING_PROVIDER=none"
            )

        self.client = OpenAI(
            api_key=self.api_key,
            max_retries=max_retries,
            timeout=timeout
        )
        self.embedding_model = embedding_model or Config.openai_embedding_model()

    def generate_embedding(self, text: str) -> Dict[str, Any]:
        response = self.client.embeddings.create(
            model=self.embedding_model,
            input=text[:MAX_EMBEDDING_INPUT_CHARS]
        )

        tokens = 0
        if hasattr(response, 'usage') and response.usage:
            tokens = response.usage.total_tokens

        return {
            "embedding": list(response.data[0].embedding),
            "tokens": tokens
        }

    def get_provider_name(self) -> str:
        return "OpenAI"

    def get_embedding_model(self) -> str:
        return self.embedding_model


class MockEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic embeddings derived from a SHA-256 of the text.

    Same text always produces the same unit-length vector, so cosine
    similarity behaves sensibly without any network access.
    """

    def __init__(self, embedding_dimension: int = 64):
        self.embedding_dimension = embedding_dimension

    def generate_embedding(self, text: str) -> Dict[str, Any]:
        text_hash = hashlib.sha256(text.encode()).digest()

        embedding = []
        for i in range(self.embedding_dimension):
            byte_value = text_hash[i % len(text_hash)]
            embedding.append((byte_value / 255.0) * 2 - 1)

        magnitude = sum(x ** 2 for x in embedding) ** 0.5
        if magnitude > 0:
            embedding = [x / magnitude for x in embedding]

        return {
            "embedding": embedding,
            "tokens": len(text.split())
        }

    def get_provider_name(self) -> str:
        return "Mock"

    def get_embedding_model(self) -> str:
        return f"mock-hash-{self.embedding_dimension}"


def embed_text(provider: Optional[EmbeddingProvider], text: str) -> Optional[List[float]]:
    """
    Embed text, treating any provider failure as "no embedding".

    Returns:
        The vector, or None when no provider is configured or the call failed
    """
    if provider is None or not text:
        return None

    try:
        result = provider.generate_embedding(text)
    except Exception as e:
        logger.warning(f"Embedding generation failed ({provider.get_provider_name()}): {e}")
        return None

    embedding = result.get("embedding") or None
    if embedding is None:
        logger.warning(f"{provider.get_provider_name()} returned an empty embedding")
    return embedding


def get_embedding_provider(provider_name: Optional[str] = None) -> Optional[EmbeddingProvider]:
    """
    Factory for the configured embedding provider.

    Args:
        provider_name: "openai", "mock" or "none" (defaults to EMBEDDING_PROVIDER)

    Returns:
        Provider instance, or None for "none"

    Raises:
        ConfigurationError: Unknown provider or missing API key
    """
    provider_name = (provider_name or Config.embedding_provider()).lower()

    if provider_name == "none":
        logger.info("No embedding provider configured; nodes will be stored without embeddings")
        return None
    if provider_name == "mock":
        return MockEmbeddingProvider()
    if provider_name == "openai":
        provider = OpenAIEmbeddingProvider()
        logger.info(f"Embedding provider: OpenAI ({provider.get_embedding_model()})")
        return provider

    raise ConfigurationError(
        f"Unknown embedding provider: {provider_name}. Use 'openai', 'mock', or 'none'"
    )
