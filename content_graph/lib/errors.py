"""
Error taxonomy for the knowledge graph engine.

- ConfigurationError: backing store or provider missing; fatal to the call
- StorageError: I/O failure or constraint violation in the backing store
- ValidationError: malformed node, relationship or event input
- NotFoundError: referenced entity does not exist

Soft failures (no embedding, unknown event type, no similar nodes) are never
raised; they surface as empty or partial results.
"""

from typing import Any, Optional


class GraphError(Exception):
    """Base class for knowledge graph errors.

    ``partial`` holds the UpdateSummary of writes that completed before a
    multi-step ingestion pipeline stopped.
    """

    def __init__(self, message: str, partial: Optional[Any] = None):
        super().__init__(message)
        self.partial = partial


class ConfigurationError(GraphError):
    pass


class StorageError(GraphError):
    pass


class ValidationError(GraphError):
    pass


class NotFoundError(GraphError):
    pass
