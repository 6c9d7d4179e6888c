"""Content Graph - knowledge graph engine for content platform events."""
