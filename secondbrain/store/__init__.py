"""
Memory Stores

Adapters that answer vector queries under the retrieval predicate tree.

- InMemoryMemoryStore: dict + numpy, for tests and small deployments
- PgVectorMemoryStore: PostgreSQL + pgvector via SQLAlchemy async
"""

from .base import Candidate, CatalogStore, MemoryStore
from .memory_store import InMemoryMemoryStore
from .pgvector_store import PgVectorMemoryStore


def create_store(config) -> MemoryStore:
    """Build the store selected by config.store.backend ("memory" or "pgvector")."""
    backend = (config.store.backend or "memory").lower()
    if backend == "memory":
        return InMemoryMemoryStore(dimensions=config.embedding.dimensions)
    if backend in ("pgvector", "postgres", "postgresql"):
        return PgVectorMemoryStore(
            database_url=config.store.database_url,
            dimensions=config.embedding.dimensions,
        )
    raise ValueError(f"Unknown store backend: {config.store.backend}")


__all__ = [
    "Candidate",
    "CatalogStore",
    "MemoryStore",
    "InMemoryMemoryStore",
    "PgVectorMemoryStore",
    "create_store",
]
