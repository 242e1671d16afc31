"""
Catalog Provider

Supplies the live category names and distinct tags the analyzer matches
against. Results are cached for a short TTL; writers that create categories
or tags call invalidate() so the next query sees them.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Tuple

from ..store.base import CatalogStore

logger = logging.getLogger("secondbrain.retriever.catalog")

Snapshot = Tuple[List[str], List[str]]


class CatalogProvider(ABC):
    """Anything that can hand out a (categories, tags) snapshot"""

    @abstractmethod
    async def snapshot(self) -> Snapshot:
        """Return (categories in catalog order, distinct tags)."""

    def invalidate(self) -> None:
        """Drop any cached snapshot."""
        return None


class StaticCatalogProvider(CatalogProvider):
    """Fixed vocabulary, for tests and offline analysis"""

    def __init__(self, categories: Sequence[str] = (), tags: Sequence[str] = ()):
        self._categories = list(categories)
        self._tags = list(tags)

    async def snapshot(self) -> Snapshot:
        return list(self._categories), list(self._tags)


class StoreCatalogProvider(CatalogProvider):
    """
    Reads the catalog from a CatalogStore with a TTL cache.

    Categories and tags are fetched concurrently. The cache is the only
    shared mutable state in a search; concurrent refreshes are
    last-writer-wins.
    """

    def __init__(
        self,
        store: CatalogStore,
        ttl_seconds: float = 30.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            store: Backend listing categories and tags
            ttl_seconds: How long a snapshot stays fresh (0 disables caching)
            clock: Monotonic clock in seconds (defaults to time.monotonic)
        """
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock or time.monotonic
        self._cached: Optional[Snapshot] = None
        self._fetched_at = 0.0

    @property
    def is_cached(self) -> bool:
        return self._cached is not None and (self._clock() - self._fetched_at) < self._ttl

    async def snapshot(self) -> Snapshot:
        if self.is_cached:
            categories, tags = self._cached
            return list(categories), list(tags)

        categories, tags = await asyncio.gather(
            self._store.list_categories(),
            self._store.list_distinct_tags(),
        )
        self._cached = (list(categories), list(tags))
        self._fetched_at = self._clock()
        logger.debug("Catalog refreshed: %d categories, %d tags", len(categories), len(tags))
        return list(categories), list(tags)

    def invalidate(self) -> None:
        self._cached = None
        self._fetched_at = 0.0
