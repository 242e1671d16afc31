"""
Store Interfaces

A MemoryStore answers approximate-nearest-neighbour queries under a hard
predicate tree; a CatalogStore lists the live category names and the
distinct tags in use. Adapters raise StoreError on any backend failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from ..common.schemas import MemoryRecord

if TYPE_CHECKING:
    from ..retriever.predicates import BoostSpec, Predicate


@dataclass
class Candidate:
    """A record returned by the store with its cosine distance to the query"""
    record: MemoryRecord
    distance: float

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance


class CatalogStore(ABC):
    """Source of category names and distinct tags"""

    @abstractmethod
    async def list_categories(self) -> List[str]:
        """Category names in catalog order."""

    @abstractmethod
    async def list_distinct_tags(self) -> List[str]:
        """Every tag in use by at least one record."""


class MemoryStore(CatalogStore):
    """Vector-capable memory store"""

    @abstractmethod
    async def query(
        self,
        predicate: "Predicate",
        vector: List[float],
        boosts: Optional["BoostSpec"] = None,
        limit: int = 20,
    ) -> List[Candidate]:
        """
        Retrieve up to `limit` candidates satisfying `predicate`.

        Candidates are ordered by similarity plus the canonical boosts from
        `boosts`, so records with soft matches survive the over-fetch cut.
        """

    @abstractmethod
    async def get(self, memory_id: str) -> Optional[MemoryRecord]:
        ...

    async def close(self) -> None:
        """Release backend resources."""
        return None
