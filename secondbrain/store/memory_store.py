"""
In-Memory Memory Store

Process-local MemoryStore backed by a dict and numpy cosine similarity.
Used for tests, demos and small single-user deployments.

The predicate tree is lowered into a plain Python check per record; soft
boosts take part in the over-fetch ordering through compute_boosts, the same
formula the ranker applies afterwards.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..common.errors import StoreError
from ..common.schemas import DEFAULT_CATEGORIES, DateField, MemoryRecord
from ..retriever.predicates import (
    And,
    BoostSpec,
    CategoryEquals,
    DateRange,
    EmbeddingPresent,
    Predicate,
    TagsOverlap,
    compute_boosts,
)
from .base import Candidate, MemoryStore

logger = logging.getLogger("secondbrain.store.memory_store")

RecordCheck = Callable[[MemoryRecord], bool]


def lower_predicate(predicate: Predicate) -> RecordCheck:
    """Compile a predicate tree into a record -> bool function."""
    if isinstance(predicate, EmbeddingPresent):
        return lambda record: record.has_embedding
    if isinstance(predicate, DateRange):
        return lambda record: predicate.contains_key(record.date_key(predicate.field))
    if isinstance(predicate, CategoryEquals):
        return lambda record: record.category == predicate.category
    if isinstance(predicate, TagsOverlap):
        wanted = set(predicate.tags)
        return lambda record: bool(wanted & set(record.tags))
    if isinstance(predicate, And):
        checks = [lower_predicate(clause) for clause in predicate.clauses]
        return lambda record: all(check(record) for check in checks)
    raise StoreError(f"Unsupported predicate: {type(predicate).__name__}")


class InMemoryMemoryStore(MemoryStore):
    """
    Dict-backed store.

    Every stored embedding must share one dimensionality; the first stored
    vector fixes it when `dimensions` is not given.
    """

    def __init__(
        self,
        dimensions: Optional[int] = None,
        categories: Optional[Sequence[str]] = None,
    ):
        self._dimensions = dimensions
        self._categories: List[str] = list(categories) if categories is not None else list(DEFAULT_CATEGORIES)
        self._records: Dict[str, MemoryRecord] = {}

    @property
    def dimensions(self) -> Optional[int]:
        return self._dimensions

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def list_categories(self) -> List[str]:
        return list(self._categories)

    async def list_distinct_tags(self) -> List[str]:
        tags: List[str] = []
        for record in self._records.values():
            for tag in record.tags:
                if tag not in tags:
                    tags.append(tag)
        return sorted(tags)

    async def add_category(self, name: str) -> None:
        if name not in self._categories:
            self._categories.append(name)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _check_dimensions(self, vector: Optional[List[float]]) -> None:
        if not vector:
            return
        if self._dimensions is None:
            self._dimensions = len(vector)
        elif len(vector) != self._dimensions:
            raise StoreError(
                f"Embedding dimension mismatch: expected {self._dimensions}, got {len(vector)}"
            )

    async def create(self, record: MemoryRecord) -> MemoryRecord:
        if record.id in self._records:
            raise StoreError(f"Memory {record.id} already exists")
        self._check_dimensions(record.embedding)
        self._records[record.id] = record
        logger.debug("Stored memory %s (%s)", record.id, record.category)
        return record

    async def get(self, memory_id: str) -> Optional[MemoryRecord]:
        return self._records.get(memory_id)

    async def update(self, memory_id: str, **changes) -> MemoryRecord:
        """
        Apply field changes to a stored memory.

        Changing raw_content without supplying a new embedding clears the
        stored one, so the record drops out of vector search until it is
        re-embedded.
        """
        current = self._records.get(memory_id)
        if current is None:
            raise StoreError(f"Memory {memory_id} not found")

        if "raw_content" in changes and changes["raw_content"] != current.raw_content:
            changes.setdefault("embedding", None)
        self._check_dimensions(changes.get("embedding"))

        data = current.model_dump()
        data.update(changes)
        for date_field in DateField:
            if date_field.value in changes and changes[date_field.value] is None:
                data[date_field.formatted] = None
        data["id"] = memory_id
        data["updated_at"] = datetime.now()

        updated = MemoryRecord.model_validate(data)
        self._records[memory_id] = updated
        return updated

    async def delete(self, memory_id: str) -> bool:
        return self._records.pop(memory_id, None) is not None

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def query(
        self,
        predicate: Predicate,
        vector: List[float],
        boosts: Optional[BoostSpec] = None,
        limit: int = 20,
    ) -> List[Candidate]:
        if self._dimensions is not None and len(vector) != self._dimensions:
            raise StoreError(
                f"Query vector dimension mismatch: expected {self._dimensions}, got {len(vector)}"
            )

        check = lower_predicate(predicate)
        matching = [r for r in self._records.values() if r.has_embedding and check(r)]
        if not matching:
            return []

        query_vec = np.asarray(vector, dtype=float)
        matrix = np.asarray([r.embedding for r in matching], dtype=float)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vec)
        dots = matrix @ query_vec
        similarities = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

        boost = boosts or BoostSpec()
        scored = []
        for record, similarity in zip(matching, similarities):
            category_boost, tag_boost = compute_boosts(record.category, record.tags, boost)
            scored.append((float(similarity) + category_boost + tag_boost, float(similarity), record))

        scored.sort(key=lambda item: (-item[0], -item[1], item[2].id))
        return [
            Candidate(record=record, distance=1.0 - similarity)
            for _, similarity, record in scored[:limit]
        ]
