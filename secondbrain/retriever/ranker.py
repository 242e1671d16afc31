"""
Ranker

Merges continuous vector similarity with discrete category/tag boosts into
one ranked list.

    final_score = similarity + category_boost + tag_boost

A candidate survives if it clears the similarity threshold or carries any
boost, so a strong structured match is never dropped for a weak embedding.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..common.schemas import MemoryRecord
from ..store.base import Candidate
from .predicates import BoostSpec, BoostWeights, DateRange, compute_boosts

logger = logging.getLogger("secondbrain.retriever.ranker")

OVERFETCH_FACTOR = 3
OVERFETCH_CEILING = 100


def overfetch_size(limit: int, factor: int = OVERFETCH_FACTOR, ceiling: int = OVERFETCH_CEILING) -> int:
    """How many candidates to pull from the store before ranking."""
    return max(1, min(limit * factor, ceiling))


@dataclass
class SearchFilters:
    """Structured intent applied to one request"""
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None

    def boost_spec(self, weights: Optional[BoostWeights] = None) -> BoostSpec:
        return BoostSpec(
            category=self.category,
            tags=tuple(self.tags),
            weights=weights or BoostWeights(),
        )


@dataclass
class ScoredResult:
    """A ranked memory with its score breakdown"""
    record: MemoryRecord
    similarity: float
    category_boost: float = 0.0
    tag_boost: float = 0.0
    match_type: str = "semantic"

    @property
    def final_score(self) -> float:
        return self.similarity + self.category_boost + self.tag_boost

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def match_reasons(self) -> List[str]:
        return self.match_type.split("+") if self.match_type else []

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.model_dump(mode="json", exclude={"embedding"})
        data.update({
            "similarity": self.similarity,
            "category_boost": self.category_boost,
            "tag_boost": self.tag_boost,
            "final_score": self.final_score,
            "match_type": self.match_type,
        })
        return data


class Ranker:
    """Scores, filters and orders store candidates."""

    def __init__(self, weights: Optional[BoostWeights] = None):
        self._weights = weights or BoostWeights()

    @property
    def weights(self) -> BoostWeights:
        return self._weights

    def rank(
        self,
        candidates: List[Candidate],
        filters: SearchFilters,
        threshold: float = 0.5,
        limit: int = 20,
    ) -> List[ScoredResult]:
        """
        Rank candidates.

        Args:
            candidates: Store output (record + cosine distance)
            filters: Matched category/tags and the active date range
            threshold: Minimum similarity for candidates without a boost
            limit: Maximum results returned

        Returns:
            ScoredResult list sorted by final_score descending
        """
        boost = filters.boost_spec(self._weights)
        scored: List[ScoredResult] = []

        for candidate in candidates:
            record = candidate.record
            similarity = candidate.similarity
            category_boost, tag_boost = compute_boosts(record.category, record.tags, boost)

            if similarity < threshold and category_boost <= 0 and tag_boost <= 0:
                logger.debug("Dropped %s (similarity=%.3f, no boost)", record.id, similarity)
                continue

            scored.append(ScoredResult(
                record=record,
                similarity=similarity,
                category_boost=category_boost,
                tag_boost=tag_boost,
                match_type=self._match_type(similarity, category_boost, tag_boost, filters),
            ))

        scored.sort(key=lambda r: (-r.final_score, -r.similarity, r.id))
        return scored[:limit]

    @staticmethod
    def _match_type(similarity: float, category_boost: float, tag_boost: float, filters: SearchFilters) -> str:
        reasons = []
        if filters.date_range is not None:
            reasons.append("date")
        if category_boost > 0:
            reasons.append("category")
        if tag_boost > 0:
            reasons.append("tag")
        if similarity > 0:
            reasons.append("semantic")
        return "+".join(reasons)
