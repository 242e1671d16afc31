"""
Retrieval Predicates

Tagged-variant predicate tree handed to a MemoryStore. Each store adapter
lowers the tree into its own native query form.

Only HARD filters belong in the tree (embedding presence, date ranges and,
for explicit caller filters, category/tag constraints). Category and tag
matches extracted from the query text travel separately as a BoostSpec:
they re-rank candidates and never exclude them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Union

from ..common.date_utils import format_date_key
from ..common.schemas import DateField


@dataclass(frozen=True)
class EmbeddingPresent:
    """Record has a stored embedding"""


@dataclass(frozen=True)
class DateRange:
    """Inclusive range on one semantic date field, compared via formatted keys"""
    field: DateField
    start: datetime
    end: datetime

    @property
    def start_key(self) -> str:
        return format_date_key(self.start)

    @property
    def end_key(self) -> str:
        return format_date_key(self.end)

    def contains_key(self, key: Optional[str]) -> bool:
        if not key:
            return False
        return self.start_key <= key <= self.end_key

    def to_dict(self) -> dict:
        return {
            "field": self.field.value,
            "start_date": self.start.isoformat(),
            "end_date": self.end.isoformat(),
        }


@dataclass(frozen=True)
class CategoryEquals:
    category: str


@dataclass(frozen=True)
class TagsOverlap:
    tags: Tuple[str, ...]


@dataclass(frozen=True)
class And:
    clauses: Tuple["Predicate", ...]


Predicate = Union[EmbeddingPresent, DateRange, CategoryEquals, TagsOverlap, And]


def all_of(*clauses: Optional[Predicate]) -> And:
    """Build a flat conjunction, skipping missing clauses and nested Ands."""
    flat = []
    for clause in clauses:
        if clause is None:
            continue
        if isinstance(clause, And):
            flat.extend(clause.clauses)
        else:
            flat.append(clause)
    return And(tuple(flat))


def iter_clauses(predicate: Predicate):
    """Yield the leaf predicates of a tree, depth first."""
    if isinstance(predicate, And):
        for clause in predicate.clauses:
            yield from iter_clauses(clause)
    else:
        yield predicate


@dataclass(frozen=True)
class BoostWeights:
    """Additive boost weights layered on top of similarity"""
    category: float = 3.0
    tag: float = 1.5


@dataclass(frozen=True)
class BoostSpec:
    """Soft matches extracted from the query; re-rank only"""
    category: Optional[str] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)
    weights: BoostWeights = field(default_factory=BoostWeights)

    @property
    def is_empty(self) -> bool:
        return self.category is None and not self.tags


def compute_boosts(category: Optional[str], tags, boost: BoostSpec) -> Tuple[float, float]:
    """
    Canonical boost formula, shared by every stage that orders candidates.

    category_boost = weights.category if the category equals the matched one
    tag_boost      = weights.tag * |record tags ∩ matched tags|

    Returns:
        (category_boost, tag_boost)
    """
    category_boost = boost.weights.category if boost.category is not None and category == boost.category else 0.0
    overlap = len(set(tags or ()) & set(boost.tags))
    tag_boost = boost.weights.tag * overlap
    return category_boost, tag_boost
