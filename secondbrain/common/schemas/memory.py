"""
Memory Record Schema

A memory is one captured item (message, note, email, ...) with its AI-derived
structure, a category from the catalog, a tag set, an embedding and three
semantic date fields.

Each date field is stored twice: the raw timestamp and a short formatted key.
Range predicates compare the keys, never the raw timestamps.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..date_utils import format_date_key


# ============================================================================
# Enums / Catalog
# ============================================================================

class DateField(str, Enum):
    """Semantic date fields a date range can target"""
    MEMORY = "memory_date"  # when it happened
    DUE = "due_date"  # when it is due
    RECEIVED = "received_date"  # when it arrived

    @property
    def formatted(self) -> str:
        """Name of the formatted key column compared by range predicates"""
        return f"{self.value}_formatted"


DEFAULT_CATEGORY = "Unsorted"

DEFAULT_CATEGORIES = [
    "Idea",
    "Task",
    "Project",
    "Reference",
    "Journal",
    "Meeting",
    "Learning",
    "Unsorted",
]


# ============================================================================
# Main Schema
# ============================================================================

class MemoryRecord(BaseModel):
    """
    A stored memory.

    Invariants:
    - tags are a set (duplicates are dropped, first occurrence order kept)
    - a set raw date field always has a matching *_formatted key
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    raw_content: str = Field(..., description="Original captured text")
    structured_content: Optional[Dict[str, Any]] = Field(default=None, description="AI-derived structure")
    category: str = Field(default=DEFAULT_CATEGORY)
    tags: List[str] = Field(default_factory=list)
    embedding: Optional[List[float]] = None

    source: str = Field(default="slack")
    source_id: Optional[str] = None

    memory_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    received_date: Optional[datetime] = None
    memory_date_formatted: Optional[str] = None
    due_date_formatted: Optional[str] = None
    received_date_formatted: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: List[str]) -> List[str]:
        return list(dict.fromkeys(t for t in tags if t))

    @model_validator(mode="after")
    def _sync_date_keys(self) -> "MemoryRecord":
        self.refresh_date_keys()
        return self

    def refresh_date_keys(self) -> None:
        """Recompute formatted keys from the raw timestamps that are set."""
        for date_field in DateField:
            raw = getattr(self, date_field.value)
            if raw is not None:
                setattr(self, date_field.formatted, format_date_key(raw))

    def date_key(self, date_field: DateField) -> Optional[str]:
        return getattr(self, date_field.formatted)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)
