"""
Second Brain Memory Schemas
"""

from .memory import (
    MemoryRecord,
    DateField,
    DEFAULT_CATEGORY,
    DEFAULT_CATEGORIES,
)

__all__ = [
    "MemoryRecord",
    "DateField",
    "DEFAULT_CATEGORY",
    "DEFAULT_CATEGORIES",
]
