"""
Error taxonomy for the retrieval core.

ProviderError and StoreError are hard failures that abort a search.
DateParseError is recoverable: the search continues without a date filter.
An empty result list is not an error.
"""

from typing import Optional


class SearchError(Exception):
    """Base class for retrieval failures surfaced to callers."""
    pass


class ProviderError(SearchError):
    """Embedding provider call failed (network, auth, rate limit, timeout)."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class StoreError(SearchError):
    """The structured/ANN query against the memory store failed."""
    pass


class DateParseError(SearchError):
    """A phrase looked date-like but could not be resolved into a range."""

    def __init__(self, message: str, phrase: str = ""):
        super().__init__(message)
        self.phrase = phrase
