"""Data providers module for search term intelligence.

Analyzers read through a ``PerformanceDataProvider`` and the review gateway
writes through a ``NegativeKeywordWriter``:
- Advertising platform sync layers implement both in production
- ``InMemoryDataProvider`` backs tests and offline analysis
"""

from searchterm_intel.data_providers.base import (
    NegativeKeywordWriter,
    PerformanceDataProvider,
)
from searchterm_intel.data_providers.memory_provider import InMemoryDataProvider

__all__ = [
    "InMemoryDataProvider",
    "NegativeKeywordWriter",
    "PerformanceDataProvider",
]
