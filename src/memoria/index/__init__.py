"""Derived indexes over the document store.

An index is a sorted, denormalized summary of one kind's documents,
persisted at .indexes/<kind>.json and rebuilt whenever it is missing or
stale.
"""

from memoria.index.builder import build_index
from memoria.index.manager import DEFAULT_MAX_AGE_SECONDS, IndexManager, is_stale

__all__ = [
    "DEFAULT_MAX_AGE_SECONDS",
    "IndexManager",
    "build_index",
    "is_stale",
]
