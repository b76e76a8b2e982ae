"""
Stores package for the CardDemo posting batch.

Re-exports the store interface and its implementations so downstream code can
import from `carddemo.stores` directly.
"""

from carddemo.stores.abstract import AccountLockedError, PostingStore
from carddemo.stores.memory import InMemoryStore
from carddemo.stores.postgres import PostgresStore

__all__ = [
    # Interface
    "AccountLockedError",
    "PostingStore",
    # Implementations
    "InMemoryStore",
    "PostgresStore",
]
