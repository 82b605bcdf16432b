"""SQLite key-value store for identity, weights and cached features.

This module provides persistent storage for:
- The identity of the user the feed is ranked for
- The user's scorer weights
- Cached account-level features used by scorers and fetchers
"""

from feedrank.store.errors import (
    ConnectionError,
    IdentityNotSetError,
    MigrationError,
    StateStoreError,
)
from feedrank.store.keys import StorageKey
from feedrank.store.scoped import IdentityStore, UserScopedStorage
from feedrank.store.store import KeyValueStore, StoredValue
from feedrank.store.weights import UserWeightStore, WeightsMap, WeightStore


__all__ = [
    # Errors
    "ConnectionError",
    "IdentityNotSetError",
    "MigrationError",
    "StateStoreError",
    # Keys
    "StorageKey",
    # Stores
    "IdentityStore",
    "KeyValueStore",
    "StoredValue",
    "UserScopedStorage",
    "UserWeightStore",
    "WeightStore",
    "WeightsMap",
]
