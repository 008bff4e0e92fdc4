"""Storage backends and the persistence adapter."""

from simtrade.storage.kv import (
    DuckDBKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    StorageError,
)
from simtrade.storage.persistence import DEFAULT_BALANCE, StatePersistence

__all__ = [
    "DEFAULT_BALANCE",
    "DuckDBKeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "StatePersistence",
    "StorageError",
]
