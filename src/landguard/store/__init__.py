"""Key-value persistence for property records and their child entities."""

from landguard.store.kv import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore, StoredValue
from landguard.store.property_store import PropertyStore

__all__ = ["KeyValueStore", "MemoryKeyValueStore", "PropertyStore", "SqlKeyValueStore", "StoredValue"]
