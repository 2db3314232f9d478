"""Factory helpers that instantiate core services based on configuration.

These helpers centralize the logic for honoring the storage settings declared
in :mod:`landguard.settings`. When the SQL backend cannot be reached and
``storage.fallback_to_memory`` is enabled, the in-process store is returned
instead; that mode is degraded and loses every write on restart.
"""

from __future__ import annotations

import logging

from landguard.errors import StoreUnavailable
from landguard.services.property_check import PropertyService
from landguard.services.scanning import ScanService
from landguard.settings import Settings, get_settings
from landguard.store.kv import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore
from landguard.store.property_store import PropertyStore
from landguard.store.sql import build_engine, session_factory

LOGGER = logging.getLogger(__name__)


def build_kv_store(settings: Settings | None = None) -> KeyValueStore:
    """Return the key-value store that matches the configured backend.

    Raises:
        StoreUnavailable: If the SQL backend is unreachable and fallback is off.
        NotImplementedError: If the configured backend is not supported.
    """

    resolved = settings or get_settings()
    backend = resolved.storage.backend
    if backend == "memory":
        return MemoryKeyValueStore()

    if backend == "sql":
        try:
            store = SqlKeyValueStore(session_factory=session_factory(engine=build_engine(settings=resolved)))
            store.ensure_schema()
            return store
        except StoreUnavailable as exc:
            if not resolved.storage.fallback_to_memory:
                raise
            LOGGER.warning(
                "SQL key-value backend unavailable (%s); using in-memory store. "
                "Running degraded: data is not durable and is not shared across processes.",
                exc.message,
            )
            return MemoryKeyValueStore()

    raise NotImplementedError(f"Unsupported storage backend '{backend}'")


def build_property_store(settings: Settings | None = None) -> PropertyStore:
    return PropertyStore(build_kv_store(settings))


def build_property_service(settings: Settings | None = None) -> PropertyService:
    resolved = settings or get_settings()
    return PropertyService(build_property_store(resolved), max_attempts=resolved.storage.cas_max_attempts)


def build_scan_service(settings: Settings | None = None) -> ScanService:
    return ScanService(settings=settings or get_settings())


__all__ = ["build_kv_store", "build_property_service", "build_property_store", "build_scan_service"]
