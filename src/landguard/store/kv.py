"""Key-value repository with compare-and-swap writes.

Two implementations satisfy :class:`KeyValueStore`: an in-process dictionary
used for tests and degraded mode, and a SQLAlchemy-backed table for durable
deployments. Versions start at 1 on create and increase by one per write.
``expected_version`` semantics for :meth:`KeyValueStore.set`:

* ``None`` writes unconditionally. The SQL backend implements this as a
  read followed by a version-checked write and rereads whenever a concurrent
  writer gets in between, so callers never see a conflict.
* ``0`` creates the key and fails if it already exists.
* ``n > 0`` succeeds only while the stored version is still ``n``.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Tuple

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from landguard.errors import ConflictError, NotFoundError, StoreUnavailable
from landguard.store import sql as sql_schema

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class StoredValue:
    """A stored JSON document together with its current version."""

    value: Dict[str, Any]
    version: int


class KeyValueStore(ABC):
    """Repository of JSON documents keyed by string."""

    backend_name = "abstract"

    @abstractmethod
    def get(self, key: str) -> StoredValue | None:
        """Return the stored document for ``key`` or ``None``."""

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any], *, expected_version: int | None = None) -> int:
        """Write ``value`` and return the new version.

        Raises:
            ConflictError: When ``expected_version`` no longer matches.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; raises :class:`NotFoundError` when absent."""

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """Return every key starting with ``prefix`` in sorted order."""

    def values(self, prefix: str) -> List[StoredValue]:
        """Return the documents under ``prefix``, skipping keys deleted mid-scan."""

        found: List[StoredValue] = []
        for key in self.keys(prefix):
            stored = self.get(key)
            if stored is not None:
                found.append(stored)
        return found


class MemoryKeyValueStore(KeyValueStore):
    """Lock-guarded in-process store. Not durable."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, Tuple[Dict[str, Any], int]] = {}

    def get(self, key: str) -> StoredValue | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, version = entry
            return StoredValue(value=copy.deepcopy(value), version=version)

    def set(self, key: str, value: Dict[str, Any], *, expected_version: int | None = None) -> int:
        with self._lock:
            current = self._data.get(key)
            current_version = current[1] if current else 0
            if expected_version is not None and expected_version != current_version:
                raise ConflictError(
                    f"Stale write for '{key}': expected version {expected_version}, found {current_version}"
                )
            new_version = current_version + 1
            self._data[key] = (copy.deepcopy(value), new_version)
            return new_version

    def delete(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is None:
                raise NotFoundError(f"Key '{key}' not found")

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(key for key in self._data if key.startswith(prefix))


class SqlKeyValueStore(KeyValueStore):
    """Key-value documents persisted in the ``kv_entries`` table."""

    backend_name = "sql"

    def __init__(self, *, session_factory: sessionmaker | None = None) -> None:
        self._session_factory = session_factory or sql_schema.session_factory()

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except OperationalError as exc:
            session.rollback()
            raise StoreUnavailable(f"Key-value backend unreachable: {exc.orig}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ensure_schema(self) -> None:
        """Create the backing table if needed; doubles as a connectivity check."""

        engine = self._session_factory.kw["bind"]
        try:
            sql_schema.METADATA.create_all(engine)
        except OperationalError as exc:
            raise StoreUnavailable(f"Key-value backend unreachable: {exc.orig}") from exc
        LOGGER.debug("kv_entries schema ready on %s", engine.url.render_as_string(hide_password=True))

    def get(self, key: str) -> StoredValue | None:
        table = sql_schema.kv_entries
        with self._session_scope() as session:
            row = session.execute(sa.select(table.c.value, table.c.version).where(table.c.key == key)).first()
        if row is None:
            return None
        return StoredValue(value=dict(row.value or {}), version=row.version)

    def set(self, key: str, value: Dict[str, Any], *, expected_version: int | None = None) -> int:
        if expected_version is None:
            while True:
                current = self.get(key)
                try:
                    return self._write(key, value, current.version if current else 0)
                except ConflictError:
                    LOGGER.debug("Concurrent write on %s; rereading before overwrite", key)
        return self._write(key, value, expected_version)

    def _write(self, key: str, value: Dict[str, Any], expected_version: int) -> int:
        table = sql_schema.kv_entries
        timestamp = _utcnow()

        if expected_version == 0:
            try:
                with self._session_scope() as session:
                    session.execute(
                        sa.insert(table).values(
                            key=key,
                            value=value,
                            version=1,
                            created_at=timestamp,
                            updated_at=timestamp,
                        )
                    )
            except IntegrityError as exc:
                raise ConflictError(f"Key '{key}' was created concurrently") from exc
            return 1

        with self._session_scope() as session:
            result = session.execute(
                sa.update(table)
                .where(table.c.key == key, table.c.version == expected_version)
                .values(value=value, version=expected_version + 1, updated_at=timestamp)
            )
            if result.rowcount != 1:
                raise ConflictError(f"Stale write for '{key}': expected version {expected_version}")
        return expected_version + 1

    def delete(self, key: str) -> None:
        table = sql_schema.kv_entries
        with self._session_scope() as session:
            result = session.execute(sa.delete(table).where(table.c.key == key))
            if result.rowcount == 0:
                raise NotFoundError(f"Key '{key}' not found")

    def keys(self, prefix: str = "") -> List[str]:
        table = sql_schema.kv_entries
        query = sa.select(table.c.key).order_by(table.c.key.asc())
        if prefix:
            # Range scan instead of LIKE so '_' and '%' in ids need no escaping.
            query = query.where(table.c.key >= prefix, table.c.key < prefix + "\uffff")
        with self._session_scope() as session:
            rows = session.execute(query).fetchall()
        return [row.key for row in rows if row.key.startswith(prefix)]


__all__ = ["KeyValueStore", "MemoryKeyValueStore", "SqlKeyValueStore", "StoredValue"]
