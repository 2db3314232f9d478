"""Unit tests for the key-value stores and their compare-and-swap semantics."""

from __future__ import annotations

import pytest
import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from landguard.errors import ConflictError, NotFoundError
from landguard.store import sql as sql_schema
from landguard.store.kv import MemoryKeyValueStore, SqlKeyValueStore


def _build_sql_store(tmp_path):
    db_path = tmp_path / "kv.db"
    engine = sa.create_engine(f"sqlite:///{db_path}", future=True)
    sql_schema.METADATA.create_all(engine)
    factory = sessionmaker(bind=engine, future=True)
    return SqlKeyValueStore(session_factory=factory), engine


@pytest.fixture(params=["memory", "sql"])
def kv(request, tmp_path):
    if request.param == "memory":
        yield MemoryKeyValueStore()
        return
    store, engine = _build_sql_store(tmp_path)
    try:
        yield store
    finally:
        engine.dispose()


def test_versions_start_at_one_and_increment(kv) -> None:
    """Unconditional writes create then bump the version."""

    assert kv.get("property:a") is None
    assert kv.set("property:a", {"n": 1}) == 1
    assert kv.set("property:a", {"n": 2}) == 2

    stored = kv.get("property:a")
    assert stored.value == {"n": 2}
    assert stored.version == 2


def test_create_only_rejects_existing_key(kv) -> None:
    kv.set("property:a", {"n": 1}, expected_version=0)
    with pytest.raises(ConflictError):
        kv.set("property:a", {"n": 2}, expected_version=0)
    assert kv.get("property:a").value == {"n": 1}


def test_stale_version_is_rejected(kv) -> None:
    """Two writers reading version 1 cannot both commit."""

    kv.set("alert:p:a", {"scanCount": 0})
    first = kv.get("alert:p:a")
    second = kv.get("alert:p:a")

    kv.set("alert:p:a", {"scanCount": first.value["scanCount"] + 1}, expected_version=first.version)
    with pytest.raises(ConflictError):
        kv.set("alert:p:a", {"scanCount": second.value["scanCount"] + 1}, expected_version=second.version)

    stored = kv.get("alert:p:a")
    assert stored.value == {"scanCount": 1}
    assert stored.version == 2


def test_cas_against_missing_key_conflicts(kv) -> None:
    with pytest.raises(ConflictError):
        kv.set("watch:u:p", {"x": 1}, expected_version=3)


def test_delete_and_missing_delete(kv) -> None:
    kv.set("watch:u:p", {"userId": "u"})
    kv.delete("watch:u:p")
    assert kv.get("watch:u:p") is None
    with pytest.raises(NotFoundError):
        kv.delete("watch:u:p")


def test_keys_filter_by_prefix(kv) -> None:
    """Prefix scans are sorted and do not treat '_' as a wildcard."""

    for key in ("listing:p1:b", "listing:p1:a", "listing:p2:a", "listingX", "report:p1:r"):
        kv.set(key, {"key": key})

    assert kv.keys("listing:p1:") == ["listing:p1:a", "listing:p1:b"]
    assert kv.keys("listing:") == ["listing:p1:a", "listing:p1:b", "listing:p2:a"]
    assert [stored.value["key"] for stored in kv.values("report:")] == ["report:p1:r"]
    assert len(kv.keys()) == 5


def test_memory_store_returns_copies() -> None:
    """Mutating a returned document must not change the stored one."""

    kv = MemoryKeyValueStore()
    kv.set("property:a", {"tags": ["x"]})
    stored = kv.get("property:a")
    stored.value["tags"].append("y")
    assert kv.get("property:a").value == {"tags": ["x"]}


def test_sql_store_ensure_schema_is_idempotent(tmp_path) -> None:
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'fresh.db'}", future=True)
    try:
        store = SqlKeyValueStore(session_factory=sessionmaker(bind=engine, future=True))
        store.ensure_schema()
        store.ensure_schema()
        assert store.set("property:a", {"n": 1}, expected_version=0) == 1
        assert store.get("property:a").version == 1
    finally:
        engine.dispose()


def test_unconditional_write_survives_concurrent_writer(kv, monkeypatch) -> None:
    """A writer landing between the read and the write does not surface a conflict."""

    kv.set("property:a", {"n": 1})
    original_get = kv.get
    interleaved = []

    def get_then_rival_write(key):
        stored = original_get(key)
        if not interleaved:
            interleaved.append(key)
            kv.set(key, {"n": "rival"}, expected_version=stored.version)
        return stored

    monkeypatch.setattr(kv, "get", get_then_rival_write)

    version = kv.set("property:a", {"n": 2})

    monkeypatch.undo()
    stored = kv.get("property:a")
    assert stored.value == {"n": 2}
    assert stored.version == version
