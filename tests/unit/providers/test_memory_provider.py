"""Unit tests for the in-memory storage engine."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from docstore_util import DocStoreError, ErrorKind, StorageEngine
from docstore_util.providers.memory import MemoryCredentials, MemoryParams, MemoryProvider


@pytest.fixture
def people(engine: MemoryProvider) -> MemoryProvider:
    engine.documents.update(
        {
            "people/ann": {"age": 31, "tags": ["a", "b"], "city": "Oslo", "address": {"zip": "0150"}},
            "people/bob": {"age": 25, "tags": ["b"], "city": "Rome"},
            "people/cid": {"age": 40, "tags": [], "city": None},
            "people/dee": {"age": "unknown", "tags": ["c"]},
            "people/eve": {"tags": ["a"], "city": "Oslo"},
        }
    )
    return engine


async def _ids(query) -> list[str]:
    return [s.id for s in await query.execute()]


def test_satisfies_storage_engine_protocol(engine):
    assert isinstance(engine, StorageEngine)


@pytest.mark.asyncio
async def test_connect_and_disconnect():
    provider = await MemoryProvider.connect(MemoryCredentials(), MemoryParams(max_batch_writes=2))
    await provider.set_document("items/a", {"n": 1})

    assert provider.params.max_batch_writes == 2
    await provider.disconnect()
    assert provider.documents == {}


@pytest.mark.asyncio
async def test_get_document(people):
    snapshot = await people.get_document("people/ann")
    missing = await people.get_document("people/zed")

    assert snapshot.exists
    assert snapshot.id == "ann"
    assert snapshot.to_dict()["age"] == 31
    assert not missing.exists
    assert missing.to_dict() is None


@pytest.mark.asyncio
async def test_snapshot_data_is_a_copy(people):
    snapshot = await people.get_document("people/ann")
    snapshot.to_dict()["tags"].append("z")

    assert people.documents["people/ann"]["tags"] == ["a", "b"]


@pytest.mark.asyncio
async def test_invalid_paths(engine):
    with pytest.raises(DocStoreError) as exc_info:
        await engine.get_document("people")
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT

    with pytest.raises(DocStoreError):
        engine.query("people/ann")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("field", "op", "value", "expected"),
    [
        ("age", "==", 31, ["ann"]),
        ("age", "!=", 31, ["bob", "cid", "dee"]),
        ("age", "<", 35, ["bob", "ann"]),
        ("age", ">=", 31, ["ann", "cid"]),
        ("tags", "array-contains", "b", ["ann", "bob"]),
        ("tags", "array-contains-any", ["a", "c"], ["ann", "dee", "eve"]),
        ("city", "in", ["Oslo", "Rome"], ["ann", "bob", "eve"]),
        ("city", "not-in", ["Oslo"], ["bob"]),
        ("city", "==", None, ["cid"]),
        ("address.zip", "==", "0150", ["ann"]),
    ],
)
async def test_filters(people, field, op, value, expected):
    assert await _ids(people.query("people").filter(field, op, value)) == expected


@pytest.mark.asyncio
async def test_sort_excludes_documents_missing_the_field(people):
    q = people.query("people").sort("age", "desc")

    # Strings sort after numbers; eve has no age.
    assert await _ids(q) == ["dee", "cid", "ann", "bob"]


@pytest.mark.asyncio
async def test_sort_then_start_after(people):
    q = people.query("people").sort("city", "asc")
    cursor = await people.get_document("people/ann")

    assert await _ids(q) == ["cid", "ann", "eve", "bob"]
    assert await _ids(q.start_after(cursor)) == ["eve", "bob"]
    assert await _ids(q.start_after(cursor).limit(1)) == ["eve"]


@pytest.mark.asyncio
async def test_datetime_values(engine):
    engine.documents["events/a"] = {"at": datetime(2024, 1, 2, tzinfo=UTC)}
    engine.documents["events/b"] = {"at": datetime(2024, 1, 1, tzinfo=UTC)}

    q = engine.query("events").filter("at", ">", datetime(2023, 12, 31, tzinfo=UTC)).sort("at", "asc")

    assert await _ids(q) == ["b", "a"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "build",
    [
        lambda q: q.filter("age", ">", 1).filter("city", "<", "z"),
        lambda q: q.filter("age", ">", 1).sort("city", "asc"),
        lambda q: q.filter("tags", "array-contains", "a").filter("tags", "array-contains-any", ["b"]),
    ],
)
async def test_constraint_conflicts(people, build):
    with pytest.raises(DocStoreError) as exc_info:
        await build(people.query("people")).execute()
    assert exc_info.value.kind is ErrorKind.CONSTRAINT_CONFLICT


@pytest.mark.asyncio
async def test_list_operator_requires_list(people):
    with pytest.raises(DocStoreError) as exc_info:
        await people.query("people").filter("city", "in", "Oslo").execute()
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT


@pytest.mark.asyncio
async def test_batch_is_atomic_and_single_use(people):
    batch = people.batch()
    batch.delete("people/ann")
    batch.delete("people/bob")
    assert len(people.documents) == 5

    await batch.commit()
    assert sorted(people.documents) == ["people/cid", "people/dee", "people/eve"]

    with pytest.raises(DocStoreError):
        await batch.commit()


@pytest.mark.asyncio
async def test_batch_limit(people):
    engine = MemoryProvider(MemoryParams(max_batch_writes=1))
    engine.documents.update(people.documents)
    batch = engine.batch()
    batch.delete("people/ann")
    batch.delete("people/bob")

    with pytest.raises(DocStoreError) as exc_info:
        await batch.commit()
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT
    assert len(engine.documents) == 5


@pytest.mark.asyncio
async def test_transaction_context_manager(people):
    async with people.transaction() as txn:
        txn.delete("people/ann")
        assert "people/ann" in people.documents
    assert "people/ann" not in people.documents

    with pytest.raises(RuntimeError):
        async with people.transaction() as txn:
            txn.delete("people/bob")
            raise RuntimeError
    assert "people/bob" in people.documents
