"""Unit tests for the Firestore adapter, against a mocked client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

pytest.importorskip("google.cloud.firestore_v1")

from google.api_core.exceptions import FailedPrecondition  # noqa: E402

from docstore_util import DocStoreError, DocStoreUtil, ErrorKind, QueryCursor, order_by, where  # noqa: E402
from docstore_util.providers.firestore import (  # noqa: E402
    FirestoreParams,
    FirestoreProvider,
    FirestoreSnapshot,
)


def _native_snapshot(path: str, data: dict | None) -> MagicMock:
    snapshot = MagicMock()
    snapshot.id = path.rsplit("/", 1)[-1]
    snapshot.reference.path = path
    snapshot.exists = data is not None
    snapshot.to_dict.return_value = data
    return snapshot


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    query = client.collection.return_value
    # Every refinement returns the same mock so the chain can be inspected.
    query.where.return_value = query
    query.order_by.return_value = query
    query.start_after.return_value = query
    query.limit.return_value = query
    query.get = AsyncMock(return_value=[])
    return client


@pytest.fixture
def provider(client) -> FirestoreProvider:
    return FirestoreProvider(client, FirestoreParams())


@pytest.mark.asyncio
async def test_get_document_wraps_snapshot(provider, client):
    client.document.return_value.get = AsyncMock(return_value=_native_snapshot("items/a", {"n": 1}))

    snapshot = await provider.get_document("items/a")

    client.document.assert_called_with("items/a")
    assert isinstance(snapshot, FirestoreSnapshot)
    assert snapshot.ref == "items/a"
    assert snapshot.to_dict() == {"n": 1}


@pytest.mark.asyncio
async def test_doc_query_missing_returns_none(provider, client):
    client.document.return_value.get = AsyncMock(return_value=_native_snapshot("items/abc", None))

    assert await DocStoreUtil(provider).doc_query("items/abc") is None


@pytest.mark.asyncio
async def test_constraints_translate_to_native_calls(provider, client):
    query = client.collection.return_value
    query.get = AsyncMock(return_value=[_native_snapshot("items/a", {"tags": ["x"]})])

    results = await DocStoreUtil(provider).collection_query(
        "items", [where("tags", "array-contains", "x"), order_by("n", "desc")]
    )

    field_filter = query.where.call_args.kwargs["filter"]
    assert (field_filter.field_path, field_filter.op_string, field_filter.value) == ("tags", "array_contains", "x")
    query.order_by.assert_called_once_with("n", direction="DESCENDING")
    assert [r.ref for r in results] == ["items/a"]


@pytest.mark.asyncio
async def test_cursor_uses_native_snapshot(provider, client):
    native = _native_snapshot("items/a", {"n": 1})
    client.document.return_value.get = AsyncMock(return_value=native)

    await DocStoreUtil(provider).cursor_query("items", cursor=QueryCursor(page_size=5, start_after="items/a"))

    query = client.collection.return_value
    query.start_after.assert_called_once_with(native)
    query.limit.assert_called_once_with(5)


@pytest.mark.asyncio
async def test_query_failure_is_wrapped(provider, client):
    client.collection.return_value.get = AsyncMock(side_effect=FailedPrecondition("index required"))

    with pytest.raises(DocStoreError) as exc_info:
        await DocStoreUtil(provider).collection_query("items")
    assert exc_info.value.kind is ErrorKind.CONSTRAINT_CONFLICT
    assert isinstance(exc_info.value.source, FailedPrecondition)


@pytest.mark.asyncio
async def test_batch_commit(provider, client):
    native_batch = client.batch.return_value
    native_batch.commit = AsyncMock(return_value=[])

    batch = provider.batch()
    batch.delete("items/a")
    await batch.commit()

    native_batch.delete.assert_called_once_with(client.document.return_value)
    native_batch.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_batch_over_limit_is_rejected(client):
    provider = FirestoreProvider(client, FirestoreParams(max_batch_writes=1))
    native_batch = client.batch.return_value
    native_batch.commit = AsyncMock()

    batch = provider.batch()
    batch.delete("items/a")
    batch.delete("items/b")

    with pytest.raises(DocStoreError) as exc_info:
        await batch.commit()
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT
    native_batch.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_transaction_reads_and_deletes(provider, client):
    native_txn = MagicMock()
    doc_ref = client.document.return_value
    doc_ref.get = AsyncMock(return_value=_native_snapshot("items/a", {"n": 1}))

    txn = provider.transaction(native_txn)
    snapshot = await txn.get("items/a")
    txn.delete("items/a")

    doc_ref.get.assert_awaited_once_with(transaction=native_txn)
    native_txn.delete.assert_called_once_with(doc_ref)
    assert snapshot.exists


def test_batch_delete_wraps_bad_path(provider, client):
    client.document.side_effect = ValueError("odd number of segments")

    with pytest.raises(DocStoreError) as exc_info:
        provider.batch().delete("items")
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT
    assert isinstance(exc_info.value.source, ValueError)


def test_transaction_delete_wraps_bad_path(provider, client):
    client.document.side_effect = ValueError("odd number of segments")

    with pytest.raises(DocStoreError) as exc_info:
        provider.transaction(MagicMock()).delete("items")
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT
