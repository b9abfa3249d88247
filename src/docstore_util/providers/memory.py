"""In-process storage engine.

Keeps documents in a dict keyed by path and follows Firestore's query
rules closely enough to stand in for it in tests and local development:

- documents missing a filtered or sorted field never match;
- results are ordered by the explicit sorts, then by document path in the
  direction of the last sort;
- range filters on more than one field, or a first sort on a different
  field than the range filter, are rejected when the query runs;
- a batch holds at most ``max_batch_writes`` writes.
"""

import copy
import functools
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import TracebackType
from typing import Any, ClassVar, Self

from pydantic import BaseModel

from docstore_util.constraints import ComparisonOp, Direction
from docstore_util.errors import DocStoreError, ErrorKind
from docstore_util.params import IDENTITY_FIELD, BatchWriteParams
from docstore_util.protocols import Snapshot

_MISSING = object()

_RANGE_OPS = frozenset(
    {
        ComparisonOp.LT,
        ComparisonOp.LTE,
        ComparisonOp.GT,
        ComparisonOp.GTE,
        ComparisonOp.NE,
        ComparisonOp.NOT_IN,
    }
)
_ARRAY_OPS = frozenset({ComparisonOp.ARRAY_CONTAINS, ComparisonOp.ARRAY_CONTAINS_ANY})
_LIST_VALUE_OPS = frozenset({ComparisonOp.IN, ComparisonOp.NOT_IN, ComparisonOp.ARRAY_CONTAINS_ANY})


class MemoryCredentials(BaseModel, frozen=True):
    """The memory engine needs no credentials."""


class MemoryParams(BatchWriteParams, frozen=True):
    """Parameters for the memory engine.

    Inherits `max_batch_writes` from BatchWriteParams.
    """


def _split_path(path: str) -> list[str]:
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments:
        msg = "Path must not be empty"
        raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
    return segments


def _document_path(path: str) -> str:
    segments = _split_path(path)
    if len(segments) % 2:
        msg = f"'{path}' is not a document path"
        raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
    return "/".join(segments)


def _collection_path(path: str) -> str:
    segments = _split_path(path)
    if not len(segments) % 2:
        msg = f"'{path}' is not a collection path"
        raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
    return "/".join(segments)


def _type_rank(value: Any) -> int:
    # Firestore cross-type ordering.
    match value:
        case None:
            return 0
        case bool():
            return 1
        case int() | float():
            return 2
        case datetime():
            return 3
        case str():
            return 4
        case bytes():
            return 5
        case list() | tuple():
            return 6
        case Mapping():
            return 7
        case _:
            msg = f"Unsupported value type: {type(value).__name__}"
            raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)


def _compare(a: Any, b: Any) -> int:
    rank_a, rank_b = _type_rank(a), _type_rank(b)
    if rank_a != rank_b:
        return -1 if rank_a < rank_b else 1
    if rank_a == 0:
        return 0
    if rank_a == 6:
        for x, y in zip(a, b, strict=False):
            c = _compare(x, y)
            if c:
                return c
        return _compare(len(a), len(b))
    if rank_a == 7:
        return _compare(sorted(a.items()), sorted(b.items()))
    if a == b:
        return 0
    return -1 if a < b else 1


def _equal(a: Any, b: Any) -> bool:
    return _type_rank(a) == _type_rank(b) and _compare(a, b) == 0


def _lookup(data: Mapping[str, Any], field_path: str) -> Any:
    value: Any = data
    for part in field_path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]  # pyright: ignore[reportUnknownVariableType]
    return value


class MemorySnapshot:
    """Snapshot of a document held by ``MemoryProvider``.

    Stored documents are replaced, never mutated, so a snapshot can share
    the stored mapping; ``to_dict`` hands out a copy.
    """

    __slots__: ClassVar[tuple[str, str]] = ("_data", "_ref")

    def __init__(self, ref: str, data: dict[str, Any] | None) -> None:
        self._ref = ref
        self._data = data

    @property
    def id(self) -> str:
        return self._ref.rsplit("/", 1)[-1]

    @property
    def ref(self) -> str:
        return self._ref

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data)

    def get(self, field_path: str) -> Any:
        if field_path == IDENTITY_FIELD:
            return self.id
        if self._data is None:
            return _MISSING
        return _lookup(self._data, field_path)

    def __repr__(self) -> str:
        return f"MemorySnapshot({self._ref!r}, exists={self.exists})"


@dataclass(frozen=True, slots=True)
class _Filter:
    field_path: str
    op: ComparisonOp
    value: Any

    def matches(self, snapshot: MemorySnapshot) -> bool:
        actual = snapshot.get(self.field_path)
        if actual is _MISSING:
            return False

        match self.op:
            case ComparisonOp.EQ:
                return _equal(actual, self.value)
            case ComparisonOp.NE:
                return actual is not None and not _equal(actual, self.value)
            case ComparisonOp.LT | ComparisonOp.LTE | ComparisonOp.GT | ComparisonOp.GTE:
                # Range filters only match values of the same type.
                if _type_rank(actual) != _type_rank(self.value):
                    return False
                c = _compare(actual, self.value)
                return {
                    ComparisonOp.LT: c < 0,
                    ComparisonOp.LTE: c <= 0,
                    ComparisonOp.GT: c > 0,
                    ComparisonOp.GTE: c >= 0,
                }[self.op]
            case ComparisonOp.ARRAY_CONTAINS:
                return isinstance(actual, list) and any(_equal(v, self.value) for v in actual)  # pyright: ignore[reportUnknownVariableType]
            case ComparisonOp.ARRAY_CONTAINS_ANY:
                return isinstance(actual, list) and any(
                    _equal(v, w)
                    for v in actual  # pyright: ignore[reportUnknownVariableType]
                    for w in self.value
                )
            case ComparisonOp.IN:
                return any(_equal(actual, w) for w in self.value)
            case ComparisonOp.NOT_IN:
                return actual is not None and not any(_equal(actual, w) for w in self.value)


@dataclass(frozen=True, slots=True)
class _Order:
    field_path: str
    direction: Direction


@dataclass(frozen=True, slots=True)
class MemoryQuery:
    """Immutable query over one collection of a ``MemoryProvider``."""

    _store: "MemoryProvider"
    _path: str
    _filters: tuple[_Filter, ...] = ()
    _orders: tuple[_Order, ...] = ()
    _cursor: MemorySnapshot | None = None
    _limit: int | None = None
    _clauses: tuple[tuple[str, Any], ...] = field(default=())

    @property
    def clauses(self) -> tuple[tuple[str, Any], ...]:
        """Refinements applied so far, in the order they were applied."""
        return self._clauses

    def filter(self, field_path: str, op: ComparisonOp, value: Any) -> Self:
        return replace(
            self,
            _filters=(*self._filters, _Filter(field_path, ComparisonOp(op), value)),
            _clauses=(*self._clauses, ("filter", (field_path, ComparisonOp(op), value))),
        )

    def sort(self, field_path: str, direction: Direction = Direction.ASC) -> Self:
        return replace(
            self,
            _orders=(*self._orders, _Order(field_path, Direction(direction))),
            _clauses=(*self._clauses, ("sort", (field_path, Direction(direction)))),
        )

    def start_after(self, snapshot: Snapshot) -> Self:
        cursor = snapshot if isinstance(snapshot, MemorySnapshot) else MemorySnapshot(snapshot.ref, snapshot.to_dict())
        return replace(self, _cursor=cursor, _clauses=(*self._clauses, ("start_after", cursor.ref)))

    def limit(self, count: int) -> Self:
        if count < 1:
            msg = f"Limit must be positive, got {count}"
            raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
        return replace(self, _limit=count, _clauses=(*self._clauses, ("limit", count)))

    def _validate(self) -> None:
        range_fields = {f.field_path for f in self._filters if f.op in _RANGE_OPS}
        if len(range_fields) > 1:
            msg = f"Range filters on more than one field: {sorted(range_fields)}"
            raise DocStoreError(msg, kind=ErrorKind.CONSTRAINT_CONFLICT)
        if range_fields and self._orders:
            (range_field,) = range_fields
            if self._orders[0].field_path != range_field:
                msg = (
                    f"First sort must be on '{range_field}' when it has a range filter, "
                    f"got '{self._orders[0].field_path}'"
                )
                raise DocStoreError(msg, kind=ErrorKind.CONSTRAINT_CONFLICT)
        if sum(f.op in _ARRAY_OPS for f in self._filters) > 1:
            msg = "At most one array-contains filter per query"
            raise DocStoreError(msg, kind=ErrorKind.CONSTRAINT_CONFLICT)
        for f in self._filters:
            if f.op in _LIST_VALUE_OPS and (
                isinstance(f.value, str) or not isinstance(f.value, Sequence | set | frozenset)
            ):
                msg = f"'{f.op}' filter on '{f.field_path}' requires a list value"
                raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)

    def _effective_orders(self) -> list[_Order]:
        orders = list(self._orders)
        if not orders:
            range_fields = [f.field_path for f in self._filters if f.op in _RANGE_OPS]
            if range_fields:
                orders.append(_Order(range_fields[0], Direction.ASC))
        if not any(o.field_path == IDENTITY_FIELD for o in orders):
            direction = orders[-1].direction if orders else Direction.ASC
            orders.append(_Order(IDENTITY_FIELD, direction))
        return orders

    async def execute(self) -> list[Snapshot]:
        self._store.queries_executed += 1
        self._validate()
        orders = self._effective_orders()

        def compare(a: MemorySnapshot, b: MemorySnapshot) -> int:
            for order in orders:
                c = _compare(a.get(order.field_path), b.get(order.field_path))
                if c:
                    return -c if order.direction is Direction.DESC else c
            return 0

        matches = [
            s
            for s in self._store.iter_collection(self._path)
            if all(f.matches(s) for f in self._filters)
            and all(s.get(o.field_path) is not _MISSING for o in orders)
        ]
        matches.sort(key=functools.cmp_to_key(compare))

        if self._cursor is not None:
            cursor = self._cursor
            if any(cursor.get(o.field_path) is _MISSING for o in orders):
                msg = f"Cursor document '{cursor.ref}' lacks a sorted field"
                raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
            matches = [s for s in matches if compare(s, cursor) > 0]

        if self._limit is not None:
            matches = matches[: self._limit]
        return list(matches)


class MemoryBatch:
    """Deletes applied together on ``commit``."""

    __slots__: ClassVar[tuple[str, str, str]] = ("_committed", "_refs", "_store")

    def __init__(self, store: "MemoryProvider") -> None:
        self._store = store
        self._refs: list[str] = []
        self._committed = False

    def delete(self, ref: str) -> None:
        self._refs.append(_document_path(ref))

    async def commit(self) -> None:
        if self._committed:
            msg = "Batch already committed"
            raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
        limit = self._store.params.max_batch_writes
        if len(self._refs) > limit:
            msg = f"Batch of {len(self._refs)} writes exceeds the limit of {limit}"
            raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
        self._committed = True
        for ref in self._refs:
            self._store.documents.pop(ref, None)
        self._store.batches_committed.append(len(self._refs))


class MemoryTransaction:
    """Transaction over a ``MemoryProvider``.

    Reads are immediate; deletes are buffered until ``commit``. Used as an
    async context manager it commits on success and discards on error.
    """

    __slots__: ClassVar[tuple[str, str]] = ("_deletes", "_store")

    def __init__(self, store: "MemoryProvider") -> None:
        self._store = store
        self._deletes: list[str] = []

    @property
    def pending_deletes(self) -> tuple[str, ...]:
        return tuple(self._deletes)

    async def get(self, path: str) -> Snapshot:
        return await self._store.get_document(path)

    def delete(self, path: str) -> None:
        self._deletes.append(_document_path(path))

    async def commit(self) -> None:
        for ref in self._deletes:
            self._store.documents.pop(ref, None)
        self._deletes.clear()

    def rollback(self) -> None:
        self._deletes.clear()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            await self.commit()
        else:
            self.rollback()


class MemoryProvider:
    """In-process storage engine.

    Implements Provider[MemoryCredentials, MemoryParams] and StorageEngine.
    """

    __slots__: ClassVar[tuple[str, ...]] = (
        "batches_committed",
        "documents",
        "params",
        "queries_executed",
    )

    def __init__(self, params: MemoryParams | None = None) -> None:
        self.params = params or MemoryParams()
        self.documents: dict[str, dict[str, Any]] = {}
        self.queries_executed = 0
        # Size of every committed batch, in commit order.
        self.batches_committed: list[int] = []

    @classmethod
    async def connect(cls, credentials: MemoryCredentials, params: MemoryParams) -> Self:  # noqa: ARG003
        """Create an empty engine."""
        return cls(params)

    async def disconnect(self) -> None:
        """Drop all documents."""
        self.documents.clear()

    def iter_collection(self, path: str) -> Iterator[MemorySnapshot]:
        collection = _collection_path(path)
        prefix = collection + "/"
        for ref, data in self.documents.items():
            if ref.startswith(prefix) and "/" not in ref[len(prefix) :]:
                yield MemorySnapshot(ref, data)

    async def set_document(self, path: str, data: Mapping[str, Any]) -> None:
        """Create or overwrite a document."""
        self.documents[_document_path(path)] = copy.deepcopy(dict(data))

    async def get_document(self, path: str) -> Snapshot:
        ref = _document_path(path)
        return MemorySnapshot(ref, self.documents.get(ref))

    async def delete_document(self, path: str) -> None:
        self.documents.pop(_document_path(path), None)

    def query(self, collection_path: str) -> MemoryQuery:
        return MemoryQuery(self, _collection_path(collection_path))

    def batch(self) -> MemoryBatch:
        return MemoryBatch(self)

    def transaction(self) -> MemoryTransaction:
        return MemoryTransaction(self)


Provider = MemoryProvider
