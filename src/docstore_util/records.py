"""Result containers for document queries.

A result keeps the caller's payload and the identity metadata of the
snapshot it came from in separate fields, so payload keys can never
collide with ``id`` or ``ref``.
"""

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from docstore_util.cursor import QueryCursor
from docstore_util.errors import DocStoreError, ErrorKind
from docstore_util.protocols import Snapshot

T = TypeVar("T")

_IDENTITY_KEYS = frozenset({"id", "ref"})


class ResultMeta(BaseModel, frozen=True):
    """Identity of the document a result was read from."""

    id: str
    """Document id (last path segment)."""

    ref: str
    """Fully-qualified document path."""


class QueryResult(BaseModel, Generic[T], frozen=True):
    """A document payload together with its identity metadata."""

    data: T
    meta: ResultMeta

    @property
    def id(self) -> str:
        return self.meta.id

    @property
    def ref(self) -> str:
        return self.meta.ref

    def flatten(self) -> dict[str, Any]:
        """Merge payload and metadata into one mapping.

        Metadata wins on key collisions.
        """
        if isinstance(self.data, BaseModel):
            payload = self.data.model_dump()
        else:
            payload = dict(self.data)  # pyright: ignore[reportUnknownArgumentType]
        return {**payload, "id": self.meta.id, "ref": self.meta.ref}


class QueryRequest(BaseModel, frozen=True):
    """Request envelope carrying an optional pagination cursor."""

    cursor: QueryCursor | None = None


class QueryResponse(BaseModel, Generic[T], frozen=True):
    """One page of results and the cursor for the next page."""

    data: list[QueryResult[T]]
    cursor: QueryCursor


def to_result(
    snapshot: Snapshot, model: type[BaseModel] | None = None
) -> QueryResult[Any]:
    """Wrap a snapshot, optionally validating its fields into ``model``."""
    payload: Any = snapshot.to_dict() or {}
    if model is not None:
        try:
            payload = model.model_validate(payload)
        except ValidationError as e:
            msg = f"Document '{snapshot.ref}' does not match {model.__name__}: {e}"
            raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT, source=e) from e
    return QueryResult[Any](
        data=payload, meta=ResultMeta(id=snapshot.id, ref=snapshot.ref)
    )


def query_data(item: Any) -> Any:
    """Remove an item's id and ref. Usually used before writing it back.

    Accepts a ``QueryResult``, a flat mapping such as ``QueryResult.flatten()``
    output, or anything else (returned unchanged). Mapping payloads and flat
    mappings lose their ``id`` and ``ref`` keys, so
    ``query_data(r) == query_data(r.flatten())`` and the output can be fed
    back in unchanged. Model payloads are returned as a copy.
    """
    if isinstance(item, QueryResult):
        data = item.data  # pyright: ignore[reportUnknownMemberType]
        if isinstance(data, BaseModel):
            return data.model_copy()
        item = data
    if isinstance(item, Mapping):
        return {k: v for k, v in item.items() if k not in _IDENTITY_KEYS}  # pyright: ignore[reportUnknownVariableType]
    return item
