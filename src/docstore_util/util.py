"""High-level document store helpers."""

import logging
from collections.abc import Sequence
from typing import Any, ClassVar, TypeVar, overload

from pydantic import BaseModel

from docstore_util.constraints import QueryConstraint
from docstore_util.context import DIRECT, ExecutionContext
from docstore_util.cursor import QueryCursor
from docstore_util.deletion import delete_collection
from docstore_util.params import UtilParams
from docstore_util.protocols import StorageEngine
from docstore_util.query import apply_constraints, apply_cursor
from docstore_util.records import QueryResponse, QueryResult, query_data, to_result

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class DocStoreUtil:
    """Convenience layer over a ``StorageEngine``.

    Reads return ``QueryResult`` items whose payload is either the raw
    document mapping or, when ``model`` is given, an instance of that
    pydantic model.
    """

    __slots__: ClassVar[tuple[str, str]] = ("_engine", "_params")

    _engine: StorageEngine
    _params: UtilParams

    def __init__(self, engine: StorageEngine, params: UtilParams | None = None) -> None:
        self._engine = engine
        self._params = params or UtilParams()

    @property
    def engine(self) -> StorageEngine:
        return self._engine

    @property
    def params(self) -> UtilParams:
        return self._params

    @staticmethod
    def query_data(item: Any) -> Any:
        """Remove an item's id and ref from a query result."""
        return query_data(item)

    @overload
    async def doc_query(
        self, path: str, *, model: None = None, ctx: ExecutionContext = DIRECT
    ) -> QueryResult[dict[str, Any]] | None: ...

    @overload
    async def doc_query(
        self, path: str, *, model: type[M], ctx: ExecutionContext = DIRECT
    ) -> QueryResult[M] | None: ...

    async def doc_query(
        self,
        path: str,
        *,
        model: type[BaseModel] | None = None,
        ctx: ExecutionContext = DIRECT,
    ) -> QueryResult[Any] | None:
        """Retrieve a single document, or None if it does not exist."""
        snapshot = await ctx.get(self._engine, path)
        if not snapshot.exists:
            logger.debug("Document not found", extra={"path": path})
            return None
        return to_result(snapshot, model)

    async def collection_query(
        self,
        path: str,
        constraints: Sequence[QueryConstraint] = (),
        cursor: QueryCursor | None = None,
        *,
        model: type[BaseModel] | None = None,
        ctx: ExecutionContext = DIRECT,
    ) -> list[QueryResult[Any]]:
        """Retrieve the documents of a collection matching ``constraints``.

        When ``cursor`` is given only the page it describes is returned.
        """
        q = apply_constraints(self._engine.query(path), constraints)
        if cursor is not None:
            q = await apply_cursor(self._engine, q, cursor, ctx)

        snapshots = await q.execute()
        logger.debug(
            "Collection query executed",
            extra={"path": path, "constraints": len(constraints), "results": len(snapshots)},
        )
        return [to_result(snapshot, model) for snapshot in snapshots]

    async def cursor_query(
        self,
        path: str,
        constraints: Sequence[QueryConstraint] = (),
        cursor: QueryCursor | None = None,
        *,
        model: type[BaseModel] | None = None,
        ctx: ExecutionContext = DIRECT,
    ) -> QueryResponse[Any]:
        """Fetch one page and return it with the advanced cursor.

        Without a cursor, pagination starts from the beginning using the
        configured default page size.
        """
        current = cursor or QueryCursor(page_size=self._params.default_page_size)
        data = await self.collection_query(path, constraints, current, model=model, ctx=ctx)
        next_cursor = current.advance(data)
        logger.debug(
            "Cursor advanced",
            extra={
                "path": path,
                "start_after": next_cursor.start_after,
                "has_next": next_cursor.has_next,
            },
        )
        return QueryResponse[Any](data=data, cursor=next_cursor)

    async def delete_doc(self, path: str, *, ctx: ExecutionContext = DIRECT) -> None:
        """Delete a single document."""
        await ctx.delete(self._engine, path)

    async def delete_collection(self, path: str, batch_size: int | None = None) -> bool:
        """Delete every document of a collection in batches.

        Returns True once the collection is empty.
        """
        return await delete_collection(
            self._engine,
            path,
            self._params.delete_batch_size if batch_size is None else batch_size,
            self._params.identity_field,
        )
