"""Query composition: constraints and cursors applied to a query handle."""

import logging
from collections.abc import Sequence
from typing import TypeVar

from docstore_util.constraints import OrderByConstraint, QueryConstraint, WhereConstraint
from docstore_util.context import DIRECT, ExecutionContext
from docstore_util.cursor import QueryCursor
from docstore_util.errors import DocStoreError, ErrorKind
from docstore_util.protocols import QueryHandle, StorageEngine

logger = logging.getLogger(__name__)

Q = TypeVar("Q", bound=QueryHandle)


def apply_constraints(query: Q, constraints: Sequence[QueryConstraint]) -> Q:
    """Apply a list of query constraints to a query, in list order.

    Constraints are not reordered, deduplicated or checked for conflicts;
    the storage engine rejects invalid combinations when the query runs.
    """
    q = query
    for constraint in constraints:
        match constraint:
            case WhereConstraint(field_path=field_path, op=op, value=value):
                q = q.filter(field_path, op, value)
            case OrderByConstraint(field_path=field_path, direction=direction):
                q = q.sort(field_path, direction)
    return q


async def apply_cursor(
    engine: StorageEngine,
    query: Q,
    cursor: QueryCursor,
    ctx: ExecutionContext = DIRECT,
) -> Q:
    """Restrict a query to the page described by ``cursor``.

    Resolving ``start_after`` costs one extra document read. A cursor whose
    document has since been deleted raises a ``STALE_CURSOR`` error; the
    caller should restart pagination.
    """
    q = query

    if cursor.start_after:
        snapshot = await ctx.get(engine, cursor.start_after)
        if not snapshot.exists:
            msg = f"Cursor document '{cursor.start_after}' no longer exists"
            raise DocStoreError(msg, kind=ErrorKind.STALE_CURSOR)
        q = q.start_after(snapshot)

    logger.debug(
        "Cursor applied",
        extra={"start_after": cursor.start_after, "page_size": cursor.page_size},
    )
    return q.limit(cursor.page_size)
