"""Convenience layer over document databases."""

from docstore_util.constraints import (
    ComparisonOp,
    Direction,
    OrderByConstraint,
    QueryConstraint,
    WhereConstraint,
    order_by,
    where,
)
from docstore_util.context import DIRECT, Direct, ExecutionContext, Transactional
from docstore_util.cursor import QueryCursor, advance_cursor
from docstore_util.deletion import DeletionJob, delete_collection
from docstore_util.errors import DocStoreError, ErrorKind
from docstore_util.params import UtilParams
from docstore_util.protocols import (
    BatchHandle,
    Provider,
    QueryHandle,
    Snapshot,
    StorageEngine,
    Transaction,
)
from docstore_util.query import apply_constraints, apply_cursor
from docstore_util.records import (
    QueryRequest,
    QueryResponse,
    QueryResult,
    ResultMeta,
    query_data,
)
from docstore_util.util import DocStoreUtil

__all__ = [
    "DIRECT",
    "BatchHandle",
    "ComparisonOp",
    "DeletionJob",
    "Direct",
    "Direction",
    "DocStoreError",
    "DocStoreUtil",
    "ErrorKind",
    "ExecutionContext",
    "OrderByConstraint",
    "Provider",
    "QueryConstraint",
    "QueryCursor",
    "QueryHandle",
    "QueryRequest",
    "QueryResponse",
    "QueryResult",
    "ResultMeta",
    "Snapshot",
    "StorageEngine",
    "Transaction",
    "Transactional",
    "UtilParams",
    "WhereConstraint",
    "advance_cursor",
    "apply_constraints",
    "apply_cursor",
    "delete_collection",
    "order_by",
    "query_data",
    "where",
]
