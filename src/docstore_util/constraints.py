"""Query constraints used to filter and sort collection queries."""

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from docstore_util.errors import DocStoreError, ErrorKind


class ComparisonOp(StrEnum):
    """Comparison operators accepted by ``where``."""

    LT = "<"
    LTE = "<="
    EQ = "=="
    NE = "!="
    GTE = ">="
    GT = ">"
    ARRAY_CONTAINS = "array-contains"
    IN = "in"
    NOT_IN = "not-in"
    ARRAY_CONTAINS_ANY = "array-contains-any"


class Direction(StrEnum):
    """Sort direction for ``order_by``."""

    ASC = "asc"
    DESC = "desc"


class WhereConstraint(BaseModel, frozen=True):
    """Filter documents on a field comparison."""

    type: Literal["where"] = "where"

    field_path: str
    """Document field, dotted for nested fields."""

    op: ComparisonOp

    value: Any = None
    """Value to compare to."""


class OrderByConstraint(BaseModel, frozen=True):
    """Sort documents on a field."""

    type: Literal["orderBy"] = "orderBy"

    field_path: str
    direction: Direction = Direction.ASC


type QueryConstraint = Annotated[
    WhereConstraint | OrderByConstraint, Field(discriminator="type")
]


def where(field_path: str, op: ComparisonOp | str, value: Any) -> WhereConstraint:
    """Create a "where" constraint. Used as a filter.

    The operator is not checked against the field's type; an unsupported
    combination fails when the storage engine executes the query.
    """
    try:
        comparison = ComparisonOp(op)
    except ValueError as e:
        msg = f"Unknown comparison operator: {op!r}"
        raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT, source=e) from e
    return WhereConstraint(field_path=field_path, op=comparison, value=value)


def order_by(
    field_path: str, direction: Direction | str = Direction.ASC
) -> OrderByConstraint:
    """Create an "orderBy" constraint. Used to sort values."""
    try:
        sort_direction = Direction(direction)
    except ValueError as e:
        msg = f"Unknown sort direction: {direction!r}"
        raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT, source=e) from e
    return OrderByConstraint(field_path=field_path, direction=sort_direction)
