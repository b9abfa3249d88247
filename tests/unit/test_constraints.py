"""Unit tests for constraint factories."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from docstore_util import (
    ComparisonOp,
    Direction,
    DocStoreError,
    ErrorKind,
    OrderByConstraint,
    WhereConstraint,
    order_by,
    where,
)


def test_where_builds_constraint():
    c = where("age", ">=", 21)

    assert isinstance(c, WhereConstraint)
    assert c.type == "where"
    assert c.field_path == "age"
    assert c.op is ComparisonOp.GTE
    assert c.value == 21


def test_where_accepts_enum_operator():
    c = where("tags", ComparisonOp.ARRAY_CONTAINS, "red")
    assert c.op == "array-contains"


def test_where_rejects_unknown_operator():
    with pytest.raises(DocStoreError) as exc_info:
        where("age", "~=", 1)
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT
    assert isinstance(exc_info.value.source, ValueError)


def test_order_by_rejects_unknown_direction():
    with pytest.raises(DocStoreError) as exc_info:
        order_by("created", "sideways")
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT


def test_order_by_defaults_to_ascending():
    c = order_by("created")

    assert isinstance(c, OrderByConstraint)
    assert c.type == "orderBy"
    assert c.direction is Direction.ASC


def test_order_by_descending():
    assert order_by("created", "desc").direction is Direction.DESC


def test_constraints_are_immutable():
    c = where("age", "==", 1)
    with pytest.raises(ValidationError):
        c.value = 2  # type: ignore[misc]
