"""Pagination cursor state.

A cursor only tracks *where* the next page starts and *how much* to read.
It is never mutated; advancing produces a new cursor.
"""

from collections.abc import Sequence
from typing import Protocol

from pydantic import BaseModel, Field

DEFAULT_PAGE_SIZE = 10


class _HasRef(Protocol):
    @property
    def ref(self) -> str: ...


class QueryCursor(BaseModel, frozen=True):
    """Cursor used for pagination."""

    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    """Maximum number of documents per page."""

    has_next: bool = True
    """Whether another page is likely. A full page is taken to mean more data."""

    start_after: str | None = None
    """Path of the last document of the previous page."""

    def advance(self, page: Sequence[_HasRef]) -> "QueryCursor":
        """Return the cursor positioned after ``page``.

        An empty page keeps the previous position and ends pagination.
        When the collection size is an exact multiple of ``page_size`` the
        last full page still reports ``has_next``; the following call
        returns an empty page and clears it.
        """
        if not page:
            return self.model_copy(update={"has_next": False})
        return self.model_copy(
            update={
                "start_after": page[-1].ref,
                "has_next": len(page) == self.page_size,
            }
        )


def advance_cursor(previous: QueryCursor, page: Sequence[_HasRef]) -> QueryCursor:
    return previous.advance(page)
