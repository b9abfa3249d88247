"""Error types for document store operations."""

from enum import StrEnum
from typing import final


class ErrorKind(StrEnum):
    """Classification of document store errors."""

    CONNECTION = "connection"
    """The engine could not be reached or the client could not be created."""

    NOT_FOUND = "not_found"
    """A required document is missing. Single-document reads return None instead."""

    STALE_CURSOR = "stale_cursor"
    """A cursor points at a document that no longer exists. Restart pagination."""

    CONSTRAINT_CONFLICT = "constraint_conflict"
    """The engine rejected the combination of filters and sorts."""

    INVALID_INPUT = "invalid_input"

    PROVIDER = "provider"
    """Any other failure reported by the engine."""


@final
class DocStoreError(Exception):
    """Error raised by every document store operation.

    Backend exceptions are kept in ``source`` and chained as ``__cause__``.
    """

    __slots__ = ("kind", "message", "source")

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.PROVIDER,
        source: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.source = source

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"

    def __repr__(self) -> str:
        return f"DocStoreError({self.message!r}, kind={self.kind!r})"
