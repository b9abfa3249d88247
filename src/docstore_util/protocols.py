"""Core protocols for the storage engine collaborator."""

from typing import Any, Protocol, Self, TypeVar, runtime_checkable

from docstore_util.constraints import ComparisonOp, Direction

Cred_contra = TypeVar("Cred_contra", contravariant=True)
Params_contra = TypeVar("Params_contra", contravariant=True)


@runtime_checkable
class Snapshot(Protocol):
    """A point-in-time read of a single document."""

    @property
    def id(self) -> str:
        """Last path segment of the document."""
        ...

    @property
    def ref(self) -> str:
        """Fully-qualified document path (e.g. ``users/abc/posts/xyz``)."""
        ...

    @property
    def exists(self) -> bool: ...

    def to_dict(self) -> dict[str, Any] | None:
        """Return the document fields, or None if the document does not exist."""
        ...


@runtime_checkable
class QueryHandle(Protocol):
    """Chainable, immutable query over one collection.

    Every refining method returns a new handle and leaves the receiver untouched.
    """

    def filter(self, field_path: str, op: ComparisonOp, value: Any) -> Self: ...

    def sort(self, field_path: str, direction: Direction) -> Self: ...

    def start_after(self, snapshot: Snapshot) -> Self: ...

    def limit(self, count: int) -> Self: ...

    async def execute(self) -> list[Snapshot]:
        """Run the query and return matching snapshots in query order."""
        ...


@runtime_checkable
class BatchHandle(Protocol):
    """A set of deletes committed atomically."""

    def delete(self, ref: str) -> None: ...

    async def commit(self) -> None: ...


@runtime_checkable
class Transaction(Protocol):
    """Transaction handle supplied by the caller.

    Reads go through the transaction; deletes are buffered until the
    caller commits it.
    """

    async def get(self, path: str) -> Snapshot: ...

    def delete(self, path: str) -> None: ...


@runtime_checkable
class StorageEngine(Protocol):
    """Primitives the utility layer needs from a document database."""

    async def get_document(self, path: str) -> Snapshot:
        """Read a single document. Missing documents yield ``exists=False``."""
        ...

    async def delete_document(self, path: str) -> None: ...

    def query(self, collection_path: str) -> QueryHandle: ...

    def batch(self) -> BatchHandle: ...


@runtime_checkable
class Provider(Protocol[Cred_contra, Params_contra]):
    """Protocol for provider lifecycle management."""

    @classmethod
    async def connect(cls, credentials: Cred_contra, params: Params_contra) -> Self:
        """Establish connection to the external service."""
        ...

    async def disconnect(self) -> None:
        """Release resources and close connections."""
        ...
