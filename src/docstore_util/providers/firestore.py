"""Cloud Firestore provider using google-cloud-firestore's async client."""

import inspect
from typing import TYPE_CHECKING, Any, ClassVar, Self

from pydantic import BaseModel

from docstore_util.constraints import ComparisonOp, Direction
from docstore_util.errors import DocStoreError, ErrorKind
from docstore_util.params import BatchWriteParams
from docstore_util.protocols import Snapshot

if TYPE_CHECKING:
    from google.cloud.firestore_v1 import (
        AsyncClient,
        AsyncQuery,
        AsyncTransaction,
        AsyncWriteBatch,
        DocumentSnapshot,
    )

try:
    from google.api_core.exceptions import (
        FailedPrecondition,
        GoogleAPICallError,
        InvalidArgument,
    )
    from google.cloud.firestore_v1 import AsyncClient
    from google.cloud.firestore_v1.base_query import FieldFilter
    from google.oauth2 import service_account
except ImportError as e:
    _msg = (
        "google-cloud-firestore is required for Firestore support. "
        "Install with: pip install 'docstore-util[firestore]'"
    )
    raise ImportError(_msg) from e

_OPS: dict[ComparisonOp, str] = {
    ComparisonOp.LT: "<",
    ComparisonOp.LTE: "<=",
    ComparisonOp.EQ: "==",
    ComparisonOp.NE: "!=",
    ComparisonOp.GTE: ">=",
    ComparisonOp.GT: ">",
    ComparisonOp.ARRAY_CONTAINS: "array_contains",
    ComparisonOp.IN: "in",
    ComparisonOp.NOT_IN: "not-in",
    ComparisonOp.ARRAY_CONTAINS_ANY: "array_contains_any",
}

_DIRECTIONS: dict[Direction, str] = {
    Direction.ASC: "ASCENDING",
    Direction.DESC: "DESCENDING",
}


def _wrap_error(action: str, e: Exception) -> DocStoreError:
    msg = f"Failed to {action}: {e}"
    if isinstance(e, InvalidArgument | FailedPrecondition):
        return DocStoreError(msg, kind=ErrorKind.CONSTRAINT_CONFLICT, source=e)
    if isinstance(e, ValueError | TypeError):
        return DocStoreError(msg, kind=ErrorKind.INVALID_INPUT, source=e)
    return DocStoreError(msg, source=e)


class FirestoreCredentials(BaseModel, frozen=True):
    """Credentials for a Firestore connection.

    Without ``credentials_path`` the client falls back to Application
    Default Credentials (or the emulator when FIRESTORE_EMULATOR_HOST is set).
    """

    project: str | None = None
    """Google Cloud project id."""

    credentials_path: str | None = None
    """Path to a service account JSON key file."""

    database: str | None = None
    """Database id; None selects the "(default)" database."""


class FirestoreParams(BatchWriteParams, frozen=True):
    """Parameters for Firestore operations.

    Inherits `max_batch_writes` from BatchWriteParams.
    """


class FirestoreSnapshot:
    """Adapter exposing a Firestore ``DocumentSnapshot`` as a ``Snapshot``."""

    __slots__: ClassVar[tuple[str]] = ("_native",)

    def __init__(self, native: "DocumentSnapshot") -> None:
        self._native = native

    @property
    def native(self) -> "DocumentSnapshot":
        return self._native

    @property
    def id(self) -> str:
        return self._native.id

    @property
    def ref(self) -> str:
        return self._native.reference.path

    @property
    def exists(self) -> bool:
        return self._native.exists

    def to_dict(self) -> dict[str, Any] | None:
        return self._native.to_dict()


class FirestoreQuery:
    """Adapter over a Firestore ``AsyncQuery`` or collection reference."""

    __slots__: ClassVar[tuple[str]] = ("_native",)

    def __init__(self, native: "AsyncQuery") -> None:
        self._native = native

    @property
    def native(self) -> "AsyncQuery":
        return self._native

    def filter(self, field_path: str, op: ComparisonOp, value: Any) -> Self:
        try:
            native = self._native.where(
                filter=FieldFilter(field_path, _OPS[ComparisonOp(op)], value)
            )
        except ValueError as e:
            raise _wrap_error("build filter", e) from e
        return type(self)(native)

    def sort(self, field_path: str, direction: Direction) -> Self:
        try:
            native = self._native.order_by(
                field_path, direction=_DIRECTIONS[Direction(direction)]
            )
        except ValueError as e:
            raise _wrap_error("build sort", e) from e
        return type(self)(native)

    def start_after(self, snapshot: Snapshot) -> Self:
        if not isinstance(snapshot, FirestoreSnapshot):
            msg = f"Expected a Firestore snapshot, got {type(snapshot).__name__}"
            raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
        return type(self)(self._native.start_after(snapshot.native))

    def limit(self, count: int) -> Self:
        return type(self)(self._native.limit(count))

    async def execute(self) -> list[Snapshot]:
        try:
            snapshots = await self._native.get()
        except (GoogleAPICallError, ValueError) as e:
            raise _wrap_error("execute query", e) from e
        return [FirestoreSnapshot(s) for s in snapshots]


class FirestoreBatch:
    """Adapter over a Firestore ``AsyncWriteBatch``."""

    __slots__: ClassVar[tuple[str, ...]] = ("_client", "_count", "_limit", "_native")

    def __init__(
        self, client: "AsyncClient", native: "AsyncWriteBatch", limit: int
    ) -> None:
        self._client = client
        self._native = native
        self._limit = limit
        self._count = 0

    def delete(self, ref: str) -> None:
        try:
            self._native.delete(self._client.document(ref))
        except ValueError as e:
            raise _wrap_error(f"delete '{ref}' in batch", e) from e
        self._count += 1

    async def commit(self) -> None:
        if self._count > self._limit:
            msg = f"Batch of {self._count} writes exceeds the limit of {self._limit}"
            raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)
        try:
            _ = await self._native.commit()
        except (GoogleAPICallError, ValueError) as e:
            raise _wrap_error("commit batch", e) from e


class FirestoreTransaction:
    """Adapter over a caller-owned Firestore ``AsyncTransaction``.

    The caller runs and commits the transaction, typically via
    ``google.cloud.firestore.async_transactional``.
    """

    __slots__: ClassVar[tuple[str, str]] = ("_client", "_native")

    def __init__(self, client: "AsyncClient", native: "AsyncTransaction") -> None:
        self._client = client
        self._native = native

    async def get(self, path: str) -> Snapshot:
        try:
            snapshot = await self._client.document(path).get(transaction=self._native)
        except (GoogleAPICallError, ValueError) as e:
            raise _wrap_error(f"get '{path}' in transaction", e) from e
        return FirestoreSnapshot(snapshot)

    def delete(self, path: str) -> None:
        try:
            self._native.delete(self._client.document(path))
        except ValueError as e:
            raise _wrap_error(f"delete '{path}' in transaction", e) from e


class FirestoreProvider:
    """Firestore provider for document operations.

    Implements Provider[FirestoreCredentials, FirestoreParams] and
    StorageEngine.
    """

    __slots__: ClassVar[tuple[str, str]] = ("_client", "_params")

    _client: "AsyncClient"
    _params: FirestoreParams

    def __init__(self, client: "AsyncClient", params: FirestoreParams) -> None:
        self._client = client
        self._params = params

    @property
    def client(self) -> "AsyncClient":
        return self._client

    @classmethod
    async def connect(
        cls, credentials: FirestoreCredentials, params: FirestoreParams
    ) -> Self:
        """Create the async Firestore client."""
        try:
            google_credentials = (
                service_account.Credentials.from_service_account_file(
                    credentials.credentials_path
                )
                if credentials.credentials_path
                else None
            )
            client = AsyncClient(
                project=credentials.project,
                credentials=google_credentials,
                database=credentials.database,
            )
        except Exception as e:
            msg = f"Failed to connect to Firestore: {e}"
            raise DocStoreError(msg, kind=ErrorKind.CONNECTION, source=e) from e

        return cls(client, params)

    async def disconnect(self) -> None:
        """Close the Firestore client."""
        result = self._client.close()
        if inspect.isawaitable(result):
            await result

    async def get_document(self, path: str) -> Snapshot:
        try:
            snapshot = await self._client.document(path).get()
        except (GoogleAPICallError, ValueError) as e:
            raise _wrap_error(f"get '{path}'", e) from e
        return FirestoreSnapshot(snapshot)

    async def delete_document(self, path: str) -> None:
        try:
            _ = await self._client.document(path).delete()
        except (GoogleAPICallError, ValueError) as e:
            raise _wrap_error(f"delete '{path}'", e) from e

    def query(self, collection_path: str) -> FirestoreQuery:
        return FirestoreQuery(self._client.collection(collection_path))

    def batch(self) -> FirestoreBatch:
        return FirestoreBatch(
            self._client, self._client.batch(), self._params.max_batch_writes
        )

    def transaction(self, native: "AsyncTransaction") -> FirestoreTransaction:
        """Wrap a native transaction for use with ``Transactional``."""
        return FirestoreTransaction(self._client, native)


Provider = FirestoreProvider
