"""Batched deletion of whole collections.

Document stores generally cannot drop a collection in one call, so the
collection is emptied in rounds: read up to ``batch_size`` documents ordered
by path, delete them in one atomic batch, repeat until a read comes back
empty. Each round re-queries from the start; the previous round's deletes
have removed the head of the ordering, so no cursor is needed.

Every round runs as its own ``asyncio`` task. A collection that takes
thousands of rounds therefore never grows the call stack.
"""

import asyncio
import logging
from typing import ClassVar

from docstore_util.constraints import Direction
from docstore_util.errors import DocStoreError, ErrorKind
from docstore_util.params import IDENTITY_FIELD
from docstore_util.protocols import QueryHandle, StorageEngine

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 300


class DeletionJob:
    """One ``delete_collection`` run.

    Rounds are strictly sequential: the next round is scheduled only after
    the current batch commit has resolved. The first failure rejects
    ``done`` and no further rounds are scheduled. Batches committed before
    the failure stay deleted.
    """

    __slots__: ClassVar[tuple[str, ...]] = (
        "_deleted",
        "_done",
        "_engine",
        "_path",
        "_query",
        "_rounds",
        "_task",
    )

    def __init__(self, engine: StorageEngine, path: str, query: QueryHandle) -> None:
        self._engine = engine
        self._path = path
        self._query = query
        self._done: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._task: asyncio.Task[None] | None = None
        self._rounds = 0
        self._deleted = 0

    @property
    def rounds(self) -> int:
        """Number of queries executed so far, including the final empty one."""
        return self._rounds

    @property
    def deleted(self) -> int:
        return self._deleted

    def start(self) -> asyncio.Future[bool]:
        """Schedule the first round and return the completion future."""
        self._schedule()
        return self._done

    @property
    def task(self) -> asyncio.Task[None] | None:
        """Task running the current round."""
        return self._task

    def _schedule(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._round())
        self._task.add_done_callback(self._round_done)

    def _round_done(self, task: asyncio.Task[None]) -> None:
        # A round cancelled from outside must not leave the caller waiting.
        if task.cancelled():
            if not self._done.done():
                self._done.cancel()
            return
        exc = task.exception()
        if exc is not None:
            self._finish(exc)

    def _finish(self, result: bool | BaseException) -> None:
        # The caller may have cancelled the future while a round was in flight.
        if self._done.done():
            return
        if isinstance(result, BaseException):
            self._done.set_exception(result)
        else:
            self._done.set_result(result)

    async def _round(self) -> None:
        if self._done.done():
            return

        try:
            snapshots = await self._query.execute()
            self._rounds += 1

            if not snapshots:
                logger.debug(
                    "Collection emptied",
                    extra={"path": self._path, "rounds": self._rounds, "deleted": self._deleted},
                )
                self._finish(True)
                return

            batch = self._engine.batch()
            for snapshot in snapshots:
                batch.delete(snapshot.ref)
            await batch.commit()
        except Exception as e:
            logger.debug(
                "Deletion round failed",
                extra={"path": self._path, "round": self._rounds, "error": str(e)},
            )
            self._finish(e)
            return

        self._deleted += len(snapshots)
        logger.debug(
            "Deleted batch",
            extra={"path": self._path, "round": self._rounds, "count": len(snapshots)},
        )
        self._schedule()


async def delete_collection(
    engine: StorageEngine,
    path: str,
    batch_size: int = DEFAULT_BATCH_SIZE,
    identity_field: str = IDENTITY_FIELD,
) -> bool:
    """Delete every document in the collection at ``path``.

    ``batch_size`` must not exceed the engine's batch write limit (500 for
    Firestore); larger values fail when the first batch is committed.

    Returns True once the collection is empty.
    """
    if batch_size < 1:
        msg = f"batch_size must be at least 1, got {batch_size}"
        raise DocStoreError(msg, kind=ErrorKind.INVALID_INPUT)

    query = engine.query(path).sort(identity_field, Direction.ASC).limit(batch_size)
    return await DeletionJob(engine, path, query).start()
