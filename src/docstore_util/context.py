"""Execution contexts for single-document reads and deletes.

``Direct`` talks to the storage engine immediately. ``Transactional``
routes the same calls through a caller-owned transaction; the caller is
responsible for committing it.
"""

from dataclasses import dataclass

from docstore_util.protocols import Snapshot, StorageEngine, Transaction


@dataclass(frozen=True, slots=True)
class Direct:
    """Run operations directly against the engine."""

    async def get(self, engine: StorageEngine, path: str) -> Snapshot:
        return await engine.get_document(path)

    async def delete(self, engine: StorageEngine, path: str) -> None:
        await engine.delete_document(path)


@dataclass(frozen=True, slots=True)
class Transactional:
    """Run operations inside ``transaction``."""

    transaction: Transaction

    async def get(self, engine: StorageEngine, path: str) -> Snapshot:  # noqa: ARG002
        return await self.transaction.get(path)

    async def delete(self, engine: StorageEngine, path: str) -> None:  # noqa: ARG002
        self.transaction.delete(path)


type ExecutionContext = Direct | Transactional

DIRECT = Direct()
