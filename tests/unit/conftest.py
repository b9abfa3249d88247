"""Shared fixtures for unit tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from docstore_util import DocStoreUtil
from docstore_util.providers.memory import MemoryProvider


@pytest.fixture
def engine() -> MemoryProvider:
    return MemoryProvider()


@pytest.fixture
def util(engine: MemoryProvider) -> DocStoreUtil:
    return DocStoreUtil(engine)


@pytest.fixture
def seed(engine: MemoryProvider) -> Callable[[str, int], list[str]]:
    """Fill a collection with documents named item-000, item-001, ..."""

    def _seed(path: str, count: int) -> list[str]:
        refs = []
        for i in range(count):
            ref = f"{path}/item-{i:03d}"
            engine.documents[ref] = {"n": i, "name": f"item {i}", "even": i % 2 == 0}
            refs.append(ref)
        return refs

    return _seed
