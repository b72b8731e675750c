"""Shared test fixtures."""

from __future__ import annotations

import pytest

from s3kv._store import Store
from s3kv.backends._memory import MemoryObjectStore

BUCKET = "test-bucket"


@pytest.fixture
def object_store() -> MemoryObjectStore:
    return MemoryObjectStore(buckets=[BUCKET])


@pytest.fixture
def store(object_store: MemoryObjectStore) -> Store:
    return Store(object_store, BUCKET)
