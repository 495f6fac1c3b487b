"""
Shared pytest fixtures for nnotes tests.

Provides store fixtures on temporary directories and wrapper stores that
fail on demand, for exercising the store-then-index protocol.
"""

from pathlib import Path

import pytest

from nnotes.api import NoteRepository
from nnotes.backend import create_stores
from nnotes.config import load_or_create_config
from nnotes.errors import CommitFailed, StoreIOError


class FailingIndex:
    """Index wrapper that raises on add/delete when asked to."""

    def __init__(self, real_index):
        self._real = real_index
        self.fail_add = False
        self.fail_delete = False
        self.add_calls = 0
        self.delete_calls = 0

    def __getattr__(self, name):
        return getattr(self._real, name)

    def add(self, document):
        self.add_calls += 1
        if self.fail_add:
            raise CommitFailed("simulated index failure")
        return self._real.add(document)

    def delete(self, id):
        self.delete_calls += 1
        if self.fail_delete:
            raise CommitFailed("simulated index failure")
        return self._real.delete(id)


class FailingRecordStore:
    """Record store wrapper that raises on writes when asked to."""

    def __init__(self, real_store):
        self._real = real_store
        self.fail_write = False

    def __getattr__(self, name):
        return getattr(self._real, name)

    def append(self, note):
        if self.fail_write:
            raise StoreIOError("simulated disk full")
        return self._real.append(note)

    def remove(self, id):
        if self.fail_write:
            raise StoreIOError("simulated disk full")
        return self._real.remove(id)


@pytest.fixture
def store_path(tmp_path) -> Path:
    """Store directory (not created until a repository opens it)."""
    return tmp_path / "store"


@pytest.fixture
def repo(store_path):
    """A NoteRepository on a fresh store."""
    r = NoteRepository(store_path)
    yield r
    r.close()


@pytest.fixture
def failing_repo(store_path):
    """A NoteRepository whose stores can be told to fail.

    Yields (repo, failing_record_store, failing_index).
    """
    config = load_or_create_config(store_path)
    bundle = create_stores(config)
    records = FailingRecordStore(bundle.record_store)
    index = FailingIndex(bundle.index)
    r = NoteRepository(config=config, record_store=records, index=index)
    yield r, records, index
    r.close()
