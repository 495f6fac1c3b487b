"""
nnotes

A personal note repository with full-text search, stored locally.

Quick Start:
    from nnotes import NoteRepository

    with NoteRepository() as repo:          # uses ~/.nnotes/
        repo.create("Groceries", "buy milk and eggs")
        for hit in repo.search("milk"):
            print(hit.note.title, hit.score)

CLI Usage:
    nnotes "Groceries" "buy milk and eggs"   # create
    nnotes -l                                # list
    nnotes milk                              # search
    nnotes -d <id>                           # delete

Default Store:
    ~/.nnotes/ (created automatically). Override with NNOTES_STORE_PATH or
    an explicit path argument.

Notes are kept in notes.json (the source of truth) and indexed in index/
(derived, rebuildable with `nnotes --rebuild`).
"""

from .api import NoteRepository
from .errors import (
    CommitFailed,
    IndexCorrupt,
    NoteStoreError,
    NotFound,
    PartialFailure,
    StoreIOError,
)
from .index import InvertedIndex
from .record_store import RecordStore
from .types import ConsistencyReport, Note, SearchHit

__version__ = "0.1.0"
__all__ = [
    "NoteRepository",
    "InvertedIndex",
    "RecordStore",
    "Note",
    "SearchHit",
    "ConsistencyReport",
    "NoteStoreError",
    "StoreIOError",
    "NotFound",
    "IndexCorrupt",
    "CommitFailed",
    "PartialFailure",
]
