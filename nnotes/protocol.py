"""
Protocol definitions for the repository's storage backends.

NoteRepository only talks to these interfaces, so a backend can replace
the JSON record store or the embedded index (for example with a database
or a full-text engine) without touching the orchestration code.

Implemented locally by:
- RecordStore (JSON snapshot)
- InvertedIndex (embedded BM25 index)
"""

from typing import Iterable, Optional, Protocol, runtime_checkable

from .types import Note, SearchHit


@runtime_checkable
class RecordStoreProtocol(Protocol):
    """
    Authoritative note storage.

    All errors are raised as StoreIOError.
    """

    def load(self) -> list[Note]: ...

    def save(self, notes: Iterable[Note]) -> None: ...

    def append(self, note: Note) -> None: ...

    def remove(self, id: str) -> bool: ...

    def get(self, id: str) -> Optional[Note]: ...

    def close(self) -> None: ...


@runtime_checkable
class SearchIndexProtocol(Protocol):
    """
    Derived full-text index over notes.

    Mutations are durable on return. ``add`` never upserts; ``delete`` is
    idempotent. Errors are raised as IndexCorrupt or CommitFailed.
    """

    def add(self, document: Note) -> None: ...

    def add_many(self, documents: Iterable[Note]) -> int: ...

    def delete(self, id: str) -> int: ...

    def clear(self) -> None: ...

    def doc_ids(self) -> list[str]: ...

    def search(self, query_text: str, limit: int = 10) -> list[SearchHit]: ...

    def close(self) -> None: ...
