"""
Core API for the note repository.

NoteRepository keeps two independent stores consistent:
- RecordStore: the authoritative list of notes
- InvertedIndex: a derived full-text index for search

They share no transaction. Consistency comes from ordering alone: the
record store is always written before the index, on create and on delete.
The worst outcomes are therefore a stored note that is not yet searchable
(create reports PartialFailure) or a stale index entry for a deleted note
(delete returns False). Both are repaired by reindex(), reconcile() or
rebuild(), which regenerate index entries from the record store.

The store directory is assumed to be used by one process at a time.
There is no file locking; concurrent writers would need a lock around
each store-then-index sequence.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .config import StoreConfig, load_or_create_config
from .errors import NotFound, PartialFailure
from .protocol import RecordStoreProtocol, SearchIndexProtocol
from .types import ConsistencyReport, Note, SearchHit, new_note_id

logger = logging.getLogger(__name__)


class NoteRepository:
    """
    Personal note repository with full-text search.

    Example:
        with NoteRepository("~/.nnotes") as repo:
            note = repo.create("Groceries", "buy milk and eggs")
            hits = repo.search("milk")
    """

    def __init__(
        self,
        store_path: Optional[Union[str, Path]] = None,
        *,
        config: Optional[StoreConfig] = None,
        record_store: Optional[RecordStoreProtocol] = None,
        index: Optional[SearchIndexProtocol] = None,
    ) -> None:
        """
        Open an existing note store or create a new one.

        Args:
            store_path: Store directory. Uses NNOTES_STORE_PATH or ~/.nnotes
                if not specified.
            config: Pre-loaded StoreConfig (skips filesystem config discovery).
            record_store: Injected record store (skips backend creation).
            index: Injected search index (skips backend creation).

        Raises:
            IndexCorrupt: If the on-disk index cannot be opened
            StoreIOError: If auto-reconcile cannot read the notes
            ValueError: If the configuration is invalid
        """
        # --- Config resolution ---
        if config is not None:
            self._config = config
        else:
            resolved = Path(store_path).expanduser().resolve() if store_path is not None else None
            self._config = load_or_create_config(resolved)
        self._store_path = self._config.path

        # --- Persistent operations log ---
        from .logging_config import configure_ops_log
        self._ops_log_handler = configure_ops_log(self._store_path)

        # --- Storage backends (injected or factory-created) ---
        try:
            if record_store is not None and index is not None:
                self._records = record_store
                self._index = index
            else:
                from .backend import create_stores
                bundle = create_stores(self._config)
                self._records = record_store or bundle.record_store
                self._index = index or bundle.index

            if self._config.auto_reconcile:
                report = self.check()
                if not report.consistent:
                    self.reconcile()
        except Exception:
            self._close_ops_log()
            raise

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def store_path(self) -> Path:
        return self._store_path

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create(self, title: str, content: str) -> Note:
        """
        Create a note: write it to the record store, then index it.

        Raises:
            StoreIOError: The note could not be stored; the index was not
                touched.
            PartialFailure: The note was stored but could not be indexed.
                It is listed but not searchable until reindex(note_id) or
                rebuild().
        """
        existing = set(self._records_ids())
        note_id = new_note_id()
        while note_id in existing:
            note_id = new_note_id()
        note = Note(id=note_id, title=title, content=content)

        self._records.append(note)
        try:
            self._index.add(note)
        except Exception as e:
            logger.warning("Created %s but indexing failed: %s", note.id, e)
            raise PartialFailure(note.id, e) from e

        logger.info("Created note %s", note.id)
        return note

    def delete(self, id: str) -> bool:
        """
        Delete a note: remove it from the record store, then from the index.

        The index removal is best effort. If it fails the note stays deleted
        (the record store is authoritative) and the stale index entry is
        left for reconcile() or rebuild().

        Returns:
            True if both stores were updated, False if the note was deleted
            but its index entry could not be removed.

        Raises:
            NotFound: No note with this id; neither store was modified.
            StoreIOError: The record store could not be read or written.
        """
        if not self._records.remove(id):
            raise NotFound(id)
        try:
            self._index.delete(id)
        except Exception as e:
            logger.warning("Deleted %s but index removal failed: %s", id, e)
            return False
        logger.info("Deleted note %s", id)
        return True

    def reindex(self, id: str) -> Note:
        """
        Re-add a stored note to the index (e.g. after PartialFailure).

        Existing index entries for the id are removed first, so this never
        creates a duplicate.

        Raises:
            NotFound: The note is not in the record store.
        """
        note = self._records.get(id)
        if note is None:
            raise NotFound(id)
        self._index.delete(id)
        self._index.add(note)
        logger.info("Reindexed note %s", id)
        return note

    def rebuild(self) -> int:
        """
        Regenerate the whole index from the record store.

        Returns:
            Number of notes indexed
        """
        notes = self._records.load()
        self._index.clear()
        count = self._index.add_many(notes)
        logger.info("Rebuilt index: %d notes", count)
        return count

    def reconcile(self) -> ConsistencyReport:
        """
        Fix store/index divergence without a full rebuild.

        Notes missing from the index are added, orphaned entries removed and
        duplicated entries collapsed to one.

        Returns:
            The report describing what was repaired
        """
        report = self.check()
        if report.consistent:
            return report

        notes = {note.id: note for note in self._records.load()}
        for orphan_id in report.orphaned:
            self._index.delete(orphan_id)
        for dup_id in report.duplicated:
            self._index.delete(dup_id)
        to_add = [notes[i] for i in (*report.missing, *report.duplicated) if i in notes]
        self._index.add_many(to_add)

        logger.info(
            "Reconcile complete: %d indexed, %d orphans removed, %d duplicates collapsed",
            len(report.missing), len(report.orphaned), len(report.duplicated),
        )
        return report

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def list(self) -> list[Note]:
        """All notes in creation order. Reads the record store only."""
        return self._records.load()

    def get(self, id: str) -> Optional[Note]:
        return self._records.get(id)

    def search(self, query_text: str, limit: Optional[int] = None) -> list[SearchHit]:
        """
        Ranked full-text search. Reads the index only.

        A note that is stored but was never indexed does not appear.

        Args:
            query_text: Query (see nnotes.query for syntax)
            limit: Maximum results; defaults to the configured limit (10)
        """
        if limit is None:
            limit = self._config.search.limit
        return self._index.search(query_text, limit=limit)

    def check(self) -> ConsistencyReport:
        """Compare note ids in the record store with ids in the index."""
        store_ids = self._records_ids()
        index_ids = self._index.doc_ids()
        store_set = set(store_ids)
        index_set = set(index_ids)

        seen: set[str] = set()
        duplicated = []
        for doc_id in index_ids:
            if doc_id in seen and doc_id in store_set and doc_id not in duplicated:
                duplicated.append(doc_id)
            seen.add(doc_id)

        report = ConsistencyReport(
            missing=[i for i in store_ids if i not in index_set],
            orphaned=list(dict.fromkeys(i for i in index_ids if i not in store_set)),
            duplicated=duplicated,
        )
        if not report.consistent:
            logger.info(
                "Store inconsistency: %d missing from search index, %d orphaned, %d duplicated",
                len(report.missing), len(report.orphaned), len(report.duplicated),
            )
        return report

    def _records_ids(self) -> list[str]:
        return [note.id for note in self._records.load()]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _close_ops_log(self) -> None:
        handler = getattr(self, "_ops_log_handler", None)
        if handler is not None:
            from .logging_config import remove_ops_log
            remove_ops_log(handler)
            self._ops_log_handler = None

    def close(self) -> None:
        """Close both stores and detach the operations log."""
        for store in (getattr(self, "_index", None), getattr(self, "_records", None)):
            if store is not None:
                store.close()
        self._index = None
        self._records = None
        self._close_ops_log()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
