"""
Record store: the canonical list of notes as one JSON snapshot.

The record store is the source of truth for:
- Note identity
- Title and content
- Creation order

The search index is derived from it and can be rebuilt from it at any time.

Every mutation loads the full snapshot, changes it in memory and rewrites
the whole file atomically. That is O(total notes) per write, which is fine
for a personal note collection but does not scale to large stores.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from .errors import StoreIOError
from .storage import atomic_write_text, read_text_if_exists
from .types import Note

logger = logging.getLogger(__name__)


class RecordStore:
    """
    JSON-snapshot store for notes, ordered by insertion.

    A missing snapshot file is an empty store (first run). A snapshot that
    exists but cannot be read or parsed raises StoreIOError; it is never
    silently treated as empty, since the next save would destroy it.
    """

    def __init__(self, store_path: Path):
        """
        Args:
            store_path: Path to the snapshot file (e.g. notes.json)
        """
        self._path = Path(store_path)

    @property
    def path(self) -> Path:
        return self._path

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def load(self) -> list[Note]:
        """
        Load all notes in insertion order.

        Returns:
            List of notes, empty if no snapshot exists yet

        Raises:
            StoreIOError: If the snapshot is unreadable or malformed
        """
        try:
            text = read_text_if_exists(self._path)
        except (OSError, UnicodeDecodeError) as e:
            raise StoreIOError(f"Cannot read notes from {self._path}: {e}") from e
        if text is None:
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StoreIOError(f"Cannot parse notes in {self._path}: {e}") from e
        if not isinstance(data, list):
            raise StoreIOError(f"Notes file {self._path} does not contain a list")
        try:
            return [Note.from_dict(record) for record in data]
        except ValueError as e:
            raise StoreIOError(f"Malformed note in {self._path}: {e}") from e

    def get(self, id: str) -> Optional[Note]:
        """Get a note by id, or None."""
        for note in self.load():
            if note.id == id:
                return note
        return None

    def exists(self, id: str) -> bool:
        return self.get(id) is not None

    def list_ids(self) -> list[str]:
        return [note.id for note in self.load()]

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def save(self, notes: Iterable[Note]) -> None:
        """
        Overwrite the snapshot with ``notes``.

        Raises:
            StoreIOError: If the snapshot could not be written; the previous
                snapshot is still in place
        """
        payload = json.dumps([note.to_dict() for note in notes], ensure_ascii=False, indent=2)
        try:
            atomic_write_text(self._path, payload)
        except OSError as e:
            raise StoreIOError(f"Cannot write notes to {self._path}: {e}") from e

    def append(self, note: Note) -> None:
        """Add a note at the end (load, push, save)."""
        notes = self.load()
        notes.append(note)
        self.save(notes)
        logger.debug("Appended note %s (%d total)", note.id, len(notes))

    def remove(self, id: str) -> bool:
        """
        Remove a note by id.

        Returns:
            True if a note was removed. When nothing matches the snapshot
            is not rewritten.
        """
        notes = self.load()
        kept = [note for note in notes if note.id != id]
        if len(kept) == len(notes):
            return False
        self.save(kept)
        logger.debug("Removed note %s (%d remaining)", id, len(kept))
        return True

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Nothing is held open between operations."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
