"""
Error types and error logging for nnotes.

Every failure the repository can report derives from NoteStoreError and
names the stage that failed: the record store ("store") or the search
index ("index"). Unexpected exceptions are logged with their full stack
trace while the CLI shows a clean message.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

STAGE_STORE = "store"
STAGE_INDEX = "index"


class NoteStoreError(Exception):
    """Base class for failures surfaced by the note repository."""

    stage = STAGE_STORE


class StoreIOError(NoteStoreError):
    """The notes snapshot could not be read or written."""

    stage = STAGE_STORE


class NotFound(NoteStoreError, KeyError):
    """No note with the requested id exists in the record store."""

    stage = STAGE_STORE

    def __init__(self, note_id: str):
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class IndexCorrupt(NoteStoreError):
    """The on-disk index is unreadable or was written with another schema."""

    stage = STAGE_INDEX


class CommitFailed(NoteStoreError):
    """A durable index write did not complete; the index is unchanged."""

    stage = STAGE_INDEX


class PartialFailure(NoteStoreError):
    """
    The record store was updated but the index was not.

    The note is stored and listed but not searchable until it is
    reindexed (``NoteRepository.reindex``) or the index is rebuilt.
    """

    stage = STAGE_INDEX

    def __init__(self, note_id: str, cause: Optional[BaseException] = None):
        message = f"Note {note_id} was saved but could not be indexed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.note_id = note_id
        self.cause = cause


def _error_log_path(store_path: Optional[Path] = None) -> Path:
    """Resolve error log path: explicit store, then NNOTES_STORE_PATH, then ~/.nnotes."""
    if store_path is not None:
        return Path(store_path) / "nnotes-errors.log"
    store = os.environ.get("NNOTES_STORE_PATH")
    if store:
        return Path(store) / "nnotes-errors.log"
    return Path.home() / ".nnotes" / "nnotes-errors.log"


def log_exception(exc: Exception, context: str = "", store_path: Optional[Path] = None) -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)
        store_path: Store directory the log belongs in, if known

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(store_path)
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # never fail the command over the error log
    return log_path
