"""
Whole-file blob storage primitives shared by the record store and the index.

Writes go to a temporary file in the target directory, are flushed to
disk, then renamed over the target. A crash at any point leaves either the
old file or the new file, never a truncated one.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional


def atomic_write_text(path: Path, text: str) -> None:
    """
    Replace the contents of ``path`` with ``text`` atomically.

    Raises:
        OSError: If the temporary file cannot be written or renamed. The
            original file is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)


def read_text_if_exists(path: Path) -> Optional[str]:
    """Return file contents, or None if the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
