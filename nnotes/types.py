"""
Data types for nnotes.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any


def new_note_id() -> str:
    """Generate a fresh opaque note identifier (UUID4, canonical form)."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Note:
    """
    A single note.

    The id is generated once at creation and never changes. Notes are
    value objects: both stores persist copies, never shared instances.
    """
    id: str
    title: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "title": self.title, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        """Build a Note from a stored record. Raises ValueError on bad shape."""
        if not isinstance(data, dict):
            raise ValueError(f"Expected an object, got {type(data).__name__}")
        try:
            id, title, content = data["id"], data["title"], data["content"]
        except KeyError as e:
            raise ValueError(f"Missing field {e.args[0]!r}") from None
        for name, value in (("id", id), ("title", title), ("content", content)):
            if not isinstance(value, str):
                raise ValueError(f"Field {name!r} must be a string")
        return cls(id=id, title=title, content=content)


@dataclass(frozen=True)
class SearchHit:
    """One ranked search result: the stored note fields and their score."""
    note: Note
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {**self.note.to_dict(), "score": self.score}


@dataclass
class ConsistencyReport:
    """
    Differences between the record store and the search index.

    missing:    stored notes with no index entry (not searchable)
    orphaned:   index entries whose note is no longer stored
    duplicated: notes indexed more than once
    """
    missing: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)
    duplicated: list[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not (self.missing or self.orphaned or self.duplicated)

    def to_dict(self) -> dict[str, Any]:
        return {
            "consistent": self.consistent,
            "missing": list(self.missing),
            "orphaned": list(self.orphaned),
            "duplicated": list(self.duplicated),
        }
