"""
Embedded inverted index with BM25 ranking.

The index is derived data: it can always be regenerated from the record
store. It keeps, per term, the documents and fields that contain it with
their term frequency, plus a stored copy of every document's fields for
result materialization.

On-disk layout (one directory):
    meta.json       format name, format version and field schema
    segment.json    next document number, stored documents, postings

Every mutation is committed before the call returns. A commit rewrites
segment.json atomically; if it fails, both the file and the in-memory
state stay at the last committed version.
"""

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from .analyzers import DEFAULT_ANALYZER, TextAnalyzer
from .errors import CommitFailed, IndexCorrupt
from .query import Clause, Occur, parse_query
from .storage import atomic_write_text, read_text_if_exists
from .types import Note, SearchHit

logger = logging.getLogger(__name__)

INDEX_FORMAT = "nnotes-index"
INDEX_FORMAT_VERSION = 1
META_FILENAME = "meta.json"
SEGMENT_FILENAME = "segment.json"

# id: exact match, unique per note, stored
# title/content: analyzed into terms, stored
SCHEMA: dict[str, dict[str, Any]] = {
    "id": {"type": "string", "indexed": "exact", "stored": True},
    "title": {"type": "text", "indexed": "tokenized", "stored": True},
    "content": {"type": "text", "indexed": "tokenized", "stored": True},
}
TEXT_FIELDS = ("title", "content")

DEFAULT_LIMIT = 10

Document = Union[Note, Mapping]


@dataclass(frozen=True)
class ScoringParams:
    """BM25 parameters and per-field boosts."""
    k1: float = 1.2
    b: float = 0.75
    title_boost: float = 2.0

    def boost(self, field: str) -> float:
        return self.title_boost if field == "title" else 1.0


class InvertedIndex:
    """
    Term → postings index over notes, persisted under one directory.

    Each added document gets a new document number, so adding an id twice
    stores two documents (no upsert); ``delete`` removes both. Document
    numbers also give insertion order, which breaks score ties.

    Pass ``path=None`` for a memory-only index that never touches disk.
    """

    def __init__(
        self,
        path: Optional[Path],
        *,
        params: Optional[ScoringParams] = None,
        analyzer: Optional[TextAnalyzer] = None,
    ):
        """
        Args:
            path: Index directory (created if missing), or None
            params: Ranking parameters
            analyzer: Tokenizer shared by indexing and querying

        Raises:
            IndexCorrupt: If the directory holds data that cannot be parsed
                or was written with a different schema
        """
        self._path = Path(path) if path is not None else None
        self._params = params or ScoringParams()
        self._analyzer = analyzer or DEFAULT_ANALYZER
        self._reset()
        if self._path is not None:
            self._open()

    @classmethod
    def open_or_create(cls, location: Union[str, Path], **kwargs) -> "InvertedIndex":
        """Open the index at ``location``, creating an empty one if absent."""
        return cls(Path(location), **kwargs)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def _reset(self) -> None:
        self._next_doc = 0
        self._docs: dict[int, dict[str, str]] = {}
        self._lengths: dict[int, dict[str, int]] = {}
        self._postings: dict[str, dict[int, dict[str, int]]] = {}
        self._by_id: dict[str, list[int]] = {}

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _open(self) -> None:
        path = self._path
        if path.exists() and not path.is_dir():
            raise IndexCorrupt(f"Index location is not a directory: {path}")
        if path.is_dir() and any(path.iterdir()):
            self._check_meta()
            self._load_segment()
            logger.debug("Opened index at %s (%d documents)", path, len(self._docs))
            return
        try:
            path.mkdir(parents=True, exist_ok=True)
            atomic_write_text(path / META_FILENAME, json.dumps(self._meta(), indent=2))
        except OSError as e:
            raise CommitFailed(f"Could not create index at {path}: {e}") from e
        self._commit()
        logger.info("Created empty index at %s", path)

    @staticmethod
    def _meta() -> dict[str, Any]:
        return {
            "format": INDEX_FORMAT,
            "version": INDEX_FORMAT_VERSION,
            "schema": SCHEMA,
        }

    def _read_json(self, filename: str) -> Any:
        file_path = self._path / filename
        try:
            text = read_text_if_exists(file_path)
        except (OSError, UnicodeDecodeError) as e:
            raise IndexCorrupt(f"Cannot read {file_path}: {e}") from e
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise IndexCorrupt(f"Cannot parse {file_path}: {e}") from e

    def _check_meta(self) -> None:
        meta = self._read_json(META_FILENAME)
        if meta is None:
            raise IndexCorrupt(f"Not an nnotes index (no {META_FILENAME}): {self._path}")
        if not isinstance(meta, dict) or meta.get("format") != INDEX_FORMAT:
            raise IndexCorrupt(f"Not an nnotes index: {self._path}")
        if meta.get("version") != INDEX_FORMAT_VERSION:
            raise IndexCorrupt(
                f"Unsupported index format version {meta.get('version')!r} "
                f"(expected {INDEX_FORMAT_VERSION})"
            )
        if meta.get("schema") != SCHEMA:
            raise IndexCorrupt(f"Index schema mismatch at {self._path}")

    def _load_segment(self) -> None:
        """Replace in-memory state with the last committed segment."""
        data = self._read_json(SEGMENT_FILENAME)
        self._reset()
        if data is None:
            # meta.json written but first commit never happened
            return
        try:
            self._restore(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self._reset()
            raise IndexCorrupt(f"Malformed index segment at {self._path}: {e}") from e

    def _restore(self, data: dict[str, Any]) -> None:
        if not isinstance(data, dict):
            raise ValueError("segment must be a JSON object")
        next_doc = data["next_doc"]
        if not isinstance(next_doc, int):
            raise ValueError("next_doc must be an integer")
        if not isinstance(data["docs"], list) or not isinstance(data["postings"], dict):
            raise ValueError("docs must be a list and postings an object")

        for entry in data["docs"]:
            doc = entry["doc"]
            if not isinstance(doc, int) or doc >= next_doc or doc in self._docs:
                raise ValueError(f"bad document number {doc!r}")
            fields = {name: entry[name] for name in SCHEMA}
            if not all(isinstance(v, str) for v in fields.values()):
                raise ValueError(f"document {doc} has non-string fields")
            lengths = {name: int(entry["lengths"][name]) for name in TEXT_FIELDS}
            self._docs[doc] = fields
            self._lengths[doc] = lengths
            self._by_id.setdefault(fields["id"], []).append(doc)

        for term, rows in data["postings"].items():
            postings: dict[int, dict[str, int]] = {}
            for doc, field, freq in rows:
                if doc not in self._docs:
                    raise ValueError(f"posting for {term!r} references unknown document {doc}")
                if field not in TEXT_FIELDS or not isinstance(freq, int) or freq <= 0:
                    raise ValueError(f"bad posting for {term!r}: {[doc, field, freq]!r}")
                postings.setdefault(doc, {})[field] = freq
            if postings:
                self._postings[term] = postings

        self._next_doc = next_doc

    def _serialize(self) -> dict[str, Any]:
        return {
            "next_doc": self._next_doc,
            "docs": [
                {"doc": doc, **fields, "lengths": self._lengths[doc]}
                for doc, fields in self._docs.items()
            ],
            "postings": {
                term: [
                    [doc, field, freq]
                    for doc, by_field in postings.items()
                    for field, freq in by_field.items()
                ]
                for term, postings in self._postings.items()
            },
        }

    def _commit(self) -> None:
        """
        Durably write the current state, or roll back to the last commit.

        If the last commit can no longer be read back, the in-memory index
        is left empty and the CommitFailed message says so.
        """
        if self._path is None:
            return
        payload = json.dumps(self._serialize(), ensure_ascii=False)
        try:
            atomic_write_text(self._path / SEGMENT_FILENAME, payload)
        except OSError as e:
            logger.warning("Index commit failed at %s: %s", self._path, e)
            try:
                self._load_segment()
            except IndexCorrupt as rollback_error:
                self._reset()
                logger.warning("Index rollback failed at %s: %s", self._path, rollback_error)
                raise CommitFailed(
                    f"Index commit failed: {e}; rollback also failed: {rollback_error}"
                ) from e
            raise CommitFailed(f"Index commit failed: {e}") from e
        logger.debug("Committed index: %d documents, %d terms", len(self._docs), len(self._postings))

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def add(self, document: Document) -> None:
        """
        Index one document and commit.

        Args:
            document: A Note, or a mapping with string id/title/content

        Raises:
            ValueError: If the document is missing a field
            CommitFailed: If the commit did not complete (nothing was added)
        """
        self.add_many([document])

    def add_many(self, documents: Iterable[Document]) -> int:
        """Index several documents with a single commit. Returns the count."""
        fields_list = [self._coerce(d) for d in documents]
        if not fields_list:
            return 0
        for fields in fields_list:
            self._insert(fields)
        self._commit()
        return len(fields_list)

    def delete(self, id: str) -> int:
        """
        Remove every document with this id, with its postings, and commit.

        Deleting an absent id is a successful no-op.

        Returns:
            Number of documents removed (more than 1 for duplicate adds)
        """
        docs = self._by_id.pop(id, [])
        if not docs:
            return 0
        for doc in docs:
            self._remove(doc)
        self._commit()
        return len(docs)

    def clear(self) -> None:
        """Remove all documents and commit."""
        self._reset()
        self._commit()

    @staticmethod
    def _coerce(document: Document) -> dict[str, str]:
        if isinstance(document, Note):
            return document.to_dict()
        if not isinstance(document, Mapping):
            raise ValueError(f"Cannot index {type(document).__name__}")
        fields = {}
        for name in SCHEMA:
            value = document.get(name)
            if not isinstance(value, str):
                raise ValueError(f"Document field {name!r} must be a string")
            fields[name] = value
        return fields

    def _insert(self, fields: dict[str, str]) -> None:
        doc = self._next_doc
        self._next_doc += 1
        self._docs[doc] = fields
        self._by_id.setdefault(fields["id"], []).append(doc)
        lengths = {}
        for field in TEXT_FIELDS:
            terms = self._analyzer.tokenize(fields[field])
            lengths[field] = len(terms)
            for term in terms:
                by_field = self._postings.setdefault(term, {}).setdefault(doc, {})
                by_field[field] = by_field.get(field, 0) + 1
        self._lengths[doc] = lengths

    def _remove(self, doc: int) -> None:
        fields = self._docs.pop(doc)
        self._lengths.pop(doc, None)
        terms = set()
        for field in TEXT_FIELDS:
            terms.update(self._analyzer.tokenize(fields[field]))
        for term in terms:
            postings = self._postings.get(term)
            if postings is None:
                continue
            postings.pop(doc, None)
            if not postings:
                del self._postings[term]

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._docs)

    def doc_ids(self) -> list[str]:
        """Ids of all stored documents in insertion order (duplicates included)."""
        return [fields["id"] for fields in self._docs.values()]

    def doc_freq(self, term: str) -> int:
        """Number of documents containing ``term`` in any field."""
        return len(self._postings.get(term, ()))

    def search(self, query_text: str, limit: int = DEFAULT_LIMIT) -> list[SearchHit]:
        """
        Ranked search over title and content.

        Clauses are OR-combined unless marked required (+) or excluded (-).
        Documents are ranked by BM25 score, highest first; equal scores keep
        insertion order.

        Returns:
            Up to ``limit`` hits; empty if nothing matches
        """
        if limit <= 0 or not self._docs:
            return []
        query = parse_query(query_text, TEXT_FIELDS, self._analyzer.tokenize)
        positive = query.positive
        if not positive:
            return []

        averages = self._average_lengths()
        scores: dict[int, float] = {}
        candidates: Optional[set[int]] = None
        for clause in positive:
            clause_scores = self._score_clause(clause, averages)
            for doc, score in clause_scores.items():
                scores[doc] = scores.get(doc, 0.0) + score
            if clause.occur is Occur.MUST:
                matched = set(clause_scores)
                candidates = matched if candidates is None else candidates & matched
        if candidates is None:
            candidates = set(scores)
        for clause in query.excluded:
            candidates -= set(self._score_clause(clause, averages))

        ranked = sorted(candidates, key=lambda doc: (-scores[doc], doc))
        return [
            SearchHit(note=Note(**self._docs[doc]), score=scores[doc])
            for doc in ranked[:limit]
        ]

    def _average_lengths(self) -> dict[str, float]:
        n = len(self._docs)
        averages = {}
        for field in TEXT_FIELDS:
            total = sum(lengths[field] for lengths in self._lengths.values())
            averages[field] = (total / n) if n and total else 1.0
        return averages

    def _idf(self, term: str) -> float:
        n = len(self._docs)
        df = self.doc_freq(term)
        return math.log(1.0 + (n - df + 0.5) / (df + 0.5))

    def _tf_norm(self, tf: int, length: int, average: float) -> float:
        k1, b = self._params.k1, self._params.b
        return tf * (k1 + 1) / (tf + k1 * (1 - b + b * length / average))

    def _score_clause(self, clause: Clause, averages: dict[str, float]) -> dict[int, float]:
        """Score every document matching the clause; non-matches are absent."""
        if clause.is_phrase:
            return self._score_phrase(clause, averages)
        term = clause.terms[0]
        postings = self._postings.get(term)
        if not postings:
            return {}
        idf = self._idf(term)
        scores = {}
        for doc, by_field in postings.items():
            score = 0.0
            for field in clause.fields:
                tf = by_field.get(field)
                if tf:
                    score += self._params.boost(field) * idf * self._tf_norm(
                        tf, self._lengths[doc][field], averages[field]
                    )
            if score > 0:
                scores[doc] = score
        return scores

    def _score_phrase(self, clause: Clause, averages: dict[str, float]) -> dict[int, float]:
        # Postings narrow the candidates; positions come from re-analyzing
        # the stored field text.
        postings = [self._postings.get(term) for term in clause.terms]
        if not all(postings):
            return {}
        docs = set(postings[0])
        for p in postings[1:]:
            docs &= set(p)
        idf = sum(self._idf(term) for term in set(clause.terms))
        scores = {}
        for doc in docs:
            score = 0.0
            for field in clause.fields:
                if not all(field in p[doc] for p in postings):
                    continue
                count = _count_phrase(self._analyzer.tokenize(self._docs[doc][field]), clause.terms)
                if count:
                    score += self._params.boost(field) * idf * self._tf_norm(
                        count, self._lengths[doc][field], averages[field]
                    )
            if score > 0:
                scores[doc] = score
        return scores

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Nothing is held open between commits; kept for the store protocol."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _count_phrase(tokens: list[str], phrase: tuple[str, ...]) -> int:
    """Count occurrences of ``phrase`` as a consecutive run in ``tokens``."""
    n = len(phrase)
    return sum(
        1 for i in range(len(tokens) - n + 1)
        if tuple(tokens[i:i + n]) == phrase
    )
