"""
Tests for NoteRepository: create, list, delete, search and the
consistency tools (check, reconcile, rebuild, reindex).
"""

import pytest

from nnotes.api import NoteRepository
from nnotes.config import StoreConfig, save_config
from nnotes.errors import NotFound
from nnotes.index import SEGMENT_FILENAME
from nnotes.types import Note


def _snapshot_bytes(store_path):
    """Bytes of both on-disk stores, for before/after comparison."""
    notes = store_path / "notes.json"
    segment = store_path / "index" / SEGMENT_FILENAME
    return (
        notes.read_bytes() if notes.exists() else None,
        segment.read_bytes() if segment.exists() else None,
    )


class TestCreateAndList:

    def test_round_trip(self, repo):
        note = repo.create("A", "hello world")
        notes = repo.list()
        assert len(notes) == 1
        assert notes[0] == Note(id=note.id, title="A", content="hello world")

    def test_ids_are_fresh(self, repo):
        ids = {repo.create(f"Note {i}", "text").id for i in range(20)}
        assert len(ids) == 20

    def test_list_in_creation_order(self, repo):
        created = [repo.create(title, "x") for title in ("first", "second", "third")]
        assert [n.id for n in repo.list()] == [n.id for n in created]

    def test_list_empty_store(self, repo):
        assert repo.list() == []

    def test_get(self, repo):
        note = repo.create("A", "hello")
        assert repo.get(note.id) == note
        assert repo.get("missing") is None

    def test_layout_on_disk(self, repo, store_path):
        repo.create("A", "hello")
        assert (store_path / "notes.json").exists()
        assert (store_path / "index").is_dir()
        assert (store_path / "nnotes.toml").exists()
        assert (store_path / "nnotes-ops.log").exists()


class TestSearch:

    def test_recall(self, repo):
        note = repo.create("Groceries", "buy milk and eggs")
        hits = repo.search("milk")
        assert [h.note.id for h in hits] == [note.id]
        assert hits[0].note.title == "Groceries"
        assert repo.search("nonexistent-term") == []

    def test_title_is_searchable(self, repo):
        note = repo.create("Groceries", "buy milk")
        assert [h.note.id for h in repo.search("groceries")] == [note.id]

    def test_ranking_monotonic_in_term_frequency(self, repo):
        once = repo.create("Note", "milk")
        five = repo.create("Note", "milk milk milk milk milk")
        hits = repo.search("milk")
        assert [h.note.id for h in hits] == [five.id, once.id]
        assert hits[0].score >= hits[1].score

    def test_result_cap(self, repo):
        for i in range(15):
            repo.create(f"Note {i}", "shared term")
        assert len(repo.search("shared")) == 10

    def test_explicit_limit(self, repo):
        for i in range(15):
            repo.create(f"Note {i}", "shared term")
        assert len(repo.search("shared", limit=12)) == 12

    def test_configured_limit(self, store_path):
        config = StoreConfig(path=store_path)
        config.search.limit = 3
        save_config(config)
        with NoteRepository(store_path) as repo:
            for i in range(5):
                repo.create(f"Note {i}", "shared")
            assert len(repo.search("shared")) == 3

    def test_survives_reopen(self, store_path):
        with NoteRepository(store_path) as repo:
            note = repo.create("Groceries", "buy milk")
        with NoteRepository(store_path) as repo:
            assert repo.list() == [note]
            assert [h.note.id for h in repo.search("milk")] == [note.id]


class TestDelete:

    def test_delete_removes_from_both_stores(self, repo):
        kept = repo.create("Kept", "shared words here")
        gone = repo.create("Gone", "shared uniqueword")
        assert repo.delete(gone.id) is True
        assert [n.id for n in repo.list()] == [kept.id]
        assert repo.search("uniqueword") == []
        assert gone.id not in {h.note.id for h in repo.search("shared")}

    def test_delete_absent_raises_not_found(self, repo, store_path):
        repo.create("A", "hello")
        before = _snapshot_bytes(store_path)
        with pytest.raises(NotFound) as exc_info:
            repo.delete("never-existed")
        assert exc_info.value.note_id == "never-existed"
        assert _snapshot_bytes(store_path) == before

    def test_delete_absent_repeatedly(self, repo, store_path):
        before = _snapshot_bytes(store_path)
        for _ in range(3):
            with pytest.raises(NotFound):
                repo.delete("never-existed")
        assert _snapshot_bytes(store_path) == before

    def test_delete_twice(self, repo):
        note = repo.create("A", "hello")
        repo.delete(note.id)
        with pytest.raises(NotFound):
            repo.delete(note.id)

    def test_not_found_is_a_key_error(self, repo):
        with pytest.raises(KeyError):
            repo.delete("missing")


class TestConsistencyTools:

    def test_fresh_store_is_consistent(self, repo):
        repo.create("A", "hello")
        assert repo.check().consistent

    def test_rebuild_from_store(self, repo, store_path):
        a = repo.create("A", "alpha words")
        b = repo.create("B", "beta words")
        repo._index.clear()
        assert repo.search("words") == []
        assert repo.rebuild() == 2
        assert [h.note.id for h in repo.search("words")] == [a.id, b.id]

    def test_reindex_does_not_duplicate(self, repo):
        note = repo.create("A", "hello")
        repo.reindex(note.id)
        assert repo._index.doc_ids() == [note.id]
        assert len(repo.search("hello")) == 1

    def test_reindex_unknown_id(self, repo):
        with pytest.raises(NotFound):
            repo.reindex("missing")

    def test_check_reports_duplicates_and_reconcile_collapses(self, repo):
        note = repo.create("A", "hello")
        repo._index.add(note)
        report = repo.check()
        assert report.duplicated == [note.id]
        repo.reconcile()
        assert repo._index.doc_ids() == [note.id]
        assert repo.check().consistent

    def test_reconcile_when_consistent_is_noop(self, repo):
        repo.create("A", "hello")
        assert repo.reconcile().consistent


class TestLifecycle:

    def test_context_manager_detaches_ops_log(self, store_path):
        import logging
        logger = logging.getLogger("nnotes")
        before = list(logger.handlers)
        with NoteRepository(store_path):
            assert len(logger.handlers) == len(before) + 1
        assert logger.handlers == before

    def test_store_path_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NNOTES_STORE_PATH", str(tmp_path / "env-store"))
        with NoteRepository() as repo:
            repo.create("A", "hello")
            assert repo.store_path == (tmp_path / "env-store").resolve()
        assert (tmp_path / "env-store" / "notes.json").exists()
