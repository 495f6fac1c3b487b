"""Tests for the JSON snapshot record store."""

import json
from unittest.mock import patch

import pytest

from nnotes.errors import StoreIOError
from nnotes.record_store import RecordStore
from nnotes.types import Note


@pytest.fixture
def notes_path(tmp_path):
    return tmp_path / "notes.json"


@pytest.fixture
def store(notes_path):
    return RecordStore(notes_path)


def _notes(*ids):
    return [Note(id=i, title=f"Title {i}", content=f"Content {i}") for i in ids]


class TestLoadSave:

    def test_first_run_is_empty(self, store, notes_path):
        assert store.load() == []
        assert not notes_path.exists()

    def test_save_then_load(self, store):
        notes = _notes("a", "b", "c")
        store.save(notes)
        assert store.load() == notes

    def test_snapshot_format(self, store, notes_path):
        store.save(_notes("a"))
        data = json.loads(notes_path.read_text(encoding="utf-8"))
        assert data == [{"id": "a", "title": "Title a", "content": "Content a"}]

    def test_unicode_round_trip(self, store):
        note = Note(id="u", title="Café", content="日本語のメモ")
        store.save([note])
        assert store.load() == [note]

    def test_save_overwrites(self, store):
        store.save(_notes("a", "b"))
        store.save(_notes("c"))
        assert [n.id for n in store.load()] == ["c"]

    def test_save_creates_parent_directory(self, tmp_path):
        store = RecordStore(tmp_path / "nested" / "dir" / "notes.json")
        store.save(_notes("a"))
        assert [n.id for n in store.load()] == ["a"]


class TestAppendRemove:

    def test_append_preserves_insertion_order(self, store):
        for note in _notes("c", "a", "b"):
            store.append(note)
        assert [n.id for n in store.load()] == ["c", "a", "b"]

    def test_remove_existing(self, store):
        store.save(_notes("a", "b", "c"))
        assert store.remove("b") is True
        assert [n.id for n in store.load()] == ["a", "c"]

    def test_remove_absent_does_not_rewrite(self, store, notes_path):
        store.save(_notes("a"))
        before = notes_path.read_bytes()
        with patch("nnotes.record_store.atomic_write_text") as write:
            assert store.remove("zzz") is False
        write.assert_not_called()
        assert notes_path.read_bytes() == before

    def test_remove_on_empty_store(self, store, notes_path):
        assert store.remove("zzz") is False
        assert not notes_path.exists()

    def test_get(self, store):
        store.save(_notes("a", "b"))
        assert store.get("b") == _notes("b")[0]
        assert store.get("zzz") is None
        assert store.exists("a")
        assert store.list_ids() == ["a", "b"]


class TestFailures:

    def test_failed_save_keeps_previous_snapshot(self, store, notes_path):
        store.save(_notes("a"))
        before = notes_path.read_bytes()
        with patch("nnotes.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreIOError):
                store.append(_notes("b")[0])
        assert notes_path.read_bytes() == before
        assert [p.name for p in notes_path.parent.iterdir()] == ["notes.json"]

    def test_unparseable_snapshot(self, store, notes_path):
        notes_path.write_text("[{broken")
        with pytest.raises(StoreIOError):
            store.load()

    def test_snapshot_not_utf8(self, store, notes_path):
        notes_path.write_bytes(b'[{"id": "\xff\xfe", "title": "t", "content": "c"}]')
        with pytest.raises(StoreIOError):
            store.load()

    def test_snapshot_not_a_list(self, store, notes_path):
        notes_path.write_text(json.dumps({"id": "a"}))
        with pytest.raises(StoreIOError):
            store.load()

    def test_record_missing_field(self, store, notes_path):
        notes_path.write_text(json.dumps([{"id": "a", "title": "t"}]))
        with pytest.raises(StoreIOError, match="content"):
            store.load()

    def test_record_wrong_type(self, store, notes_path):
        notes_path.write_text(json.dumps([{"id": 1, "title": "t", "content": "c"}]))
        with pytest.raises(StoreIOError):
            store.load()

    def test_corrupt_snapshot_is_not_overwritten_by_append(self, store, notes_path):
        notes_path.write_text("garbage")
        with pytest.raises(StoreIOError):
            store.append(_notes("a")[0])
        assert notes_path.read_text() == "garbage"

    def test_unreadable_location(self, tmp_path):
        (tmp_path / "notes.json").mkdir()
        with pytest.raises(StoreIOError):
            RecordStore(tmp_path / "notes.json").load()
