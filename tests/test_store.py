"""Tests for whiteshelf.store."""

import threading

import pytest
from whiteshelf.config import ShelfConfig
from whiteshelf.errors import (
    AlreadyExists,
    Conflict,
    InvalidInput,
    NotFound,
    StorageError,
)
from whiteshelf.store import DocumentStore, content_version, normalize_name


@pytest.fixture
def store(tmp_path):
    s = DocumentStore(ShelfConfig(root=tmp_path))
    s.ensure_directories()
    return s


class TestNormalizeName:
    def test_appends_extension(self):
        assert normalize_name("paper", ".md") == "paper.md"

    def test_keeps_existing_extension(self):
        assert normalize_name("paper.md", ".md") == "paper.md"

    def test_replaces_unsafe_characters(self):
        assert normalize_name("my paper (v2)", ".md") == "my_paper__v2_.md"

    def test_no_path_separators_survive(self):
        name = normalize_name("../../etc/passwd", ".md")
        assert "/" not in name
        assert name == ".._.._etc_passwd.md"

    def test_strips_whitespace(self):
        assert normalize_name("  notes  ", ".md") == "notes.md"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_empty_name(self, name):
        with pytest.raises(InvalidInput):
            normalize_name(name, ".md")


class TestResolve:
    def test_resolve_is_pure(self, store, tmp_path):
        path = store.resolve(store.papers_dir, "new paper")
        assert path == tmp_path / "_papers" / "new_paper.md"
        assert not path.exists()

    def test_uses_configured_extension(self, tmp_path):
        s = DocumentStore(ShelfConfig(root=tmp_path, extension="markdown"))
        assert s.resolve(tmp_path, "x").name == "x.markdown"


class TestLoadSave:
    def test_save_and_load(self, store):
        path = store.resolve(store.papers_dir, "a")
        store.save(path, "---\ntitle: \"A\"\n---\nBody\n")
        assert store.load(path) == "---\ntitle: \"A\"\n---\nBody\n"

    def test_load_missing(self, store):
        with pytest.raises(NotFound):
            store.load(store.resolve(store.papers_dir, "missing"))

    def test_line_endings_untouched(self, store):
        path = store.resolve(store.papers_dir, "crlf")
        store.save(path, "a\r\nb\r\n")
        assert store.load(path) == "a\r\nb\r\n"
        assert path.read_bytes() == b"a\r\nb\r\n"

    def test_save_leaves_no_temp_files(self, store):
        path = store.resolve(store.papers_dir, "a")
        store.save(path, "one")
        store.save(path, "two")
        assert [p.name for p in store.papers_dir.iterdir()] == ["a.md"]

    def test_save_replaces_content(self, store):
        path = store.resolve(store.papers_dir, "a")
        store.save(path, "one")
        store.save(path, "two")
        assert store.load(path) == "two"

    def test_save_with_matching_version(self, store):
        path = store.resolve(store.papers_dir, "a")
        store.save(path, "one")
        store.save(path, "two", expected_version=content_version("one"))
        assert store.load(path) == "two"

    def test_save_with_stale_version(self, store):
        path = store.resolve(store.papers_dir, "a")
        store.save(path, "one")
        stale = content_version("one")
        path.write_text("changed elsewhere", encoding="utf-8")
        with pytest.raises(Conflict):
            store.save(path, "two", expected_version=stale)
        assert store.load(path) == "changed elsewhere"

    def test_save_expected_version_but_file_gone(self, store):
        path = store.resolve(store.papers_dir, "a")
        with pytest.raises(Conflict):
            store.save(path, "two", expected_version=content_version("one"))
        assert not path.exists()

    def test_save_into_missing_directory(self, store, tmp_path):
        with pytest.raises(StorageError):
            store.save(tmp_path / "nope" / "a.md", "text")

    def test_version(self, store):
        path = store.resolve(store.papers_dir, "a")
        assert store.version(path) is None
        store.save(path, "text")
        assert store.version(path) == content_version("text")


class TestCreateDelete:
    def test_create(self, store):
        path = store.resolve(store.roadmaps_dir, "r")
        store.create(path, "text")
        assert store.exists(path)

    def test_create_existing(self, store):
        path = store.resolve(store.roadmaps_dir, "r")
        store.create(path, "first")
        with pytest.raises(AlreadyExists):
            store.create(path, "second")
        assert store.load(path) == "first"

    def test_create_does_not_replace_file_written_after_check(
        self, store, monkeypatch
    ):
        path = store.resolve(store.roadmaps_dir, "r")
        path.write_text("written by another process", encoding="utf-8")
        # Another writer created the file after the existence check
        monkeypatch.setattr(store, "exists", lambda p: False)
        with pytest.raises(AlreadyExists):
            store.create(path, "ours")
        assert store.load(path) == "written by another process"
        assert [p.name for p in store.roadmaps_dir.iterdir()] == ["r.md"]

    def test_delete(self, store):
        path = store.resolve(store.roadmaps_dir, "r")
        store.create(path, "text")
        store.delete(path)
        assert not store.exists(path)

    def test_delete_missing(self, store):
        with pytest.raises(NotFound):
            store.delete(store.resolve(store.roadmaps_dir, "r"))


class TestList:
    def test_list_in_name_order(self, store):
        for name in ("b", "a", "c"):
            store.save(store.resolve(store.papers_dir, name), name)
        entries = list(store.list(store.papers_dir))
        assert [e.name for e in entries] == ["a.md", "b.md", "c.md"]
        assert all(isinstance(e.modified, float) for e in entries)
        assert entries[0].path == store.papers_dir / "a.md"

    def test_list_filters_extension(self, store):
        (store.papers_dir / "a.md").write_text("x")
        (store.papers_dir / "notes.txt").write_text("x")
        (store.papers_dir / ".hidden.md").write_text("x")
        assert [e.name for e in store.list(store.papers_dir)] == ["a.md"]
        assert [e.name for e in store.list(store.papers_dir, ".txt")] == [
            "notes.txt"
        ]

    def test_list_missing_directory(self, store, tmp_path):
        assert list(store.list(tmp_path / "nope")) == []

    def test_list_is_lazy(self, store):
        store.save(store.resolve(store.papers_dir, "a"), "x")
        entries = store.list(store.papers_dir)
        assert next(entries).name == "a.md"


class TestLock:
    def test_lock_excludes_other_threads(self, store):
        path = store.resolve(store.roadmaps_dir, "r")
        acquired = threading.Event()

        def worker():
            with store.lock(path):
                acquired.set()

        with store.lock(path):
            t = threading.Thread(target=worker)
            t.start()
            assert not acquired.wait(0.2)
        t.join(2)
        assert acquired.is_set()

    def test_different_paths_do_not_block(self, store):
        a = store.resolve(store.roadmaps_dir, "a")
        b = store.resolve(store.roadmaps_dir, "b")
        acquired = threading.Event()

        def worker():
            with store.lock(b):
                acquired.set()

        with store.lock(a):
            t = threading.Thread(target=worker)
            t.start()
            assert acquired.wait(2)
        t.join(2)
