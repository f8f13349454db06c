"""Tests for dependency record persistence."""

import os
import sys
from pathlib import Path

import pytest

from bcbuild.build.dependency_store import DependencyRecordStore, atomic_write_text
from bcbuild.build.language_flags import Language
from bcbuild.build.source_scanner import SourceFile
from bcbuild.build.unit_stamp import compute_signal


@pytest.fixture
def source(tmp_path):
    return SourceFile(path=tmp_path / "src" / "core" / "Memory.cpp", logical_name="core/Memory", language=Language.CPP)


@pytest.fixture
def store(tmp_path):
    return DependencyRecordStore(tmp_path / "obj")


class TestDependencyRecordStore:
    """Test reading and writing records."""

    def test_record_path(self, store, source, tmp_path):
        assert store.record_path(source) == tmp_path / "obj" / "core" / "Memory.dep"

    def test_read_missing_returns_none(self, store, source):
        assert store.read(source) is None
        assert not store.exists(source)

    def test_write_then_read(self, store, source):
        headers = ["/inc/a.h", "/inc/with space.h"]
        path = store.write(source, headers)

        assert path.read_text() == "/inc/a.h\n/inc/with space.h"
        assert store.read(source) == headers
        assert store.exists(source)

    def test_empty_record_is_not_missing(self, store, source):
        store.write(source, [])
        assert store.exists(source)
        assert store.read(source) == []

    def test_overwrite(self, store, source):
        store.write(source, ["/inc/a.h", "/inc/b.h"])
        store.write(source, ["/inc/c.h"])
        assert store.read(source) == ["/inc/c.h"]

    def test_read_ignores_blank_lines(self, store, source):
        path = store.record_path(source)
        path.parent.mkdir(parents=True)
        path.write_text("/inc/a.h\n\n/inc/b.h\n")
        assert store.read(source) == ["/inc/a.h", "/inc/b.h"]

    @pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names")
    def test_non_utf8_header_path_round_trips(self, store, source, tmp_path):
        header = tmp_path / os.fsdecode(b"caf\xe9.h")
        header.write_text("int x;\n")

        store.write(source, [str(header)])
        recorded = store.read(source)

        assert recorded == [str(header)]
        before = compute_signal(Path(recorded[0]), "content")
        header.write_text("int y;\n")
        assert before is not None
        assert compute_signal(Path(recorded[0]), "content") != before


class TestAtomicWriteText:
    """Test temp-file + rename writes."""

    def test_creates_parent_and_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "a" / "b" / "file.txt"
        atomic_write_text(target, "content")

        assert target.read_text() == "content"
        assert [p.name for p in target.parent.iterdir()] == ["file.txt"]

    def test_replaces_existing(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("old")
        atomic_write_text(target, "new")
        assert target.read_text() == "new"

    def test_failed_write_keeps_original(self, tmp_path, monkeypatch):
        target = tmp_path / "file.txt"
        target.write_text("old")

        def failing_replace(self, other):
            raise OSError("disk full")

        monkeypatch.setattr(Path, "replace", failing_replace)
        with pytest.raises(OSError):
            atomic_write_text(target, "new")
        monkeypatch.undo()

        assert target.read_text() == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]
