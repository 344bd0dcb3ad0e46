"""
Tests for save archive construction and checksums
"""

import builtins
import hashlib
import zipfile
from pathlib import Path

import pytest

from adapters import archiver
from adapters.archiver import build_save_archive, compute_checksum, sanitize_filename
from core.domain.models import DetectedGame, DetectedSavePath
from core.services.save_scanner import SaveScanner

from conftest import FakeSource, write_file


@pytest.fixture
def foo_game(known_dirs):
    docs = Path(known_dirs.documents)
    write_file(docs / "Foo" / "save.dat", 120)
    (docs / "Foo" / "slots" / "a").mkdir(parents=True)
    (docs / "Foo" / "slots" / "a" / "b.sav").write_bytes(b"slot-b")
    (docs / "Foo" / "slots" / "c.sav").write_bytes(b"slot-c")
    source = FakeSource({"Foo": ["<documents>/Foo/save.dat", "<documents>/Foo/slots", "<home>/nothing"]})
    return SaveScanner(source, known_dirs).scan_game("Foo")


def _names(path):
    with zipfile.ZipFile(path) as zf:
        return sorted(zf.namelist())


class TestBuildSaveArchive:
    def test_layout_flat_files_and_relative_directories(self, foo_game, tmp_path):
        out = tmp_path / "foo.zip"

        stats = build_save_archive(foo_game, out)

        assert stats.files_added == 3
        assert _names(out) == ["a/", "a/b.sav", "c.sav", "save.dat"]
        with zipfile.ZipFile(out) as zf:
            assert zf.read("a/b.sav") == b"slot-b"
            assert zf.read("save.dat") == b"x" * 120
            assert zf.getinfo("c.sav").compress_type == zipfile.ZIP_DEFLATED

    def test_paths_not_flagged_existing_are_ignored(self, tmp_path):
        real = write_file(tmp_path / "real.sav", 4)
        game = DetectedGame(
            name="Foo",
            paths=[DetectedSavePath(pattern="x", resolved_path=str(real), exists=False)],
        )
        out = tmp_path / "foo.zip"

        stats = build_save_archive(game, out)

        assert stats.files_added == 0
        assert _names(out) == []

    def test_file_vanished_since_scan(self, foo_game, tmp_path, known_dirs):
        (Path(known_dirs.documents) / "Foo" / "save.dat").unlink()
        out = tmp_path / "foo.zip"

        build_save_archive(foo_game, out)

        assert "save.dat" not in _names(out)
        assert "c.sav" in _names(out)

    def test_unreadable_file_is_skipped(self, foo_game, tmp_path, monkeypatch):
        def _open(path, *args, **kwargs):
            if str(path).endswith("c.sav"):
                raise PermissionError(13, "Permission denied", str(path))
            return builtins.open(path, *args, **kwargs)

        monkeypatch.setattr(archiver, "open", _open, raising=False)
        out = tmp_path / "foo.zip"

        stats = build_save_archive(foo_game, out)

        assert _names(out) == ["a/", "a/b.sav", "save.dat"]
        assert len(stats.skipped) == 1

    def test_duplicate_flat_names_keep_first(self, tmp_path):
        first = write_file(tmp_path / "one" / "save.dat", 1)
        second = write_file(tmp_path / "two" / "save.dat", 2)
        game = DetectedGame(
            name="Dup",
            paths=[
                DetectedSavePath(pattern="a", resolved_path=str(first), exists=True, file_count=1),
                DetectedSavePath(pattern="b", resolved_path=str(second), exists=True, file_count=1),
            ],
        )
        out = tmp_path / "dup.zip"

        build_save_archive(game, out)

        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == ["save.dat"]
            assert zf.read("save.dat") == b"x"


class TestChecksum:
    def test_checksum_is_sha256_hex(self, tmp_path):
        target = tmp_path / "blob"
        target.write_bytes(b"hello world")
        assert compute_checksum(target) == hashlib.sha256(b"hello world").hexdigest()

    def test_rebuild_gives_identical_checksum(self, foo_game, tmp_path):
        first = tmp_path / "first.zip"
        second = tmp_path / "second.zip"
        build_save_archive(foo_game, first)
        build_save_archive(foo_game, second)

        assert first.read_bytes() == second.read_bytes()
        assert compute_checksum(first) == compute_checksum(second)
        assert compute_checksum(first) == compute_checksum(first)

    def test_content_change_changes_checksum(self, foo_game, tmp_path, known_dirs):
        before = tmp_path / "before.zip"
        after = tmp_path / "after.zip"
        build_save_archive(foo_game, before)
        (Path(known_dirs.documents) / "Foo" / "slots" / "c.sav").write_bytes(b"slot-C")
        build_save_archive(foo_game, after)

        assert compute_checksum(before) != compute_checksum(after)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Foo", "Foo"),
        ('a/b\\c:d*e?f"g<h>i|j', "a_b_c_d_e_f_g_h_i_j"),
        ("Half-Life 2: Episode One", "Half-Life 2_ Episode One"),
    ],
)
def test_sanitize_filename(name, expected):
    assert sanitize_filename(name) == expected
