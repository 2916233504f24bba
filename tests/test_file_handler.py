"""Tests for twinsync.file_handler."""

import os

import pytest

from twinsync.file_handler import (
    copy_preserving_mtime,
    disambiguated_name,
    ensure_parent_dir,
    remove_file,
)


class TestEnsureParentDir:
    def test_creates_missing_parents(self, tmp_path):
        target = tmp_path / "a" / "b" / "c.txt"
        assert ensure_parent_dir(target) is True
        assert (tmp_path / "a" / "b").is_dir()

    def test_existing_parent(self, tmp_path):
        assert ensure_parent_dir(tmp_path / "c.txt") is False


class TestCopyPreservingMtime:
    def test_content_and_mtime(self, tmp_path):
        src = tmp_path / "src.bin"
        src.write_bytes(b"\x00\x01payload")
        os.utime(src, ns=(1_600_000_000_123_456_789, 1_600_000_000_123_456_789))
        dst = tmp_path / "dst.bin"

        size = copy_preserving_mtime(src, dst)

        assert size == 9
        assert dst.read_bytes() == b"\x00\x01payload"
        assert dst.stat().st_mtime_ns == src.stat().st_mtime_ns

    def test_overwrites_existing(self, tmp_path):
        src = tmp_path / "src.txt"
        dst = tmp_path / "dst.txt"
        src.write_text("new")
        dst.write_text("old and longer")

        copy_preserving_mtime(src, dst)

        assert dst.read_text() == "new"

    def test_missing_source(self, tmp_path):
        with pytest.raises(OSError):
            copy_preserving_mtime(tmp_path / "nope", tmp_path / "dst")


class TestRemoveFile:
    def test_removes(self, tmp_path):
        f = tmp_path / "f"
        f.write_text("x")
        remove_file(f)
        assert not f.exists()

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            remove_file(tmp_path / "f")


class TestDisambiguatedName:
    def test_first_choice(self, tmp_path):
        path = tmp_path / "report.final.pdf"
        assert (
            disambiguated_name(path, "20260101_120000", "src")
            == tmp_path / "report.final_20260101_120000_src.pdf"
        )

    def test_counter_appended_until_free(self, tmp_path):
        path = tmp_path / "a.txt"
        (tmp_path / "a_s_dest.txt").write_text("")
        (tmp_path / "a_s_dest_1.txt").write_text("")

        assert disambiguated_name(path, "s", "dest") == tmp_path / "a_s_dest_2.txt"

    def test_custom_exists_callback(self, tmp_path):
        taken = {tmp_path / "a_s_src.txt"}
        result = disambiguated_name(
            tmp_path / "a.txt", "s", "src", exists=taken.__contains__
        )
        assert result == tmp_path / "a_s_src_1.txt"

    def test_no_suffix(self, tmp_path):
        assert (
            disambiguated_name(tmp_path / "Makefile", "s", "src").name
            == "Makefile_s_src"
        )
