"""Tests for content comparison and file state."""

from __future__ import annotations

import hashlib
import os

import pytest

from twinsync.sync.comparator import file_digest, file_state, identical


class TestIdentical:
    """Tests for identical()."""

    def test_same_content(self, tmp_path):
        a = tmp_path / "a.txt"
        b = tmp_path / "b.txt"
        a.write_bytes(b"hello\n")
        b.write_bytes(b"hello\n")
        assert identical(a, b) is True

    def test_different_content(self, tmp_path):
        a = tmp_path / "a.txt"
        b = tmp_path / "b.txt"
        a.write_bytes(b"hello\n")
        b.write_bytes(b"hello!\n")
        assert identical(a, b) is False

    def test_zero_length_files_are_identical(self, tmp_path):
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.write_bytes(b"")
        b.write_bytes(b"")
        assert identical(a, b) is True

    def test_mtime_is_irrelevant(self, tmp_path):
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.write_bytes(b"x")
        b.write_bytes(b"x")
        os.utime(a, (1_000, 1_000))
        os.utime(b, (2_000, 2_000))
        assert identical(a, b) is True

    def test_missing_file_raises(self, tmp_path):
        """An unreadable side is an error, never 'different'."""
        a = tmp_path / "a"
        a.write_bytes(b"x")
        with pytest.raises(OSError):
            identical(a, tmp_path / "missing")

    def test_large_file_spanning_chunks(self, tmp_path):
        payload = os.urandom(3 * 1024 * 1024 + 17)
        a = tmp_path / "a.bin"
        b = tmp_path / "b.bin"
        a.write_bytes(payload)
        b.write_bytes(payload[:-1] + bytes([payload[-1] ^ 0xFF]))
        assert identical(a, b) is False


class TestFileDigest:
    def test_matches_hashlib(self, tmp_path):
        p = tmp_path / "f"
        p.write_bytes(b"content")
        assert file_digest(p) == hashlib.sha256(b"content").hexdigest()


class TestFileState:
    """Tests for file_state()."""

    def test_existing_file(self, tmp_path):
        p = tmp_path / "f.txt"
        p.write_bytes(b"abc")
        os.utime(p, (1_234, 1_234))

        st = file_state(p)

        assert st.exists is True
        assert st.size == 3
        assert st.mtime == 1_234
        assert st.digest == hashlib.sha256(b"abc").hexdigest()

    def test_without_digest(self, tmp_path):
        p = tmp_path / "f.txt"
        p.write_bytes(b"abc")
        assert file_state(p, with_digest=False).digest is None

    def test_missing_path(self, tmp_path):
        st = file_state(tmp_path / "nope")
        assert st.exists is False
        assert st.digest is None
        assert st.mtime is None

    def test_directory_counts_as_missing(self, tmp_path):
        assert file_state(tmp_path).exists is False
