"""Tests for the local directory scanner."""

import hashlib
import os
import re

import pytest

from claudesync.exceptions import ClaudeSyncIOError
from claudesync.sync import DirectoryScanner, compute_file_hash, scan_local_files


class TestDirectoryScanner:
    """Test DirectoryScanner functionality."""

    def test_scan_nested_files(self, tmp_path):
        """Test that every file is keyed by its relative POSIX path."""
        (tmp_path / "a.md").write_text("alpha")
        (tmp_path / "docs" / "guide").mkdir(parents=True)
        (tmp_path / "docs" / "guide" / "b.txt").write_text("beta")

        files = scan_local_files(tmp_path)

        assert files == {
            "a.md": hashlib.md5(b"alpha").hexdigest(),
            "docs/guide/b.txt": hashlib.md5(b"beta").hexdigest(),
        }

    def test_fingerprints_are_32_char_lowercase_hex(self, tmp_path):
        """Test the fingerprint format."""
        (tmp_path / "one").write_bytes(b"\x00\xff binary-ish")
        (tmp_path / "two").write_text("")

        for fingerprint in DirectoryScanner().scan_local(tmp_path).values():
            assert re.fullmatch(r"[0-9a-f]{32}", fingerprint)

    def test_empty_directories_are_ignored(self, tmp_path):
        """Test that directories without files contribute nothing."""
        (tmp_path / "empty" / "deeper").mkdir(parents=True)
        assert scan_local_files(tmp_path) == {}

    def test_symlinks_are_not_followed(self, tmp_path):
        """Test that symlinked files and directories are skipped."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("secret")
        root = tmp_path / "root"
        root.mkdir()
        (root / "real.txt").write_text("real")
        try:
            os.symlink(outside, root / "linked_dir")
            os.symlink(outside / "secret.txt", root / "linked_file.txt")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported on this platform")

        assert list(scan_local_files(root)) == ["real.txt"]

    def test_missing_directory_raises(self, tmp_path):
        """Test that I/O errors abort the scan."""
        with pytest.raises(ClaudeSyncIOError, match="Failed to scan"):
            scan_local_files(tmp_path / "nope")

    def test_compute_file_hash(self, tmp_path):
        """Test hashing a single file."""
        path = tmp_path / "f.txt"
        path.write_text("hello")
        assert compute_file_hash(path) == "5d41402abc4b2a76b9719d911017c592"
