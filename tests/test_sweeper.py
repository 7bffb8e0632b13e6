"""Tests for the startup sweep."""

import stat

from volatilestore.record import serialize
from volatilestore.sweeper import (
    SweepResult,
    ensure_directory,
    iter_record_paths,
    sweep_directory,
)


def write(path, expires_at, payload="t=integer&v=1"):
    path.write_bytes(serialize(expires_at, payload))


class TestSweepDirectory:
    """Test deletion of expired records."""

    def test_creates_missing_directory(self, tmp_path):
        directory = tmp_path / "a" / "b"
        result = sweep_directory(directory, ".cache", now=1000, mode=0o750)
        assert directory.is_dir()
        assert result == SweepResult()

    def test_directory_mode_applied(self, tmp_path):
        directory = tmp_path / "fresh"
        ensure_directory(directory, 0o700)
        assert stat.S_IMODE(directory.stat().st_mode) == 0o700

    def test_removes_only_expired(self, tmp_path):
        write(tmp_path / "old.cache", 500)
        write(tmp_path / "fresh.cache", 5000)
        write(tmp_path / "forever.cache", 0)

        result = sweep_directory(tmp_path, ".cache", now=1000, mode=0o750)

        assert result.scanned == 3
        assert result.removed == 1
        assert not (tmp_path / "old.cache").exists()
        assert (tmp_path / "fresh.cache").exists()
        assert (tmp_path / "forever.cache").exists()

    def test_reads_the_format_store_writes(self, tmp_path):
        """Test that the sweep understands wrapped multi-line payloads."""
        write(tmp_path / "long.cache", 999, "x" * 500)
        result = sweep_directory(tmp_path, ".cache", now=1000, mode=0o750)
        assert result.removed == 1

    def test_ignores_other_extensions(self, tmp_path):
        write(tmp_path / "old.other", 1)
        write(tmp_path / "old.cache.tmp", 1)
        result = sweep_directory(tmp_path, ".cache", now=1000, mode=0o750)
        assert result.scanned == 0
        assert (tmp_path / "old.other").exists()
        assert (tmp_path / "old.cache.tmp").exists()

    def test_corrupt_header_kept(self, tmp_path):
        (tmp_path / "junk.cache").write_bytes(b"not a number\nxyz")
        result = sweep_directory(tmp_path, ".cache", now=1000, mode=0o750)
        assert result.removed == 0
        assert (tmp_path / "junk.cache").exists()

    def test_extension_with_glob_characters(self, tmp_path):
        write(tmp_path / "old.[c]", 1)
        write(tmp_path / "old.c", 1)
        result = sweep_directory(tmp_path, ".[c]", now=1000, mode=0o750)
        assert result.removed == 1
        assert (tmp_path / "old.c").exists()


class TestIterRecordPaths:
    """Test record enumeration."""

    def test_skips_directories(self, tmp_path):
        (tmp_path / "sub.cache").mkdir()
        write(tmp_path / "a.cache", 0)
        assert [p.name for p in iter_record_paths(tmp_path, ".cache")] == ["a.cache"]

    def test_sorted(self, tmp_path):
        for name in ("c", "a", "b"):
            write(tmp_path / f"{name}.cache", 0)
        names = [p.name for p in iter_record_paths(tmp_path, ".cache")]
        assert names == ["a.cache", "b.cache", "c.cache"]
