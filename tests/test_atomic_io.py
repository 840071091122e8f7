"""Tests for app.utils.atomic_io module."""

import io
import tempfile
from pathlib import Path

import pytest

from app.utils.atomic_io import (
    TEMP_SUFFIX,
    atomic_stream_to_file,
    atomic_write_bytes,
    cleanup_orphan_temp_files,
)


class TestAtomicWriteBytes:
    """Tests for atomic_write_bytes function."""

    def test_creates_file(self):
        """Should create file with correct content."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "test.wav"

            written = atomic_write_bytes(path, b"test binary data")

            assert written == 16
            assert path.read_bytes() == b"test binary data"

    def test_creates_parent_directories(self):
        """Should create parent directories if they do not exist."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "deep" / "file.wav"

            atomic_write_bytes(path, b"nested data")

            assert path.read_bytes() == b"nested data"

    def test_temp_file_cleaned_up_on_success(self):
        """Temp file should not exist after successful write."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "test.wav"

            atomic_write_bytes(path, b"data")

            assert list(Path(tmpdir).iterdir()) == [path]


class TestAtomicStreamToFile:
    """Tests for chunked stream copies."""

    def test_reads_in_chunks(self, tmp_path):
        reads = []

        class Recording(io.BytesIO):
            def read(self, size=-1):
                reads.append(size)
                return super().read(size)

        path = tmp_path / "out.bin"
        total = atomic_stream_to_file(Recording(b"z" * 1000), path, chunk_size=256)

        assert total == 1000
        assert path.read_bytes() == b"z" * 1000
        assert set(reads) == {256}

    def test_failed_read_leaves_nothing(self, tmp_path):
        class Broken(io.BytesIO):
            def read(self, size=-1):
                if self.tell() > 0:
                    raise ConnectionResetError("reset")
                return super().read(size)

        path = tmp_path / "out.bin"
        with pytest.raises(ConnectionResetError):
            atomic_stream_to_file(Broken(b"q" * 100), path, chunk_size=10)

        assert list(tmp_path.iterdir()) == []


class TestCleanupOrphanTempFiles:
    def test_removes_only_temp_files(self, tmp_path):
        orphan = tmp_path / f"a.mp3{TEMP_SUFFIX}"
        orphan.write_bytes(b"partial")
        kept = tmp_path / "b.mp3"
        kept.write_bytes(b"complete")

        assert cleanup_orphan_temp_files(tmp_path) == 1
        assert not orphan.exists()
        assert kept.exists()

    def test_missing_directory(self, tmp_path):
        assert cleanup_orphan_temp_files(tmp_path / "missing") == 0
