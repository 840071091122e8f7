"""SILK Audio Converter - Atomic I/O utilities.

Staged inputs are published with the write-temp-then-rename rule:
1. Write to a temp path in the same directory
2. Flush + best-effort fsync
3. Rename temp -> final

A staged path therefore either holds a complete file or does not exist.
Partial writes (full disk, dropped download) only ever affect the temp file,
which is removed on failure and swept on startup otherwise.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"
CHUNK_SIZE = 65536


def _temp_path_for(final_path: Path) -> Path:
    return final_path.with_name(final_path.name + TEMP_SUFFIX)


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Failed to remove temp file %s", path, exc_info=True)


def atomic_write_bytes(final_path: str | Path, data: bytes) -> int:
    """Atomically write bytes to a file.

    Args:
        final_path: The target path for the final file.
        data: Bytes to write.

    Returns:
        Number of bytes written.

    Raises:
        OSError: If directory creation, write, or rename fails.
    """
    final_path = Path(final_path)
    temp_path = _temp_path_for(final_path)
    final_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(temp_path, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(temp_path, final_path)
    except OSError:
        _remove_quietly(temp_path)
        raise

    return len(data)


def atomic_stream_to_file(
    stream: BinaryIO,
    final_path: str | Path,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Atomically copy a readable stream to a file in fixed-size chunks.

    The stream is never read whole into memory.

    Args:
        stream: File-like object with read().
        final_path: Target path for the output file.
        chunk_size: Buffer size for reading (default: 64KB).

    Returns:
        Total bytes written.

    Raises:
        OSError: If reading, writing or renaming fails. Transport errors
            raised by stream.read() propagate unchanged.
    """
    final_path = Path(final_path)
    temp_path = _temp_path_for(final_path)
    final_path.parent.mkdir(parents=True, exist_ok=True)

    total_bytes = 0
    try:
        with open(temp_path, "wb") as fh:
            while chunk := stream.read(chunk_size):
                fh.write(chunk)
                total_bytes += len(chunk)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(temp_path, final_path)
    except BaseException:
        _remove_quietly(temp_path)
        raise

    return total_bytes


def cleanup_orphan_temp_files(directory: str | Path) -> int:
    """Remove temp files left behind by interrupted writes.

    Args:
        directory: Directory to scan.

    Returns:
        Number of files removed.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return 0

    removed = 0
    for temp_file in directory.glob(f"*{TEMP_SUFFIX}"):
        if not temp_file.is_file():
            continue
        try:
            temp_file.unlink()
            removed += 1
        except OSError:
            logger.warning("Failed to remove orphan temp file %s", temp_file)

    return removed
