"""SILK Audio Converter - Retention sweeps.

Deletes staged inputs, outputs and log files once they are older than the
retention window. Runs hourly from a cancellable asyncio task started in the
API lifespan; a final sweep runs on shutdown.

A file that cannot be deleted is logged and skipped; the sweep always
continues with the remaining files.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from app.config import LOG_FILE_PREFIX, Settings

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Number of files removed per directory in one sweep."""

    uploads: int = 0
    outputs: int = 0
    logs: int = 0

    @property
    def total(self) -> int:
        return self.uploads + self.outputs + self.logs


def sweep_directory(
    directory: str | Path,
    max_age_seconds: float,
    *,
    pattern: str = "*",
    now: float | None = None,
) -> int:
    """Delete regular files in directory older than max_age_seconds.

    Subdirectories are never touched.

    Args:
        directory: Directory to sweep (missing directory is not an error).
        max_age_seconds: Files with an older modification time are removed.
        pattern: Glob restricting which names are considered.
        now: Reference time (epoch seconds); defaults to time.time().

    Returns:
        Number of files removed.
    """
    directory = Path(directory)
    now = time.time() if now is None else now

    try:
        entries = list(directory.glob(pattern))
    except OSError as e:
        logger.error("Failed to read directory %s: %s", directory, e)
        return 0

    removed = 0
    for path in entries:
        try:
            if not path.is_file():
                continue
            if now - path.stat().st_mtime <= max_age_seconds:
                continue
            path.unlink()
        except FileNotFoundError:
            # Removed concurrently (e.g. by the pipeline)
            continue
        except OSError as e:
            logger.error("Failed to delete %s: %s", path, e)
            continue
        removed += 1
        logger.debug("Deleted expired file: %s", path)

    if removed:
        logger.info("Removed %d expired files from %s", removed, directory)
    return removed


def sweep_logs(logs_dir: str | Path, max_age_seconds: float, now: float | None = None) -> int:
    """Delete rotated log files older than the log retention window."""
    return sweep_directory(
        logs_dir,
        max_age_seconds,
        pattern=f"{LOG_FILE_PREFIX}*",
        now=now,
    )


def run_sweep(settings: Settings, now: float | None = None) -> SweepReport:
    """One full retention pass over uploads, outputs and logs."""
    logger.debug("Starting retention sweep")
    report = SweepReport(
        uploads=sweep_directory(settings.upload_dir, settings.file_retention_seconds, now=now),
        outputs=sweep_directory(settings.output_dir, settings.file_retention_seconds, now=now),
        logs=sweep_logs(settings.logs_dir, settings.log_retention_seconds, now=now),
    )
    logger.debug("Retention sweep finished: %s", report)
    return report


class Housekeeper:
    """Runs a sweep every interval until stopped.

    The sweep itself runs in a worker thread so the event loop keeps serving
    requests while files are deleted.
    """

    def __init__(self, sweep: Callable[[], object], interval_seconds: float):
        self._sweep = sweep
        self.interval_seconds = interval_seconds
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the periodic loop on the running event loop."""
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="housekeeping")
        logger.debug("Housekeeping started, interval %ss", self.interval_seconds)

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it."""
        if self._task is None or self._stop is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        logger.debug("Housekeeping stopped")

    async def _run(self) -> None:
        assert self._stop is not None
        while True:
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
                return
            except TimeoutError:
                pass
            try:
                await asyncio.to_thread(self._sweep)
            except Exception:
                logger.exception("Retention sweep failed")
