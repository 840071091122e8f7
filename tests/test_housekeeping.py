"""Tests for retention sweeps (app/housekeeping.py)."""

from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path

from app.housekeeping import Housekeeper, SweepReport, run_sweep, sweep_directory, sweep_logs

HOUR = 60 * 60
DAY = 24 * HOUR


def _touch(path: Path, age_seconds: float, now: float) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    mtime = now - age_seconds
    os.utime(path, (mtime, mtime))
    return path


class TestSweepDirectory:
    """Tests for age-based deletion in a single directory."""

    def test_old_removed_recent_kept(self, tmp_path):
        now = time.time()
        old = _touch(tmp_path / "old.silk", 2 * DAY, now)
        recent = _touch(tmp_path / "recent.silk", HOUR, now)

        removed = sweep_directory(tmp_path, DAY, now=now)

        assert removed == 1
        assert not old.exists()
        assert recent.exists()

    def test_subdirectories_untouched(self, tmp_path):
        now = time.time()
        nested = _touch(tmp_path / "sub" / "old.pcm", 2 * DAY, now)
        subdir = tmp_path / "sub"
        os.utime(subdir, (now - 2 * DAY, now - 2 * DAY))

        assert sweep_directory(tmp_path, DAY, now=now) == 0
        assert subdir.is_dir()
        assert nested.exists()

    def test_missing_directory(self, tmp_path):
        assert sweep_directory(tmp_path / "missing", DAY) == 0

    def test_delete_failure_does_not_abort(self, tmp_path, monkeypatch):
        """One undeletable file is logged and the rest are still removed."""
        now = time.time()
        stuck = _touch(tmp_path / "a_stuck.wav", 2 * DAY, now)
        others = [_touch(tmp_path / f"b_{i}.wav", 2 * DAY, now) for i in range(3)]

        real_unlink = Path.unlink

        def flaky_unlink(self, missing_ok=False):
            if self.name == stuck.name:
                raise PermissionError(13, "Permission denied")
            return real_unlink(self, missing_ok=missing_ok)

        monkeypatch.setattr(Path, "unlink", flaky_unlink)

        removed = sweep_directory(tmp_path, DAY, now=now)

        assert removed == 3
        assert stuck.exists()
        assert not any(p.exists() for p in others)


class TestSweepLogs:
    def test_only_prefixed_logs_removed(self, tmp_path):
        now = time.time()
        old_log = _touch(tmp_path / "audio_converter_2020-01-01.log", 8 * DAY, now)
        recent_log = _touch(tmp_path / "audio_converter_2020-01-09.log", DAY, now)
        other = _touch(tmp_path / "notes.txt", 30 * DAY, now)

        assert sweep_logs(tmp_path, 7 * DAY, now=now) == 1
        assert not old_log.exists()
        assert recent_log.exists()
        assert other.exists()


class TestRunSweep:
    def test_report_counts_each_directory(self, settings):
        settings.ensure_directories()
        now = time.time()
        _touch(Path(settings.upload_dir) / "in.wav", 2 * DAY, now)
        _touch(Path(settings.upload_dir) / "x.pcm", 2 * DAY, now)
        _touch(Path(settings.output_dir) / "out.silk", 2 * DAY, now)
        kept_output = _touch(Path(settings.output_dir) / "fresh.silk", 60, now)
        # Two days old: past file retention but within log retention
        kept_log = _touch(Path(settings.logs_dir) / "audio_converter_2020-01-01.log", 2 * DAY, now)

        report = run_sweep(settings, now=now)

        assert report == SweepReport(uploads=2, outputs=1, logs=0)
        assert report.total == 3
        assert kept_output.exists()
        assert kept_log.exists()


class TestHousekeeper:
    """Tests for the periodic asyncio task."""

    def test_runs_periodically_and_stops_promptly(self):
        calls = []

        async def scenario():
            housekeeper = Housekeeper(lambda: calls.append(time.monotonic()), 0.05)
            housekeeper.start()
            assert housekeeper.running
            await asyncio.sleep(0.3)
            started = time.monotonic()
            await housekeeper.stop()
            return time.monotonic() - started, housekeeper.running

        stop_elapsed, running = asyncio.run(scenario())

        assert len(calls) >= 2
        assert stop_elapsed < 1.0
        assert running is False

    def test_first_sweep_waits_for_interval(self):
        calls = []

        async def scenario():
            housekeeper = Housekeeper(lambda: calls.append(1), 60)
            housekeeper.start()
            await asyncio.sleep(0.05)
            await housekeeper.stop()

        asyncio.run(scenario())
        assert calls == []

    def test_failing_sweep_keeps_schedule(self, caplog):
        calls = []

        def sweep():
            calls.append(1)
            raise RuntimeError("disk on fire")

        async def scenario():
            housekeeper = Housekeeper(sweep, 0.05)
            housekeeper.start()
            await asyncio.sleep(0.3)
            await housekeeper.stop()

        asyncio.run(scenario())

        assert len(calls) >= 2
        assert any("Retention sweep failed" in r.getMessage() for r in caplog.records)

    def test_stop_without_start(self):
        asyncio.run(Housekeeper(lambda: None, 1).stop())
