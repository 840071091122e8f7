"""SILK Audio Converter - External process runner.

Runs one external executable to completion and classifies the outcome.
stdout and stderr are drained line-by-line into the logger by reader
threads that run independently of the wait-for-exit call, so a chatty
tool can never block on a full pipe.

The runner is stage-agnostic: it does not interpret tool output and never
retries. Callers translate a failed ProcessResult into their own error.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)

# Number of trailing stderr lines kept for error messages
STDERR_TAIL_LINES = 20

# How long to wait for reader threads after the process exits
READER_JOIN_TIMEOUT_SECONDS = 5.0


@dataclass
class ProcessResult:
    """Outcome of a single external process invocation."""

    ok: bool
    stage: str
    returncode: int | None = None
    message: str | None = None
    stderr_tail: list[str] = field(default_factory=list)

    def describe(self) -> str:
        """Human-readable summary used in error messages."""
        parts = [f"{self.stage} failed"]
        if self.message:
            parts.append(self.message)
        elif self.returncode is not None:
            parts.append(f"exit code {self.returncode}")
        if self.stderr_tail:
            parts.append(f"last output: {self.stderr_tail[-1]}")
        return ": ".join(parts)


def _drain(stream: IO[str], stage: str, stream_name: str, tail: deque[str] | None) -> None:
    """Read a pipe until EOF, logging each non-empty line."""
    try:
        for line in stream:
            text = line.strip()
            if not text:
                continue
            logger.debug("[%s %s] %s", stage, stream_name, text)
            if tail is not None:
                tail.append(text)
    except (ValueError, OSError):
        # Pipe closed underneath us (process killed)
        pass
    finally:
        try:
            stream.close()
        except OSError:
            pass


def run_process(
    executable: str | Path,
    args: Sequence[str | Path],
    *,
    stage: str,
    timeout: float | None = None,
) -> ProcessResult:
    """Run an external program and wait for it to exit.

    Args:
        executable: Path or name of the program.
        args: Ordered argument list (without the executable).
        stage: Label used in logs and in the result (e.g. "transcode").
        timeout: Optional limit in seconds; the process is killed when exceeded.

    Returns:
        ProcessResult with ok=True only when the exit code is 0.
    """
    cmd = [str(executable), *(str(a) for a in args)]
    logger.debug("Running %s: %s", stage, shlex.join(cmd))

    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        logger.error("Failed to start %s (%s): %s", stage, cmd[0], e)
        return ProcessResult(
            ok=False,
            stage=stage,
            message=f"failed to start {cmd[0]}: {e}",
        )

    stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
    readers = [
        threading.Thread(
            target=_drain,
            args=(proc.stdout, stage, "stdout", None),
            name=f"{stage}-stdout",
            daemon=True,
        ),
        threading.Thread(
            target=_drain,
            args=(proc.stderr, stage, "stderr", stderr_tail),
            name=f"{stage}-stderr",
            daemon=True,
        ),
    ]
    for reader in readers:
        reader.start()

    timed_out = False
    try:
        returncode = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        logger.error("%s exceeded %.1f seconds, killing pid %d", stage, timeout, proc.pid)
        proc.kill()
        returncode = proc.wait()

    for reader in readers:
        reader.join(timeout=READER_JOIN_TIMEOUT_SECONDS)

    tail = list(stderr_tail)

    if timed_out:
        return ProcessResult(
            ok=False,
            stage=stage,
            returncode=returncode,
            message=f"timed out after {timeout} seconds",
            stderr_tail=tail,
        )

    if returncode != 0:
        logger.error("%s exited with code %d", stage, returncode)
        for line in tail:
            logger.error("%s: %s", stage, line)
        return ProcessResult(ok=False, stage=stage, returncode=returncode, stderr_tail=tail)

    logger.debug("%s finished successfully", stage)
    return ProcessResult(ok=True, stage=stage, returncode=0, stderr_tail=tail)
