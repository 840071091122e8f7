"""SILK Audio Converter - Conversion pipeline.

Two external stages with a filesystem handoff between them:

    staged input --ffmpeg--> <token>.pcm --encoder--> <token>.silk

Stage: transcode
Output: raw PCM, s16le, mono, 24 kHz, in the staging directory

Stage: encode
Output: SILK file in the output directory

The intermediate PCM belongs to exactly one conversion and is removed on
every exit path. Owned staged inputs are removed as well; local paths
supplied by the caller are left alone.

Error codes:
- TRANSCODE_FAILED: ffmpeg exited non-zero or could not start
- ENCODE_FAILED: encoder exited non-zero or could not start
- OUTPUT_MISSING: encoder reported success but wrote nothing
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from app.config import PCM_CHANNELS, PCM_CODEC, PCM_FORMAT, PCM_SAMPLE_RATE, Settings
from app.errors import EncodeError, OutputMissingError, StorageIOError, TranscodeError
from app.executables import ToolPaths
from app.input_resolver import ConversionRequest, StagedInput, resolve_input
from app.process_runner import ProcessResult, run_process
from app.utils.naming import output_filename, pcm_path, unique_token

logger = logging.getLogger(__name__)

STAGE_TRANSCODE = "transcode"
STAGE_ENCODE = "encode"

Runner = Callable[..., ProcessResult]


@dataclass
class ConversionResult:
    """Result of a successful conversion."""

    filename: str
    path: Path
    elapsed_seconds: float


def transcode_args(input_path: Path, output_path: Path) -> list[str]:
    """ffmpeg arguments producing headerless mono 16-bit 24 kHz PCM."""
    return [
        "-nostdin",
        "-y",
        "-i",
        str(input_path),
        "-f",
        PCM_FORMAT,
        "-acodec",
        PCM_CODEC,
        "-ar",
        str(PCM_SAMPLE_RATE),
        "-ac",
        str(PCM_CHANNELS),
        str(output_path),
    ]


def encode_args(pcm: Path, output_path: Path, mode_flags: Sequence[str]) -> list[str]:
    """SILK encoder arguments: input, output, then mode flags."""
    return [str(pcm), str(output_path), *mode_flags]


class ConversionPipeline:
    """Converts one request at a time per call; safe to call from many threads.

    Args:
        settings: Directories, timeouts and encoder flags.
        tools: Resolved executable locations (resolved once at startup).
        runner: Process runner, replaceable in tests.
    """

    def __init__(self, settings: Settings, tools: ToolPaths, runner: Runner = run_process):
        self.settings = settings
        self.tools = tools
        self._runner = runner
        limit = settings.max_concurrent_conversions
        self._slots = threading.BoundedSemaphore(limit) if limit > 0 else None

    @contextlib.contextmanager
    def _admission(self) -> Iterator[None]:
        if self._slots is None:
            yield
            return
        with self._slots:
            yield

    def convert(self, request: ConversionRequest) -> ConversionResult:
        """Convert a request to a SILK file in the output directory.

        Returns:
            ConversionResult whose filename is relative to the output directory.

        Raises:
            InputError, UnsupportedInputError, NetworkError, StorageIOError:
                Input could not be resolved.
            TranscodeError: ffmpeg stage failed.
            EncodeError: encoder stage failed.
            OutputMissingError: encoder succeeded without producing output.
        """
        with self._admission():
            return self._convert(request)

    def _convert(self, request: ConversionRequest) -> ConversionResult:
        started = time.monotonic()
        settings = self.settings

        staged = resolve_input(
            request,
            settings.upload_dir,
            download_timeout=settings.download_timeout_seconds,
        )

        token = unique_token()
        pcm = pcm_path(settings.upload_dir, token)
        filename = output_filename(token)
        output_path = Path(settings.output_dir) / filename
        logger.debug("Converting %s -> %s (pcm=%s)", staged.path, output_path, pcm.name)

        try:
            try:
                pcm.parent.mkdir(parents=True, exist_ok=True)
                output_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageIOError(f"Failed to prepare working directories: {e}") from e

            result = self._runner(
                self.tools.ffmpeg,
                transcode_args(staged.path, pcm),
                stage=STAGE_TRANSCODE,
                timeout=settings.process_timeout_seconds,
            )
            if not result.ok:
                raise TranscodeError(result)
            logger.info("Transcoded %s to PCM", staged.path.name)

            result = self._runner(
                self.tools.encoder,
                encode_args(pcm, output_path, settings.encoder_mode_flags),
                stage=STAGE_ENCODE,
                timeout=settings.process_timeout_seconds,
            )
            if not result.ok:
                raise EncodeError(result)
            logger.info("Encoded PCM to %s", filename)
        finally:
            self._cleanup(pcm, staged)

        if not output_path.is_file():
            logger.error("Encoder reported success but %s is missing", output_path)
            raise OutputMissingError(str(output_path))

        elapsed = time.monotonic() - started
        logger.info("Conversion complete: %s (%.2fs)", filename, elapsed)
        return ConversionResult(filename=filename, path=output_path, elapsed_seconds=elapsed)

    def _cleanup(self, pcm: Path, staged: StagedInput) -> None:
        """Remove the intermediate PCM and any owned staged input.

        Removal failures are logged and never replace the original outcome.
        """
        _remove_quietly(pcm, "intermediate PCM")
        if staged.owned:
            _remove_quietly(staged.path, "staged input")


def _remove_quietly(path: Path, label: str) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove %s %s: %s", label, path, e)
