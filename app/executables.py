"""SILK Audio Converter - External tool resolution.

Tool locations are resolved once when the service context is built and
never re-resolved per request.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from app.config import (
    ENCODER_FALLBACK_PATH,
    ENCODER_NAME,
    FFMPEG_FALLBACK_PATH,
    FFMPEG_NAME,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolPaths:
    """Resolved locations of the transcoder and the SILK encoder."""

    ffmpeg: str
    encoder: str


def resolve_executable(name: str, fallback: str | Path) -> str:
    """Find an executable on PATH, falling back to a fixed location.

    Args:
        name: Program name searched on PATH.
        fallback: Platform default used when the search fails.

    Returns:
        The resolved path as a string.
    """
    found = shutil.which(name)
    if found:
        logger.info("Found %s on PATH: %s", name, found)
        return found

    fallback = str(fallback)
    if not Path(fallback).exists():
        logger.warning("%s not found on PATH and fallback %s does not exist", name, fallback)
    else:
        logger.info("Using fallback path for %s: %s", name, fallback)
    return fallback


def resolve_tool_paths() -> ToolPaths:
    """Resolve both external tools."""
    return ToolPaths(
        ffmpeg=resolve_executable(FFMPEG_NAME, FFMPEG_FALLBACK_PATH),
        encoder=resolve_executable(ENCODER_NAME, ENCODER_FALLBACK_PATH),
    )
