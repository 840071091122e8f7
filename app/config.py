"""SILK Audio Converter - Configuration constants.

Module-level defaults with environment overrides, collected into a frozen
Settings object at startup. No external config libraries.
Data directories live under SILK_BASE_DIR (the working directory by default).
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path

# Static assets for the upload page, shipped inside the package
STATIC_DIR = Path(__file__).parent / "static"


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    """Read an integer from the environment.

    Invalid or out-of-range values fall back to the default.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset or invalid.
        minimum: Smallest accepted value.

    Returns:
        The parsed integer or the default.
    """
    env_val = os.environ.get(name)
    if env_val:
        try:
            value = int(env_val)
            if value >= minimum:
                return value
        except ValueError:
            pass
    return default


def _env_float(name: str, default: float | None = None) -> float | None:
    """Read a positive float from the environment, else the default."""
    env_val = os.environ.get(name)
    if env_val:
        try:
            value = float(env_val)
            if value > 0:
                return value
        except ValueError:
            pass
    return default


def default_base_dir() -> Path:
    """SILK_BASE_DIR when set, otherwise the current working directory."""
    return Path(os.environ.get("SILK_BASE_DIR") or Path.cwd()).resolve()


# Data directories
BASE_DIR = default_base_dir()
UPLOAD_DIR = BASE_DIR / "uploads"
OUTPUT_DIR = BASE_DIR / "outputs"
LOGS_DIR = BASE_DIR / "logs"

# Log files are named audio_converter_YYYY-MM-DD.log
LOG_FILE_PREFIX = "audio_converter_"

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = _env_int("SILK_PORT", 8080, minimum=1)
DEFAULT_LOG_LEVEL = os.environ.get("SILK_LOG_LEVEL", "DEBUG").upper()
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Retention policy
FILE_RETENTION_SECONDS = _env_int("SILK_FILE_RETENTION_SEC", 24 * 60 * 60, minimum=1)
LOG_RETENTION_SECONDS = _env_int("SILK_LOG_RETENTION_SEC", 7 * 24 * 60 * 60, minimum=1)
CLEANUP_INTERVAL_SECONDS = _env_int("SILK_CLEANUP_INTERVAL_SEC", 60 * 60, minimum=1)

# Remote input download timeout in seconds
DOWNLOAD_TIMEOUT_SECONDS = _env_float("SILK_DOWNLOAD_TIMEOUT_SEC", 30.0)

# External tool timeout; unset means wait indefinitely
PROCESS_TIMEOUT_SECONDS = _env_float("SILK_PROCESS_TIMEOUT_SEC")

# 0 = no admission limit on concurrent conversions
MAX_CONCURRENT_CONVERSIONS = _env_int("SILK_MAX_CONCURRENT", 0)

# Intermediate PCM format expected by the SILK encoder
PCM_SAMPLE_RATE = 24000
PCM_CHANNELS = 1
PCM_FORMAT = "s16le"
PCM_CODEC = "pcm_s16le"

OUTPUT_SUFFIX = ".silk"
PCM_SUFFIX = ".pcm"

# Encoder mode flag (WeChat/QQ compatible header)
ENCODER_MODE_FLAGS: tuple[str, ...] = ("-tencent",)

# Executable names searched on PATH, with platform fallbacks
FFMPEG_NAME = "ffmpeg"
ENCODER_NAME = "encoder"

if sys.platform == "win32":
    _FFMPEG_FALLBACK = r"D:\ffmpeg-7.1.1-essentials_build\bin\ffmpeg.exe"
    _ENCODER_FALLBACK = r"D:\silk\encoder.exe"
else:
    _FFMPEG_FALLBACK = "/usr/bin/ffmpeg"
    _ENCODER_FALLBACK = "/usr/local/bin/encoder"

FFMPEG_FALLBACK_PATH = os.environ.get("SILK_FFMPEG_PATH") or _FFMPEG_FALLBACK
ENCODER_FALLBACK_PATH = os.environ.get("SILK_ENCODER_PATH") or _ENCODER_FALLBACK


@dataclass(frozen=True)
class Settings:
    """Runtime settings for one service instance.

    Built once at process start (CLI flags over environment over defaults)
    and carried by the service context.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    debug: bool = True
    log_level: str = DEFAULT_LOG_LEVEL
    color: bool = True
    upload_dir: Path = UPLOAD_DIR
    output_dir: Path = OUTPUT_DIR
    logs_dir: Path = LOGS_DIR
    static_dir: Path = STATIC_DIR
    file_retention_seconds: int = FILE_RETENTION_SECONDS
    log_retention_seconds: int = LOG_RETENTION_SECONDS
    cleanup_interval_seconds: int = CLEANUP_INTERVAL_SECONDS
    download_timeout_seconds: float = DOWNLOAD_TIMEOUT_SECONDS
    process_timeout_seconds: float | None = PROCESS_TIMEOUT_SECONDS
    max_concurrent_conversions: int = MAX_CONCURRENT_CONVERSIONS
    encoder_mode_flags: tuple[str, ...] = field(default=ENCODER_MODE_FLAGS)

    def with_base_dir(self, base_dir: str | Path) -> Settings:
        """Return a copy with uploads/outputs/logs placed under base_dir."""
        base = Path(base_dir)
        return replace(
            self,
            upload_dir=base / "uploads",
            output_dir=base / "outputs",
            logs_dir=base / "logs",
        )

    def ensure_directories(self) -> None:
        """Create the uploads, outputs and logs directories if absent."""
        for directory in (self.upload_dir, self.output_dir, self.logs_dir):
            Path(directory).mkdir(parents=True, exist_ok=True)
