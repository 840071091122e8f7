"""SILK Audio Converter - Unique file naming.

Names combine a wall-clock timestamp with a random suffix so two
conversions started within the same clock tick never collide.
Does NOT create files or directories.
"""

from __future__ import annotations

import re
import secrets
from datetime import datetime
from pathlib import Path, PurePosixPath

from app.config import OUTPUT_SUFFIX, PCM_SUFFIX

# Random suffix length in hex characters
TOKEN_HEX_CHARS = 8

DEFAULT_INPUT_SUFFIX = ".wav"

# Extensions kept from client-supplied names: short, alphanumeric only
_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,8}$")


def unique_token(now: datetime | None = None) -> str:
    """Timestamp with microseconds plus a random hex suffix.

    Format: YYYYMMDD_HHMMSS_ffffff_<hex8>
    """
    now = now or datetime.now()
    return f"{now:%Y%m%d_%H%M%S_%f}_{secrets.token_hex(TOKEN_HEX_CHARS // 2)}"


def output_filename(token: str) -> str:
    """SILK output filename for a conversion token."""
    return f"{token}{OUTPUT_SUFFIX}"


def pcm_path(staging_dir: Path, token: str) -> Path:
    """Intermediate PCM path for a conversion token."""
    return Path(staging_dir) / f"{token}{PCM_SUFFIX}"


def safe_suffix(name: str | None, default: str = DEFAULT_INPUT_SUFFIX) -> str:
    """Extension of a client-supplied name, or default when it looks unsafe.

    Args:
        name: Filename or URL path (may be None).
        default: Suffix returned when none can be kept.

    Returns:
        Lowercase suffix including the leading dot.
    """
    if not name:
        return default
    suffix = PurePosixPath(name.replace("\\", "/")).suffix
    if _SAFE_SUFFIX.match(suffix):
        return suffix.lower()
    return default


def staged_input_path(staging_dir: Path, suffix: str = DEFAULT_INPUT_SUFFIX) -> Path:
    """Fresh path in the staging directory for an inbound file."""
    return Path(staging_dir) / f"{unique_token()}{suffix}"


def is_safe_filename(filename: str) -> bool:
    """True when filename cannot escape its directory.

    Rejects empty names and anything containing "..", "/" or "\\".
    """
    if not filename:
        return False
    return ".." not in filename and "/" not in filename and "\\" not in filename
