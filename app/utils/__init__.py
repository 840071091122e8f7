"""SILK Audio Converter - Utility modules."""

from app.utils.atomic_io import (
    atomic_stream_to_file,
    atomic_write_bytes,
    cleanup_orphan_temp_files,
)
from app.utils.naming import (
    is_safe_filename,
    output_filename,
    pcm_path,
    safe_suffix,
    staged_input_path,
    unique_token,
)

__all__ = [
    # atomic_io
    "atomic_write_bytes",
    "atomic_stream_to_file",
    "cleanup_orphan_temp_files",
    # naming
    "unique_token",
    "output_filename",
    "pcm_path",
    "safe_suffix",
    "staged_input_path",
    "is_safe_filename",
]
