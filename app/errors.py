"""SILK Audio Converter - Error taxonomy.

Every failure a conversion can hit maps to one error code. The HTTP layer
is the only place that turns these into status codes.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.process_runner import ProcessResult


class ConvertErrorCode(StrEnum):
    """Error codes surfaced to API clients."""

    INPUT_INVALID = "INPUT_INVALID"
    UNSUPPORTED_INPUT = "UNSUPPORTED_INPUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    IO_ERROR = "IO_ERROR"
    TRANSCODE_FAILED = "TRANSCODE_FAILED"
    ENCODE_FAILED = "ENCODE_FAILED"
    OUTPUT_MISSING = "OUTPUT_MISSING"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ConvertError(Exception):
    """Base exception for conversion errors."""

    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}")


class InputError(ConvertError):
    """Bad or missing request field."""

    def __init__(self, reason: str):
        super().__init__(ConvertErrorCode.INPUT_INVALID, reason)


class UnsupportedInputError(ConvertError):
    """Input kind or URL scheme the resolver cannot handle."""

    def __init__(self, reason: str):
        super().__init__(ConvertErrorCode.UNSUPPORTED_INPUT, reason)


class NetworkError(ConvertError):
    """Remote download failed (transport error or non-success status)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(ConvertErrorCode.NETWORK_ERROR, f"Download failed for {url}: {reason}")


class StorageIOError(ConvertError):
    """Filesystem failure while staging input."""

    def __init__(self, reason: str):
        super().__init__(ConvertErrorCode.IO_ERROR, reason)


class StageError(ConvertError):
    """An external tool stage failed. Carries the runner's result."""

    def __init__(self, error_code: str, result: ProcessResult):
        self.result = result
        super().__init__(error_code, result.describe())


class TranscodeError(StageError):
    """Transcoder (ffmpeg) stage failed."""

    def __init__(self, result: ProcessResult):
        super().__init__(ConvertErrorCode.TRANSCODE_FAILED, result)


class EncodeError(StageError):
    """SILK encoder stage failed."""

    def __init__(self, result: ProcessResult):
        super().__init__(ConvertErrorCode.ENCODE_FAILED, result)


class OutputMissingError(ConvertError):
    """Encoder reported success but no output file was produced."""

    def __init__(self, path: str):
        super().__init__(ConvertErrorCode.OUTPUT_MISSING, f"Output file was not produced: {path}")


class FileNotFoundConvertError(ConvertError):
    """Requested output file does not exist."""

    def __init__(self, filename: str):
        super().__init__(ConvertErrorCode.FILE_NOT_FOUND, f"File not found: {filename}")


class NotImplementedFeatureError(ConvertError):
    """Feature accepted by the API but not provided by this service."""

    def __init__(self, feature: str):
        super().__init__(ConvertErrorCode.NOT_IMPLEMENTED, f"{feature} is not implemented")


class LoggingSetupError(Exception):
    """Logging could not be initialised. Startup must abort."""
