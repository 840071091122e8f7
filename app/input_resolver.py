"""SILK Audio Converter - Input resolution.

Normalizes a ConversionRequest into a local file the transcoder can read:
- BytesInput: written atomically to a fresh file in the staging directory
- RemoteUrlInput: streamed over HTTP GET to a fresh staging file
- LocalPathInput: used in place, never copied and never deleted

The StagedInput records whether the resolver created the file. Only owned
files are removed by the pipeline after conversion.
"""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from app.errors import InputError, NetworkError, StorageIOError, UnsupportedInputError
from app.utils.atomic_io import atomic_stream_to_file, atomic_write_bytes
from app.utils.naming import safe_suffix, staged_input_path

logger = logging.getLogger(__name__)

SUPPORTED_URL_SCHEMES = ("http", "https")

USER_AGENT = "silk-audio-converter/0.1"


# --- Request Variants ---


@dataclass(frozen=True)
class BytesInput:
    """Audio content received in memory (multipart upload)."""

    data: bytes
    filename: str | None = None


@dataclass(frozen=True)
class LocalPathInput:
    """Audio file already on the local filesystem."""

    path: Path


@dataclass(frozen=True)
class RemoteUrlInput:
    """Audio file reachable over HTTP(S)."""

    url: str


ConversionRequest = Union[BytesInput, LocalPathInput, RemoteUrlInput]


@dataclass(frozen=True)
class StagedInput:
    """Local source file for one conversion.

    owned is True when the resolver created the file and the pipeline
    must delete it afterwards.
    """

    path: Path
    owned: bool


# --- Resolution ---


def resolve_input(
    request: ConversionRequest,
    staging_dir: Path,
    *,
    download_timeout: float = 30.0,
) -> StagedInput:
    """Produce a local file path for a conversion request.

    Args:
        request: One of BytesInput, LocalPathInput, RemoteUrlInput.
        staging_dir: Directory for files the resolver creates.
        download_timeout: Socket timeout for remote downloads in seconds.

    Returns:
        StagedInput pointing at a readable local file.

    Raises:
        InputError: Local path does not exist or upload is empty.
        UnsupportedInputError: Unknown request kind or URL scheme.
        NetworkError: Download transport failure or non-success status.
        StorageIOError: Staging file could not be written.
    """
    if isinstance(request, BytesInput):
        return _stage_bytes(request, Path(staging_dir))
    if isinstance(request, RemoteUrlInput):
        return _download(request, Path(staging_dir), download_timeout)
    if isinstance(request, LocalPathInput):
        return _use_local(request)
    raise UnsupportedInputError(f"Unsupported input type: {type(request).__name__}")


def _stage_bytes(request: BytesInput, staging_dir: Path) -> StagedInput:
    if not request.data:
        raise InputError("Uploaded file is empty")

    dest = staged_input_path(staging_dir, safe_suffix(request.filename))
    try:
        size = atomic_write_bytes(dest, request.data)
    except OSError as e:
        logger.error("Failed to write upload to %s: %s", dest, e)
        raise StorageIOError(f"Failed to save uploaded file: {e}") from e

    logger.debug("Saved upload %s (%d bytes)", dest.name, size)
    return StagedInput(path=dest, owned=True)


def _use_local(request: LocalPathInput) -> StagedInput:
    path = Path(request.path)
    if not path.is_file():
        raise InputError(f"Local file not found: {path}")
    logger.debug("Using local file in place: %s", path)
    return StagedInput(path=path, owned=False)


def _download(request: RemoteUrlInput, staging_dir: Path, timeout: float) -> StagedInput:
    url = request.url.strip()
    parsed = urllib.parse.urlsplit(url)
    if parsed.scheme.lower() not in SUPPORTED_URL_SCHEMES:
        raise UnsupportedInputError(f"Unsupported URL scheme: {parsed.scheme or '(none)'}")
    if not parsed.netloc:
        raise InputError(f"URL has no host: {url}")

    dest = staged_input_path(staging_dir, safe_suffix(parsed.path))
    logger.info("Downloading %s", url)

    http_request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        response = urllib.request.urlopen(http_request, timeout=timeout)
    except urllib.error.HTTPError as e:
        # HTTPError holds the open error response
        e.close()
        logger.error("Download of %s returned HTTP %d", url, e.code)
        raise NetworkError(url, f"HTTP status {e.code} {e.reason}") from e
    except urllib.error.URLError as e:
        logger.error("Download of %s failed: %s", url, e.reason)
        raise NetworkError(url, str(e.reason)) from e
    except (OSError, http.client.HTTPException) as e:
        logger.error("Download of %s failed: %s", url, e)
        raise NetworkError(url, str(e) or type(e).__name__) from e

    with response:
        status = getattr(response, "status", 200)
        if not 200 <= status < 300:
            logger.error("Download of %s returned HTTP %d", url, status)
            raise NetworkError(url, f"HTTP status {status}")
        try:
            size = atomic_stream_to_file(_TransportGuard(response), dest)
        except _TransportFailure as e:
            logger.error("Download of %s interrupted: %s", url, e.cause)
            raise NetworkError(url, str(e.cause) or type(e.cause).__name__) from e.cause
        except OSError as e:
            logger.error("Failed to write download to %s: %s", dest, e)
            raise StorageIOError(f"Failed to save download: {e}") from e

    logger.info("Downloaded %s (%d bytes)", dest.name, size)
    return StagedInput(path=dest, owned=True)


class _TransportFailure(Exception):
    """Read from the remote side failed mid-body."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause))


class _TransportGuard:
    """Wraps a response so read errors are told apart from local write errors."""

    def __init__(self, response):
        self._response = response

    def read(self, size: int = -1) -> bytes:
        try:
            return self._response.read(size)
        except (OSError, http.client.HTTPException) as e:
            raise _TransportFailure(e) from e
