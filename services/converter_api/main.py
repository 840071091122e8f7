"""SILK Audio Converter - Converter API FastAPI application.

HTTP surface over the conversion pipeline: upload, URL and combined convert
endpoints, output download, file listing and a TTS stub.

Conversions run in Starlette's threadpool; each request owns its own
pipeline invocation and there is no queue in front of it. A client that
disconnects does not cancel a conversion already in progress.

Run with:
    python -m services.converter_api --port 8080
    uvicorn services.converter_api.main:app  # default settings
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile as StarletteUploadFile

from app import __version__
from app.config import Settings
from app.context import ServiceContext, build_context
from app.errors import (
    ConvertError,
    ConvertErrorCode,
    FileNotFoundConvertError,
    InputError,
    NotImplementedFeatureError,
    UnsupportedInputError,
)
from app.executables import ToolPaths
from app.housekeeping import Housekeeper, run_sweep
from app.input_resolver import BytesInput, ConversionRequest, RemoteUrlInput
from app.logging_setup import close_logging, configure_logging
from app.pipeline import ConversionResult, Runner
from app.process_runner import run_process
from app.schemas import (
    ConvertSuccessResponse,
    ConvertUrlRequest,
    ErrorResponse,
    FileEntry,
    FileListResponse,
)
from app.utils.atomic_io import cleanup_orphan_temp_files
from app.utils.naming import is_safe_filename

logger = logging.getLogger(__name__)

ROUTES_SUMMARY = (
    ("GET", "/", "upload page"),
    ("POST", "/upload", "convert an uploaded file"),
    ("POST", "/url", "convert a remote URL"),
    ("POST", "/convert", "convert upload or URL by Content-Type"),
    ("POST", "/tts", "text to speech (not implemented)"),
    ("GET", "/download/{filename}", "download a SILK file"),
    ("GET", "/api/files", "list staged and output files"),
    ("GET", "/static/*", "static assets"),
)


# --- Error Handling ---


def error_code_to_status(error_code: str) -> int:
    """Map error codes to HTTP status codes.

    - INPUT_INVALID, UNSUPPORTED_INPUT -> 400
    - FILE_NOT_FOUND -> 404
    - NOT_IMPLEMENTED -> 501
    - everything else -> 500
    """
    if error_code in (ConvertErrorCode.INPUT_INVALID, ConvertErrorCode.UNSUPPORTED_INPUT):
        return 400
    if error_code == ConvertErrorCode.FILE_NOT_FOUND:
        return 404
    if error_code == ConvertErrorCode.NOT_IMPLEMENTED:
        return 501
    return 500


def make_error_response(error_code: str, error_message: str) -> JSONResponse:
    """Create a JSON error response."""
    return JSONResponse(
        status_code=error_code_to_status(error_code),
        content=ErrorResponse(error=error_message, error_code=error_code).model_dump(),
    )


def _error_from_exception(e: ConvertError) -> JSONResponse:
    return make_error_response(e.error_code, e.message)


def _validation_message(errors) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request: " + "; ".join(parts)


# --- Context Dependency ---


def get_context(request: Request) -> ServiceContext:
    """Dependency that provides the service context.

    Raises:
        RuntimeError: If the context is missing (app lifespan not invoked).
    """
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("Service context not initialized. App lifespan not invoked?")
    return context


ContextDep = Annotated[ServiceContext, Depends(get_context)]


# --- Conversion Helpers ---


def _client(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _success_response(request: Request, result: ConversionResult) -> ConvertSuccessResponse:
    return ConvertSuccessResponse(
        url=str(request.url_for("download", filename=result.filename)),
        filename=result.filename,
        duration=f"{result.elapsed_seconds:.2f}s",
    )


def _run_conversion(
    request: Request,
    context: ServiceContext,
    conversion_request: ConversionRequest,
    label: str,
):
    """Run the pipeline and shape the response.

    Full error detail is logged server-side; clients get the error message
    for known failures and a generic one otherwise.
    """
    try:
        result = context.pipeline.convert(conversion_request)
    except ConvertError as e:
        logger.error("Conversion of %s failed: %s", label, e)
        return _error_from_exception(e)
    except Exception:
        logger.exception("Unexpected error converting %s", label)
        return make_error_response(
            ConvertErrorCode.INTERNAL_ERROR,
            "An unexpected error occurred during conversion",
        )

    response = _success_response(request, result)
    logger.info("Converted %s -> %s in %s", label, result.filename, response.duration)
    return response


def _list_files(directory: Path) -> list[FileEntry]:
    entries = []
    for path in sorted(Path(directory).iterdir()):
        try:
            if not path.is_file():
                continue
            mtime = path.stat().st_mtime
        except OSError:
            continue
        entries.append(FileEntry(name=path.name, time=int(mtime * 1000)))
    return entries


def _cleanup_orphan_temp_files_safe(directory: Path) -> None:
    """Remove interrupted staging writes on startup (best-effort)."""
    try:
        removed = cleanup_orphan_temp_files(directory)
        if removed:
            logger.info("Startup cleanup: removed %d orphan temp files", removed)
    except Exception:
        logger.warning("Startup cleanup failed (non-fatal)", exc_info=True)


def _final_sweep_safe(settings: Settings) -> None:
    try:
        run_sweep(settings)
    except Exception:
        logger.warning("Shutdown sweep failed (non-fatal)", exc_info=True)


# --- App Factory ---


def create_app(
    settings: Settings | None = None,
    *,
    tools: ToolPaths | None = None,
    runner: Runner = run_process,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Runtime settings; defaults come from the environment.
        tools: Pre-resolved tool paths; resolved at startup when omitted.
        runner: Process runner handed to the pipeline.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create directories, start logging, build the context, run housekeeping."""
        settings.ensure_directories()
        log_handle = configure_logging(settings.logs_dir, settings.log_level, settings.color)
        try:
            logger.info("==== SILK audio converter starting ====")
            logger.info("Debug mode: %s", settings.debug)
            logger.info("Log level: %s, colour: %s", settings.log_level, settings.color)
            logger.info("Upload dir: %s", settings.upload_dir)
            logger.info("Output dir: %s", settings.output_dir)

            _cleanup_orphan_temp_files_safe(settings.upload_dir)

            context = build_context(settings, tools=tools, runner=runner)
            logger.debug("ffmpeg: %s", context.tools.ffmpeg)
            logger.debug("encoder: %s", context.tools.encoder)
            app.state.context = context

            if settings.debug:
                logger.debug("Routes:")
                for method, path, description in ROUTES_SUMMARY:
                    logger.debug("  %-4s %-22s %s", method, path, description)

            housekeeper = Housekeeper(
                lambda: run_sweep(settings),
                settings.cleanup_interval_seconds,
            )
            housekeeper.start()
            try:
                yield
            finally:
                logger.info("Shutting down")
                await housekeeper.stop()
                _final_sweep_safe(settings)
                app.state.context = None
                logger.info("Server stopped")
        finally:
            close_logging(log_handle)

    app = FastAPI(
        title="SILK Audio Converter",
        description="Converts audio files to SILK via ffmpeg and a SILK encoder.",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.context = None

    if Path(settings.static_dir).is_dir():
        app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")

    _register_routes(app, settings)
    return app


def _register_routes(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies are client errors (400), not 422."""
        message = _validation_message(exc.errors())
        logger.error("Invalid request from %s to %s: %s", _client(request), request.url.path, message)
        return make_error_response(ConvertErrorCode.INPUT_INVALID, message)

    @app.get("/", summary="Upload page", include_in_schema=False)
    def index(request: Request):
        logger.debug("Index request from %s", _client(request))
        index_path = Path(settings.static_dir) / "index.html"
        if not index_path.is_file():
            return make_error_response(ConvertErrorCode.FILE_NOT_FOUND, "index.html not found")
        return FileResponse(index_path, media_type="text/html")

    @app.get("/health", summary="Health check")
    def health_check():
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post(
        "/upload",
        response_model=ConvertSuccessResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Missing or empty file"},
            500: {"model": ErrorResponse, "description": "Conversion failed"},
        },
        summary="Convert an uploaded audio file",
    )
    def upload(
        request: Request,
        context: ContextDep,
        file: Annotated[UploadFile, File(description="Audio file to convert")],
    ):
        """Convert a multipart upload (field "file") to SILK."""
        filename = file.filename or "upload"
        logger.info("Upload request from %s: %s", _client(request), filename)
        try:
            data = file.file.read()
        except OSError as e:
            logger.error("Cannot read uploaded file %s: %s", filename, e)
            return make_error_response(ConvertErrorCode.IO_ERROR, f"Cannot read uploaded file: {e}")

        logger.info("Uploaded %s, %.2f KB", filename, len(data) / 1024)
        return _run_conversion(request, context, BytesInput(data=data, filename=filename), filename)

    @app.post(
        "/url",
        response_model=ConvertSuccessResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid URL request"},
            500: {"model": ErrorResponse, "description": "Download or conversion failed"},
        },
        summary="Convert a remote audio file",
    )
    def convert_url(body: ConvertUrlRequest, request: Request, context: ContextDep):
        """Download the file at body.url and convert it to SILK."""
        logger.info("URL request from %s: %s", _client(request), body.url)
        return _run_conversion(request, context, RemoteUrlInput(url=body.url), body.url)

    @app.post(
        "/convert",
        response_model=ConvertSuccessResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Unsupported or malformed request"},
            500: {"model": ErrorResponse, "description": "Conversion failed"},
        },
        summary="Convert an upload or a URL",
        description="multipart/form-data with a 'file' field, or application/json with 'url'.",
    )
    async def convert(request: Request, context: ContextDep):
        """Dispatch on Content-Type to the upload or URL flow."""
        try:
            conversion_request, label = await _parse_convert_request(request)
        except ConvertError as e:
            logger.error("Rejected /convert request from %s: %s", _client(request), e)
            return _error_from_exception(e)

        return await run_in_threadpool(_run_conversion, request, context, conversion_request, label)

    @app.get(
        "/download/{filename:path}",
        name="download",
        responses={
            400: {"model": ErrorResponse, "description": "Unsafe filename"},
            404: {"model": ErrorResponse, "description": "File not found"},
        },
        summary="Download a converted SILK file",
    )
    def download(filename: str, request: Request, context: ContextDep):
        """Stream a file from the output directory."""
        client = _client(request)
        if not is_safe_filename(filename):
            logger.warning("Rejected unsafe download name from %s: %r", client, filename)
            return make_error_response(ConvertErrorCode.INPUT_INVALID, "Invalid filename")

        path = Path(context.settings.output_dir) / filename
        if not path.is_file():
            logger.warning("Download of missing file from %s: %s", client, path)
            return _error_from_exception(FileNotFoundConvertError(filename))

        logger.info("Serving %s to %s", filename, client)
        return FileResponse(path, media_type="application/octet-stream", filename=filename)

    @app.get(
        "/api/files",
        response_model=FileListResponse,
        responses={500: {"model": ErrorResponse, "description": "Listing failed"}},
        summary="List staged and output files",
    )
    def list_files(context: ContextDep):
        settings = context.settings
        try:
            uploads = _list_files(settings.upload_dir)
            silk_files = _list_files(settings.output_dir)
        except OSError as e:
            logger.error("Failed to list files: %s", e)
            return make_error_response(ConvertErrorCode.IO_ERROR, "Failed to list files")
        return FileListResponse(uploads=uploads, silk_files=silk_files)

    @app.post(
        "/tts",
        status_code=501,
        responses={501: {"model": ErrorResponse, "description": "Not implemented"}},
        summary="Text to speech (not implemented)",
    )
    async def tts(request: Request):
        """Accepts any body and always answers 501."""
        body = await request.body()
        logger.info("TTS request from %s (%d bytes)", _client(request), len(body))
        logger.warning("TTS is not implemented")
        return _error_from_exception(NotImplementedFeatureError("TTS"))


async def _parse_convert_request(request: Request) -> tuple[ConversionRequest, str]:
    """Build a ConversionRequest from a /convert body.

    Raises:
        InputError: Missing file/url or malformed body.
        UnsupportedInputError: Content-Type is neither multipart nor JSON.
    """
    content_type = request.headers.get("content-type", "").lower()

    if "multipart/form-data" in content_type:
        try:
            form = await request.form()
        except Exception as e:
            raise InputError(f"Malformed multipart body: {e}") from e
        upload = form.get("file")
        if not isinstance(upload, StarletteUploadFile):
            raise InputError("Missing 'file' field")
        filename = upload.filename or "upload"
        data = await upload.read()
        logger.info("Convert request with upload %s (%.2f KB)", filename, len(data) / 1024)
        return BytesInput(data=data, filename=filename), filename

    if "application/json" in content_type:
        try:
            payload = await request.json()
        except ValueError as e:
            raise InputError("Malformed JSON body") from e
        try:
            body = ConvertUrlRequest.model_validate(payload)
        except ValidationError as e:
            raise InputError(_validation_message(e.errors())) from e
        logger.info("Convert request with URL %s", body.url)
        return RemoteUrlInput(url=body.url), body.url

    raise UnsupportedInputError(f"Unsupported Content-Type: {content_type or '(none)'}")


app = create_app()
