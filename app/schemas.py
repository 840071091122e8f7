"""SILK Audio Converter - Pydantic models for API validation.

Request/response models used by FastAPI for runtime validation and the
OpenAPI schema.
"""

from pydantic import BaseModel, ConfigDict, Field

# --- Request Models ---


class ConvertUrlRequest(BaseModel):
    """Request payload for converting a remote audio file."""

    url: str = Field(
        ...,
        min_length=1,
        description="HTTP(S) URL of the audio file to convert",
    )


# --- Response Models ---


class ConvertSuccessResponse(BaseModel):
    """Response for a successful conversion."""

    model_config = ConfigDict(extra="forbid")

    success: bool = Field(default=True, description="Operation status")
    url: str = Field(..., description="Download URL of the SILK file")
    filename: str = Field(..., description="SILK filename in the output directory")
    duration: str = Field(..., description="Processing time, e.g. '1.23s'")


class ErrorResponse(BaseModel):
    """Response for failed operations."""

    model_config = ConfigDict(extra="forbid")

    success: bool = Field(default=False, description="Operation status")
    error: str = Field(..., description="Human-readable error description")
    error_code: str = Field(..., description="Error taxonomy code")


class FileEntry(BaseModel):
    """One file in a listing."""

    name: str = Field(..., description="Filename")
    time: int = Field(..., description="Modification time, epoch milliseconds")


class FileListResponse(BaseModel):
    """Files currently held in the staging and output directories."""

    success: bool = Field(default=True)
    uploads: list[FileEntry] = Field(default_factory=list)
    silk_files: list[FileEntry] = Field(default_factory=list)


__all__ = [
    "ConvertUrlRequest",
    "ConvertSuccessResponse",
    "ErrorResponse",
    "FileEntry",
    "FileListResponse",
]
