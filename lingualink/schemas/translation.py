"""
LinguaLink — Translation Schemas
=================================
Pydantic models for everything the client sends to or receives from the
translation backend over HTTP.

The backend speaks camelCase; every model accepts both the wire alias and
the Python field name.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from lingualink.data.mime_types import guess_mime_type


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Local files ──────────────────────────────────────────────────────────


class FileDescriptor(BaseModel):
    """A local file picked by the user for upload."""

    name: str = Field(..., min_length=1, description="Display name sent as the multipart filename.")
    mime_type: str = Field(..., min_length=1, description="MIME type of the file.")
    size: int = Field(default=0, ge=0, description="Byte length, if known.")
    uri: str = Field(..., min_length=1, description="Local filesystem path.")

    @classmethod
    def from_path(cls, path: str | Path, mime_type: Optional[str] = None) -> "FileDescriptor":
        """Describe a file on disk, guessing the MIME type from its extension."""
        path = Path(path)
        return cls(
            name=path.name,
            mime_type=mime_type or guess_mime_type(path.name),
            size=path.stat().st_size if path.exists() else 0,
            uri=str(path),
        )


# ── File (asynchronous job) mode ─────────────────────────────────────────


class JobHandle(WireModel):
    """
    Acknowledgement returned by ``POST /translator/upload``.

    Only ``jobId`` is guaranteed; any other server fields are kept as extras.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    job_id: str = Field(..., alias="jobId", description="Opaque job identifier from the backend.")
    socket_id: Optional[str] = Field(
        default=None,
        alias="socketId",
        description="Session identifier the job was submitted with.",
    )


class FileTranslationResult(BaseModel):
    """A finished file job: the translated artifact's name and where to get it."""

    file_name: str = Field(..., description="Name of the translated file on the server.")
    download_url: str = Field(..., description="Absolute download URL.")
    job_id: Optional[str] = Field(default=None, description="Job that produced the file.")


class DownloadedFile(BaseModel):
    """A translated file stored locally, ready to be opened or shared."""

    path: Path = Field(..., description="Final local location of the file.")
    mime_type: str = Field(..., description="MIME type, for viewer/share intents.")
    size: int = Field(..., gt=0, description="Size in bytes.")
    relocated: bool = Field(
        default=False,
        description="True if the file was copied into shared storage.",
    )


# ── Text mode ────────────────────────────────────────────────────────────


class TextTranslationResult(WireModel):
    translated_text: str = Field(default="", alias="translatedText")
    target_language: Optional[str] = Field(default=None, alias="targetLanguage")
    success: bool = Field(default=False)


# ── Image (OCR) mode ─────────────────────────────────────────────────────


class BoundingBox(BaseModel):
    """Segment position as percentages of the image dimensions."""

    x: float = Field(..., ge=0.0, le=100.0)
    y: float = Field(..., ge=0.0, le=100.0)
    width: float = Field(..., ge=0.0, le=100.0)
    height: float = Field(..., ge=0.0, le=100.0)


class Segment(BaseModel):
    """One OCR-detected text region."""

    original: str = Field(default="", description="Text recognized in the region.")
    translated: str = Field(default="", description="Translation of that text.")
    position: Optional[BoundingBox] = Field(
        default=None, description="Overlay box for the region."
    )


class ImageTranslationResult(TextTranslationResult):
    segments: list[Segment] = Field(default_factory=list)


# ── Audio mode ───────────────────────────────────────────────────────────


class AudioDetails(WireModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    detected_language: Optional[str] = Field(default=None, alias="detectedLanguage")


class AudioTranslationResult(WireModel):
    success: bool = Field(default=False)
    original_text: str = Field(default="", alias="originalText")
    translated_text: str = Field(default="", alias="translatedText")
    target_language: Optional[str] = Field(default=None, alias="targetLanguage")
    audio_details: AudioDetails = Field(default_factory=AudioDetails, alias="audioDetails")
