"""Synchronous translation modes: text, image (OCR) and recorded audio."""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from lingualink.core.errors import handle_error
from lingualink.schemas.translation import (
    AudioTranslationResult,
    FileDescriptor,
    ImageTranslationResult,
    TextTranslationResult,
)
from lingualink.services.http_client import HttpClient

TEXT_PATH = "/translator/text"
IMAGE_PATH = "/translator/image"
AUDIO_PATH = "/translator/audio"

DEFAULT_IMAGE_MIME = "image/jpeg"
DEFAULT_IMAGE_NAME = "photo.jpg"
DEFAULT_AUDIO_MIME = "audio/mpeg"
DEFAULT_AUDIO_NAME = "recording.mp3"


class TranslationService:
    """Requests that the backend answers in the same HTTP round-trip."""

    def __init__(
        self,
        http: HttpClient,
        image_timeout: float = 60.0,
        audio_timeout: float = 90.0,
    ) -> None:
        self.http = http
        self.image_timeout = image_timeout
        self.audio_timeout = audio_timeout

    async def translate_text(
        self, text: str, target_language: str = "English"
    ) -> TextTranslationResult:
        """Translate *text*; the backend auto-detects the source language."""
        logger.info("Translating text ({} chars) -> {}", len(text), target_language)
        data = await self.http.post_json(
            TEXT_PATH, {"text": text, "targetLanguage": target_language}
        )
        return _validate(TextTranslationResult, data)

    async def translate_image(
        self, image: FileDescriptor, target_language: str = "Vietnamese"
    ) -> ImageTranslationResult:
        """
        OCR + translate an image.

        Returns:
            ImageTranslationResult: Full translated text plus one ``Segment``
            per detected text region, with its overlay box.
        """
        content = await _read_file(image)
        files = {
            "file": (
                image.name or DEFAULT_IMAGE_NAME,
                content,
                image.mime_type or DEFAULT_IMAGE_MIME,
            )
        }
        logger.info("Translating image {} -> {}", image.name, target_language)
        data = await self.http.post_multipart(
            IMAGE_PATH,
            data={"targetLanguage": target_language},
            files=files,
            timeout=self.image_timeout,
        )
        data["segments"] = data.get("segments") or []
        result = _validate(ImageTranslationResult, data)
        logger.info("Image translated with {} segments", len(result.segments))
        return result

    async def translate_audio(
        self,
        audio: FileDescriptor,
        source_language: str = "auto",
        target_language: str = "Vietnamese",
    ) -> AudioTranslationResult:
        """Speech-to-text + translate a recording. *source_language* is a code or ``auto``."""
        content = await _read_file(audio)
        files = {
            "file": (
                audio.name or DEFAULT_AUDIO_NAME,
                content,
                audio.mime_type or DEFAULT_AUDIO_MIME,
            )
        }
        logger.info(
            "Translating audio {} ({} -> {})", audio.name, source_language, target_language
        )
        data = await self.http.post_multipart(
            AUDIO_PATH,
            data={"sourceLanguage": source_language, "targetLanguage": target_language},
            files=files,
            timeout=self.audio_timeout,
        )
        data["audioDetails"] = data.get("audioDetails") or {}
        # The response does not echo the language back reliably.
        data["targetLanguage"] = target_language
        return _validate(AudioTranslationResult, data)


def image_descriptor(path: str | Path, mime_type: Optional[str] = None) -> FileDescriptor:
    mime_type = mime_type or mimetypes.guess_type(str(path))[0] or DEFAULT_IMAGE_MIME
    return FileDescriptor.from_path(path, mime_type=mime_type)


def audio_descriptor(path: str | Path, mime_type: Optional[str] = None) -> FileDescriptor:
    mime_type = mime_type or mimetypes.guess_type(str(path))[0] or DEFAULT_AUDIO_MIME
    return FileDescriptor.from_path(path, mime_type=mime_type)


async def _read_file(file: FileDescriptor) -> bytes:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, Path(file.uri).read_bytes)
    except OSError as e:
        logger.error("Cannot read {}: {}", file.uri, e)
        raise handle_error(e) from e


def _validate(model, data: dict):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error("Unexpected response shape for {}: {}", model.__name__, e)
        raise handle_error(e) from e
