"""Submits a local file for asynchronous translation and returns its job handle."""

from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from lingualink.core.errors import UnknownError, handle_error
from lingualink.schemas.translation import FileDescriptor, JobHandle
from lingualink.services.http_client import HttpClient
from lingualink.services.session_manager import SessionManager

UPLOAD_PATH = "/translator/upload"


class UploadCoordinator:
    def __init__(
        self,
        http: HttpClient,
        sessions: SessionManager,
        timeout: float = 30.0,
    ) -> None:
        self.http = http
        self.sessions = sessions
        self.timeout = timeout

    async def submit(
        self,
        file: FileDescriptor,
        target_language: str = "English",
        is_premium: bool = False,
    ) -> JobHandle:
        """
        Upload *file* to ``/translator/upload``.

        Args:
            file: Local file to translate.
            target_language: Human-readable language name, e.g. ``"Vietnamese"``.
            is_premium: Selects the backend's premium processing tier.

        Returns:
            JobHandle: The backend acknowledgement, including ``job_id``.

        Raises:
            TranslationClientError: ``NetworkError``, ``ServerError`` or
            ``UnknownError`` (unreadable file, missing job id, ...).
        """
        # initialize() never raises; a fallback id is fine for the upload itself.
        socket_id = await self.sessions.initialize()

        try:
            content = await _read_bytes(file.uri)
        except OSError as e:
            logger.error("Cannot read file for upload {}: {}", file.uri, e)
            raise handle_error(e) from e

        data = {
            "targetLanguage": target_language,
            "isUserPremium": "true" if is_premium else "false",
            "socketId": socket_id,
        }
        files = {"file": (file.name, content, file.mime_type)}

        logger.info(
            "Uploading {} ({} bytes, {}) -> {} with socketId {}",
            file.name,
            len(content),
            file.mime_type,
            target_language,
            socket_id,
        )
        self.sessions.expect_job()
        try:
            payload = await self.http.post_multipart(
                UPLOAD_PATH, data=data, files=files, timeout=self.timeout
            )
        except Exception:
            self.sessions.forget_expected_job()
            raise

        if payload.get("jobId") in (None, ""):
            self.sessions.forget_expected_job()
            logger.error("Upload response missing jobId: {}", payload)
            raise UnknownError("Upload response did not include a job id")

        try:
            handle = JobHandle.model_validate(
                {"socketId": socket_id, **payload, "jobId": str(payload["jobId"])}
            )
        except ValueError as e:
            self.sessions.forget_expected_job()
            raise handle_error(e) from e

        logger.success("Upload accepted: job {}", handle.job_id)
        return handle


async def _read_bytes(uri: str) -> bytes:
    path = Path(uri)
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, path.read_bytes)

