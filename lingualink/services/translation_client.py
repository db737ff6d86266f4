"""
LinguaLink — Translation Client
================================
The object UI layers and scripts hold on to.  Construct one per app run,
``open()`` it (or use ``async with``), pass it by reference, and ``close()``
it on shutdown.

File translation is asynchronous on the backend::

    async with TranslationClient.from_settings() as client:
        result = await client.translate_file("report.pdf", "Vietnamese")

which expands to ``initialize`` → ``submit_file`` → ``wait_for_job`` →
``download_file``.  Callers that want finer control (progress UI, leaving
the screen mid-job) use those steps directly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import httpx
from loguru import logger

from lingualink.core.config import Settings, settings as default_settings
from lingualink.core.errors import ChannelUnavailable
from lingualink.schemas.translation import (
    AudioTranslationResult,
    DownloadedFile,
    FileDescriptor,
    FileTranslationResult,
    ImageTranslationResult,
    JobHandle,
    TextTranslationResult,
)
from lingualink.services.download_coordinator import (
    DownloadCoordinator,
    ProgressCallback,
    Relocator,
)
from lingualink.services.http_client import HttpClient
from lingualink.services.session_manager import (
    ChannelStatus,
    CompleteHandler,
    Connector,
    FailedHandler,
    ReachabilityProbe,
    SessionManager,
)
from lingualink.services.translation_service import TranslationService
from lingualink.services.upload_coordinator import UploadCoordinator


class TranslationClient:
    """Facade over the HTTP client, event channel and job coordinators."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connector: Optional[Connector] = None,
        reachability: Optional[ReachabilityProbe] = None,
        relocator: Optional[Relocator] = None,
    ) -> None:
        self.settings = settings or default_settings
        cfg = self.settings

        self.http = HttpClient(cfg.API_BASE_URL, timeout=cfg.HTTP_TIMEOUT, transport=transport)
        self.sessions = SessionManager(
            cfg.ws_url,
            connect_timeout=cfg.WS_CONNECT_TIMEOUT,
            connector=connector,
            reachability=reachability,
        )
        self.uploads = UploadCoordinator(self.http, self.sessions, timeout=cfg.UPLOAD_TIMEOUT)
        self.downloads = DownloadCoordinator(
            self.http,
            download_dir=cfg.DOWNLOAD_DIR,
            shared_dir=cfg.SHARED_MEDIA_DIR,
            relocator=relocator,
        )
        self.translations = TranslationService(
            self.http, image_timeout=cfg.IMAGE_TIMEOUT, audio_timeout=cfg.AUDIO_TIMEOUT
        )
        self._opened = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "TranslationClient":
        return cls(settings=settings, **kwargs)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def open(self) -> "TranslationClient":
        if not self._opened:
            logger.info("Translation client using {}", self.http.base_url)
            self._opened = True
        return self

    async def close(self) -> None:
        await self.sessions.teardown()
        await self.http.close()
        if self._opened:
            logger.info("Translation client closed")
        self._opened = False

    async def __aenter__(self) -> "TranslationClient":
        return await self.open()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ── Session / events ─────────────────────────────────────────────────

    @property
    def session_id(self) -> Optional[str]:
        return self.sessions.session_id

    @property
    def channel_status(self) -> ChannelStatus:
        return self.sessions.status

    async def initialize(self) -> str:
        return await self.sessions.initialize()

    def subscribe(self, on_complete: Optional[CompleteHandler], on_failed: Optional[FailedHandler]) -> None:
        self.sessions.subscribe(on_complete, on_failed)

    def unsubscribe(self) -> None:
        self.sessions.unsubscribe()

    # ── File mode ────────────────────────────────────────────────────────

    async def submit_file(
        self,
        file: FileDescriptor,
        target_language: str = "English",
        is_premium: bool = False,
    ) -> JobHandle:
        return await self.uploads.submit(file, target_language, is_premium)

    async def wait_for_job(
        self, handle: JobHandle, timeout: Optional[float] = None
    ) -> FileTranslationResult:
        """
        Wait for the ``translationComplete`` event of *handle*'s job.

        Raises:
            ChannelUnavailable: The channel is not live (fallback session) or
                dropped while waiting.
            JobFailedError: The backend reported a failure.
            JobTimeoutError: No event within *timeout* (default ``JOB_TIMEOUT``).
        """
        timeout = self.settings.JOB_TIMEOUT if timeout is None else timeout
        data = await self.sessions.wait_for_job(handle.job_id, timeout=timeout)
        return FileTranslationResult(
            file_name=data.file_name,
            download_url=self.downloads.download_url(data.file_name),
            job_id=data.job_id or handle.job_id,
        )

    async def download_file(
        self, file_name: str, on_progress: Optional[ProgressCallback] = None
    ) -> DownloadedFile:
        return await self.downloads.fetch(file_name, on_progress=on_progress)

    async def translate_file(
        self,
        file: FileDescriptor | str | Path,
        target_language: str = "English",
        is_premium: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        timeout: Optional[float] = None,
    ) -> DownloadedFile:
        """Upload, wait for the backend to finish, and download the result."""
        if not isinstance(file, FileDescriptor):
            file = FileDescriptor.from_path(file)

        await self.initialize()
        if not self.sessions.is_live:
            # Without a live channel the job would run but we could never see it finish.
            logger.warning("Event channel is {}; cannot follow the job", self.channel_status.value)
            raise ChannelUnavailable()

        handle = await self.submit_file(file, target_language, is_premium)
        result = await self.wait_for_job(handle, timeout=timeout)
        logger.info("Job {} produced {}", handle.job_id, result.file_name)
        return await self.download_file(result.file_name, on_progress=on_progress)

    # ── Direct modes ─────────────────────────────────────────────────────

    async def translate_text(self, text: str, target_language: str = "English") -> TextTranslationResult:
        return await self.translations.translate_text(text, target_language)

    async def translate_image(
        self, image: FileDescriptor, target_language: str = "Vietnamese"
    ) -> ImageTranslationResult:
        return await self.translations.translate_image(image, target_language)

    async def translate_audio(
        self,
        audio: FileDescriptor,
        source_language: str = "auto",
        target_language: str = "Vietnamese",
    ) -> AudioTranslationResult:
        return await self.translations.translate_audio(audio, source_language, target_language)
