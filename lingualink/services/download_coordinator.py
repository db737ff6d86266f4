"""
LinguaLink — Download Coordinator
==================================
Retrieves a translated artifact once its job has completed.

Flow:
1.  Build the URL from ``/translator/download/{fileName}``.
2.  Stream the body into ``<download_dir>/<fileName>.part``, resuming a
    leftover partial file with ``Range`` + ``If-Range`` when the validator it
    was started with is on record, and discarding it otherwise.
3.  Verify the finished file exists and is non-empty.
4.  Best-effort copy into shared storage so the OS file manager / gallery
    can see it.  A failed copy keeps the cached file and is not an error.
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import httpx
from loguru import logger

from lingualink.core.errors import EmptyDownloadError, TranslationClientError, handle_error
from lingualink.data.mime_types import guess_mime_type
from lingualink.schemas.translation import DownloadedFile
from lingualink.services.http_client import HttpClient

DOWNLOAD_PATH_TEMPLATE = "/translator/download/{file_name}"
PARTIAL_SUFFIX = ".part"
# Holds the ETag or Last-Modified value a partial download was started with.
VALIDATOR_SUFFIX = ".validator"
CHUNK_SIZE = 64 * 1024

ProgressCallback = Callable[[float], None]
Relocator = Callable[[Path], Path]


def copy_to_shared_storage(source: Path, shared_dir: Path) -> Path:
    """Copy *source* into *shared_dir* and return the new path."""
    shared_dir.mkdir(parents=True, exist_ok=True)
    target = shared_dir / source.name
    shutil.copy2(source, target)
    return target


class DownloadCoordinator:
    def __init__(
        self,
        http: HttpClient,
        download_dir: str | Path,
        shared_dir: Optional[str | Path] = None,
        relocator: Optional[Relocator] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.http = http
        self.download_dir = Path(download_dir)
        self.timeout = timeout
        if relocator is None and shared_dir is not None:
            target_dir = Path(shared_dir)
            relocator = lambda path: copy_to_shared_storage(path, target_dir)  # noqa: E731
        self.relocator = relocator

    @staticmethod
    def download_path(file_name: str) -> str:
        return DOWNLOAD_PATH_TEMPLATE.format(file_name=quote(file_name, safe=""))

    def download_url(self, file_name: str) -> str:
        return self.http.url_for(self.download_path(file_name))

    async def fetch(
        self,
        file_name: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DownloadedFile:
        """
        Download a translated file.

        Args:
            file_name: Name reported by the ``translationComplete`` event.
            on_progress: Called with bytes-written / bytes-expected in [0, 1]
                whenever the expected size is known.

        Returns:
            DownloadedFile: Final location, MIME type and size.

        Raises:
            EmptyDownloadError: The finished file is missing or zero-length.
            TranslationClientError: Any other normalized transfer failure.
        """
        local_name = Path(file_name).name
        if not local_name:
            raise handle_error(ValueError(f"Invalid file name: {file_name!r}"))

        destination = self.download_dir / local_name
        partial = destination.with_name(destination.name + PARTIAL_SUFFIX)
        logger.info("Downloading {} from {}", file_name, self.download_url(file_name))

        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
            await self._transfer(file_name, partial, on_progress)
            partial.replace(destination)
            _validator_path(partial).unlink(missing_ok=True)
        except TranslationClientError:
            raise
        except Exception as e:
            normalized = handle_error(e)
            logger.error("Download of {} failed: {}", file_name, normalized.message)
            raise normalized from e

        size = destination.stat().st_size if destination.exists() else 0
        if size == 0:
            logger.error("Downloaded file {} is empty", destination)
            destination.unlink(missing_ok=True)
            raise EmptyDownloadError()

        final_path = destination
        relocated = False
        if self.relocator is not None:
            final_path, relocated = await self._relocate(destination)

        logger.success("Downloaded {} ({} bytes) to {}", file_name, size, final_path)
        return DownloadedFile(
            path=final_path,
            mime_type=guess_mime_type(local_name),
            size=size,
            relocated=relocated,
        )

    async def _transfer(
        self,
        file_name: str,
        partial: Path,
        on_progress: Optional[ProgressCallback],
        allow_resume: bool = True,
    ) -> None:
        validator_file = _validator_path(partial)
        offset, headers = 0, None
        if allow_resume and partial.exists():
            validator = _read_validator(validator_file)
            if validator is None:
                logger.info("Discarding partial download {} without a validator", partial.name)
                partial.unlink(missing_ok=True)
            else:
                offset = partial.stat().st_size
                if offset:
                    headers = {"Range": f"bytes={offset}-", "If-Range": validator}

        async with self.http.stream(
            "GET", self.download_path(file_name), headers=headers, timeout=self.timeout
        ) as response:
            if offset and response.status_code == httpx.codes.REQUESTED_RANGE_NOT_SATISFIABLE:
                logger.warning("Server rejected resume of {}; restarting download", file_name)
                partial.unlink(missing_ok=True)
                validator_file.unlink(missing_ok=True)
                restart = True
            else:
                restart = False
                await self.http.raise_for_status(response)
                _store_validator(validator_file, response)
                await self._write_body(response, partial, offset, on_progress)

        if restart:
            await self._transfer(file_name, partial, on_progress, allow_resume=False)

    async def _write_body(
        self,
        response: httpx.Response,
        partial: Path,
        offset: int,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        if offset and response.status_code == httpx.codes.PARTIAL_CONTENT:
            logger.info("Resuming {} at byte {}", partial.name, offset)
            mode, written = "ab", offset
        else:
            mode, written = "wb", 0

        expected = _content_length(response)
        if expected is not None:
            expected += written

        with open(partial, mode) as fh:
            async for chunk in response.aiter_bytes(CHUNK_SIZE):
                fh.write(chunk)
                written += len(chunk)
                if on_progress and expected:
                    on_progress(min(written / expected, 1.0))

        if on_progress and not expected:
            on_progress(1.0)

    async def _relocate(self, path: Path) -> tuple[Path, bool]:
        loop = asyncio.get_running_loop()
        try:
            target = await loop.run_in_executor(None, self.relocator, path)
        except Exception as e:
            logger.warning("Could not move {} to shared storage, keeping cached copy: {}", path, e)
            return path, False
        logger.info("Copied {} to shared storage at {}", path.name, target)
        return Path(target), True


def _content_length(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("content-length")
    if value is None or not value.isdigit():
        return None
    return int(value)


def _validator_path(partial: Path) -> Path:
    return partial.with_name(partial.name + VALIDATOR_SUFFIX)


def _read_validator(path: Path) -> Optional[str]:
    try:
        value = path.read_text().strip()
    except OSError:
        return None
    return value or None


def _store_validator(path: Path, response: httpx.Response) -> None:
    """Remember the response's ETag (strong only) or Last-Modified for If-Range."""
    etag = response.headers.get("etag")
    value = etag if etag and not etag.startswith("W/") else response.headers.get("last-modified")
    if value:
        path.write_text(value)
    else:
        path.unlink(missing_ok=True)
