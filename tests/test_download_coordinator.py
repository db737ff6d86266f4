"""
Tests for the Download Coordinator
===================================
Covers:

- URL template and quoting
- Streaming to the cache directory with progress reporting
- Zero-length downloads (EmptyDownloadError, no relocation)
- Best-effort relocation into shared storage
- Resuming a partial download with Range and If-Range requests
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import httpx

from lingualink.core.errors import EmptyDownloadError, NetworkError, ServerError
from lingualink.services.download_coordinator import (
    PARTIAL_SUFFIX,
    VALIDATOR_SUFFIX,
    DownloadCoordinator,
    copy_to_shared_storage,
)
from lingualink.services.http_client import HttpClient

BASE_URL = "http://backend.test/api"
PAYLOAD = b"translated document body " * 200


class DownloadTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.cache_dir = Path(self._tmp.name) / "cache"
        self.shared_dir = Path(self._tmp.name) / "shared"

    def tearDown(self):
        self._tmp.cleanup()

    def _coordinator(self, handler, **kwargs) -> DownloadCoordinator:
        http = HttpClient(BASE_URL, transport=httpx.MockTransport(handler))
        return DownloadCoordinator(http, download_dir=self.cache_dir, **kwargs)


class TestDownloadBasics(DownloadTestCase):

    def test_download_url_uses_template(self):
        coordinator = self._coordinator(lambda r: httpx.Response(200))
        self.assertEqual(
            coordinator.download_url("report_vi.pdf"),
            "http://backend.test/api/translator/download/report_vi.pdf",
        )
        self.assertEqual(
            coordinator.download_path("my report.pdf"),
            "/translator/download/my%20report.pdf",
        )

    async def test_fetch_streams_file_and_reports_progress(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, content=PAYLOAD)

        progress = []
        coordinator = self._coordinator(handler)
        result = await coordinator.fetch("report_vi.pdf", on_progress=progress.append)
        await coordinator.http.close()

        self.assertEqual(seen["path"], "/api/translator/download/report_vi.pdf")
        self.assertEqual(result.path, self.cache_dir / "report_vi.pdf")
        self.assertEqual(result.path.read_bytes(), PAYLOAD)
        self.assertEqual(result.size, len(PAYLOAD))
        self.assertEqual(result.mime_type, "application/pdf")
        self.assertFalse(result.relocated)
        self.assertFalse((self.cache_dir / ("report_vi.pdf" + PARTIAL_SUFFIX)).exists())

        self.assertTrue(progress)
        self.assertEqual(progress[-1], 1.0)
        self.assertEqual(progress, sorted(progress))

    async def test_empty_download_raises_and_skips_relocation(self):
        relocator = MagicMock()
        coordinator = self._coordinator(lambda r: httpx.Response(200, content=b""), relocator=relocator)

        with self.assertRaises(EmptyDownloadError):
            await coordinator.fetch("empty.docx")
        await coordinator.http.close()

        relocator.assert_not_called()
        self.assertFalse((self.cache_dir / "empty.docx").exists())

    async def test_missing_file_on_server_is_server_error(self):
        coordinator = self._coordinator(
            lambda r: httpx.Response(404, json={"message": "File not found"})
        )
        with self.assertRaises(ServerError) as ctx:
            await coordinator.fetch("nope.pdf")
        await coordinator.http.close()

        self.assertEqual(ctx.exception.message, "File not found")
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_dropped_connection_is_network_error(self):
        def handler(request):
            raise httpx.ReadError("connection reset", request=request)

        coordinator = self._coordinator(handler)
        with self.assertRaises(NetworkError):
            await coordinator.fetch("report_vi.pdf")
        await coordinator.http.close()


class TestRelocation(DownloadTestCase):

    async def test_copies_into_shared_dir(self):
        coordinator = self._coordinator(
            lambda r: httpx.Response(200, content=PAYLOAD), shared_dir=self.shared_dir
        )
        result = await coordinator.fetch("slides_vi.pptx")
        await coordinator.http.close()

        self.assertTrue(result.relocated)
        self.assertEqual(result.path, self.shared_dir / "slides_vi.pptx")
        self.assertEqual(result.path.read_bytes(), PAYLOAD)
        self.assertEqual(
            result.mime_type,
            "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        )

    async def test_relocation_failure_keeps_cached_file(self):
        relocator = MagicMock(side_effect=PermissionError("media store denied"))
        coordinator = self._coordinator(
            lambda r: httpx.Response(200, content=PAYLOAD), relocator=relocator
        )
        result = await coordinator.fetch("report_vi.pdf")
        await coordinator.http.close()

        relocator.assert_called_once_with(self.cache_dir / "report_vi.pdf")
        self.assertFalse(result.relocated)
        self.assertEqual(result.path, self.cache_dir / "report_vi.pdf")
        self.assertTrue(result.path.exists())

    async def test_any_relocator_error_keeps_cached_file(self):
        relocator = MagicMock(side_effect=RuntimeError("storage provider crashed"))
        coordinator = self._coordinator(
            lambda r: httpx.Response(200, content=PAYLOAD), relocator=relocator
        )
        result = await coordinator.fetch("report_vi.pdf")
        await coordinator.http.close()

        self.assertFalse(result.relocated)
        self.assertEqual(result.path.read_bytes(), PAYLOAD)

    def test_copy_to_shared_storage_creates_directory(self):
        source = Path(self._tmp.name) / "a.txt"
        source.write_text("hello")

        target = copy_to_shared_storage(source, self.shared_dir / "nested")

        self.assertEqual(target.read_text(), "hello")
        self.assertTrue(source.exists())


class ResetAfterFirstChunk(httpx.AsyncByteStream):
    """Body stream that delivers some bytes and then drops the connection."""

    def __init__(self, chunk: bytes) -> None:
        self.chunk = chunk

    async def __aiter__(self):
        yield self.chunk
        raise httpx.ReadError("connection reset")


class TestResume(DownloadTestCase):

    def _seed_partial(self, name: str, data: bytes, validator: str | None = '"v1"') -> Path:
        self.cache_dir.mkdir(parents=True)
        partial = self.cache_dir / (name + PARTIAL_SUFFIX)
        partial.write_bytes(data)
        if validator is not None:
            partial.with_name(partial.name + VALIDATOR_SUFFIX).write_text(validator)
        return partial

    async def test_partial_content_is_appended(self):
        self._seed_partial("report_vi.pdf", PAYLOAD[:1000])
        seen = {}

        def handler(request):
            seen["range"] = request.headers.get("range")
            seen["if_range"] = request.headers.get("if-range")
            return httpx.Response(
                206,
                content=PAYLOAD[1000:],
                headers={
                    "content-range": f"bytes 1000-{len(PAYLOAD) - 1}/{len(PAYLOAD)}",
                    "etag": '"v1"',
                },
            )

        progress = []
        coordinator = self._coordinator(handler)
        result = await coordinator.fetch("report_vi.pdf", on_progress=progress.append)
        await coordinator.http.close()

        self.assertEqual(seen["range"], "bytes=1000-")
        self.assertEqual(seen["if_range"], '"v1"')
        self.assertEqual(result.path.read_bytes(), PAYLOAD)
        self.assertEqual(progress[-1], 1.0)
        self.assertEqual(sorted(p.name for p in self.cache_dir.iterdir()), ["report_vi.pdf"])

    async def test_changed_file_overwrites_partial(self):
        # The server answers 200 when If-Range no longer matches.
        self._seed_partial("report_vi.pdf", b"stale bytes", validator='"old"')
        coordinator = self._coordinator(
            lambda r: httpx.Response(200, content=PAYLOAD, headers={"etag": '"new"'})
        )

        result = await coordinator.fetch("report_vi.pdf")
        await coordinator.http.close()

        self.assertEqual(result.path.read_bytes(), PAYLOAD)

    async def test_partial_without_validator_is_discarded(self):
        self._seed_partial("report_vi.pdf", b"left over from another job", validator=None)
        ranges = []

        def handler(request):
            ranges.append(request.headers.get("range"))
            return httpx.Response(200, content=PAYLOAD)

        coordinator = self._coordinator(handler)
        result = await coordinator.fetch("report_vi.pdf")
        await coordinator.http.close()

        self.assertEqual(ranges, [None])
        self.assertEqual(result.path.read_bytes(), PAYLOAD)

    async def test_interrupted_download_resumes_with_validator(self):
        requests = []

        def handler(request):
            requests.append(request)
            if len(requests) == 1:
                return httpx.Response(
                    200,
                    headers={"last-modified": "Wed, 21 Oct 2026 07:28:00 GMT"},
                    stream=ResetAfterFirstChunk(PAYLOAD[:500]),
                )
            return httpx.Response(206, content=PAYLOAD[500:])

        coordinator = self._coordinator(handler)
        with self.assertRaises(NetworkError):
            await coordinator.fetch("report_vi.pdf")
        result = await coordinator.fetch("report_vi.pdf")
        await coordinator.http.close()

        self.assertEqual(requests[1].headers["range"], "bytes=500-")
        self.assertEqual(requests[1].headers["if-range"], "Wed, 21 Oct 2026 07:28:00 GMT")
        self.assertEqual(result.path.read_bytes(), PAYLOAD)

    async def test_unsatisfiable_range_restarts_once(self):
        self._seed_partial("report_vi.pdf", PAYLOAD + b"extra")
        ranges = []

        def handler(request):
            ranges.append(request.headers.get("range"))
            if request.headers.get("range"):
                return httpx.Response(416)
            return httpx.Response(200, content=PAYLOAD)

        coordinator = self._coordinator(handler)
        result = await coordinator.fetch("report_vi.pdf")
        await coordinator.http.close()

        self.assertEqual(ranges, [f"bytes={len(PAYLOAD) + 5}-", None])
        self.assertEqual(result.path.read_bytes(), PAYLOAD)


if __name__ == "__main__":
    unittest.main()
