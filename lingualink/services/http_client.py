"""HTTP transport shared by every coordinator: base URL, timeouts, error mapping."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional

import httpx
from loguru import logger

from lingualink.core.errors import TranslationClientError, UnknownError, handle_error


class HttpClient:
    """Thin wrapper around ``httpx.AsyncClient`` bound to the backend base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @staticmethod
    def handle_error(error: BaseException) -> TranslationClientError:
        return handle_error(error)

    async def post_json(
        self,
        path: str,
        payload: dict[str, Any],
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """POST a JSON body and return the (unwrapped) JSON response."""
        try:
            response = await self.client.post(
                path, json=payload, timeout=self._timeout_for(timeout)
            )
            response.raise_for_status()
            return _unwrap(response)
        except TranslationClientError:
            raise
        except Exception as e:
            raise self._normalized(path, e) from e

    async def post_multipart(
        self,
        path: str,
        data: dict[str, str],
        files: dict[str, tuple[str, bytes, str]],
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """POST a multipart form (fields + files) and return the JSON response."""
        try:
            response = await self.client.post(
                path, data=data, files=files, timeout=self._timeout_for(timeout)
            )
            response.raise_for_status()
            return _unwrap(response)
        except TranslationClientError:
            raise
        except Exception as e:
            raise self._normalized(path, e) from e

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        path: str,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[httpx.Response]:
        """
        Open a streamed response.

        The status is *not* checked here so that callers can react to range
        responses (206/416) themselves; use :meth:`raise_for_status` for the
        rest.
        """
        async with self.client.stream(
            method, path, headers=headers, timeout=self._timeout_for(timeout)
        ) as response:
            yield response

    @staticmethod
    async def raise_for_status(response: httpx.Response) -> None:
        """Like ``response.raise_for_status`` but reads the body first."""
        if response.is_success:
            return
        await response.aread()
        response.raise_for_status()

    def _timeout_for(self, timeout: Optional[float]) -> httpx.Timeout:
        return httpx.Timeout(timeout) if timeout is not None else self._timeout

    def _normalized(self, path: str, error: Exception) -> TranslationClientError:
        normalized = handle_error(error)
        if isinstance(error, httpx.HTTPStatusError):
            logger.error(
                "{} failed with status {}: {}",
                path,
                error.response.status_code,
                normalized.message,
            )
        else:
            logger.error("{} failed: {}", path, normalized.message)
        return normalized


def _unwrap(response: httpx.Response) -> dict[str, Any]:
    """Return the response JSON, unwrapping ``{"data": {...}}`` envelopes."""
    if not response.content:
        raise UnknownError("No response data received")
    try:
        body = response.json()
    except ValueError as e:
        raise UnknownError("Invalid response data received") from e
    if not isinstance(body, dict) or not body:
        raise UnknownError("No response data received")
    data = body.get("data")
    if isinstance(data, dict):
        return data
    return body
