"""
LinguaLink — Client Error Taxonomy
===================================
Every failure that reaches a caller of the client is one of the classes
below.  Each carries a human-readable ``message`` that the UI layer can show
to the end user as-is.

``handle_error`` is the single normalization point: coordinators catch
whatever httpx (or the filesystem) raised and re-raise its result.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

SERVER_ERROR_MESSAGE = "Server error"
NO_RESPONSE_MESSAGE = "No response from server. Please check your connection."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class TranslationClientError(Exception):
    """Base class for all user-facing client errors."""

    default_message = UNEXPECTED_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(TranslationClientError):
    """The request left the client but no response came back."""

    default_message = NO_RESPONSE_MESSAGE


class ServerError(TranslationClientError):
    """The backend answered with a non-2xx status."""

    default_message = SERVER_ERROR_MESSAGE

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ChannelUnavailable(TranslationClientError):
    """The event channel is not live, so job completion cannot be observed."""

    default_message = "Live translation updates are unavailable."


class EmptyDownloadError(TranslationClientError):
    """The downloaded artifact is missing or zero-length."""

    default_message = "Downloaded file is empty."


class UnknownError(TranslationClientError):
    """Anything not classified above."""


class JobFailedError(TranslationClientError):
    """The backend reported ``translationFailed`` for a job."""

    default_message = "Translation failed."

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason


class JobTimeoutError(TranslationClientError):
    """No completion event arrived for a job in time."""

    default_message = "Timed out waiting for the translation to finish."


# httpx errors raised after the request was handed to the network.
_NO_RESPONSE_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (ValueError, httpx.StreamError):
        return None


def _server_message(body: Any) -> str:
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or SERVER_ERROR_MESSAGE
    return SERVER_ERROR_MESSAGE


def handle_error(error: BaseException) -> TranslationClientError:
    """
    Map any exception onto the client error taxonomy.

    Args:
        error: The exception raised while talking to the backend.

    Returns:
        TranslationClientError: ``ServerError`` when a response with an error
        status was received, ``NetworkError`` when the request got no
        response, ``UnknownError`` otherwise. Already-normalized errors are
        returned unchanged.
    """
    if isinstance(error, TranslationClientError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        payload = _response_body(error.response)
        return ServerError(
            _server_message(payload),
            status_code=error.response.status_code,
            payload=payload,
        )

    if isinstance(error, _NO_RESPONSE_ERRORS):
        return NetworkError(NO_RESPONSE_MESSAGE)

    return UnknownError(str(error) or UNEXPECTED_ERROR_MESSAGE)
