"""LinguaLink — client for the multi-modal translation backend."""

from lingualink.core.errors import (
    ChannelUnavailable,
    EmptyDownloadError,
    JobFailedError,
    JobTimeoutError,
    NetworkError,
    ServerError,
    TranslationClientError,
    UnknownError,
    handle_error,
)
from lingualink.schemas.translation import (
    DownloadedFile,
    FileDescriptor,
    FileTranslationResult,
    JobHandle,
)
from lingualink.services.session_manager import ChannelStatus, SessionManager
from lingualink.services.translation_client import TranslationClient

__all__ = [
    # Client
    "ChannelStatus",
    "SessionManager",
    "TranslationClient",
    # Models
    "DownloadedFile",
    "FileDescriptor",
    "FileTranslationResult",
    "JobHandle",
    # Errors
    "ChannelUnavailable",
    "EmptyDownloadError",
    "JobFailedError",
    "JobTimeoutError",
    "NetworkError",
    "ServerError",
    "TranslationClientError",
    "UnknownError",
    "handle_error",
]
