"""
LinguaLink — Session / Event Channel Manager
=============================================
Owns the WebSocket event channel to the translation backend.

Responsibilities:
- Establish the channel lazily and adopt the server-assigned session id.
- Fall back to a local ``fallback-<millis>`` id when the network or the
  channel is unavailable.  ``initialize`` never raises: an upload must always
  be able to proceed.
- Expose connection health as a :class:`ChannelStatus`.
- Route ``translationComplete`` / ``translationFailed`` events to the job
  that is waiting for them, and to the (single) registered listener pair.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import OrderedDict, deque
from collections.abc import Awaitable, Callable
from contextlib import suppress
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse

import websockets
from loguru import logger
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from lingualink.core.errors import ChannelUnavailable, JobFailedError, JobTimeoutError
from lingualink.schemas.ws_messages import (
    JobEvent,
    SessionAssigned,
    TranslationComplete,
    TranslationCompleteData,
    TranslationFailed,
    TranslationFailedData,
    parse_channel_event,
)

CompleteHandler = Callable[[TranslationCompleteData], Any]
FailedHandler = Callable[[TranslationFailedData], Any]
Connector = Callable[[str], Awaitable[Any]]
ReachabilityProbe = Callable[[], Awaitable[bool]]

MAX_WS_MESSAGE_SIZE = 5 * 1024 * 1024
# Job events that arrived before anyone registered for them.
BUFFERED_EVENT_LIMIT = 64
UNROUTED_EVENT_LIMIT = 16


class ChannelStatus(str, Enum):
    LIVE = "live"
    DEGRADED_FALLBACK = "degraded_fallback"
    DISCONNECTED = "disconnected"


def make_fallback_id() -> str:
    return f"fallback-{int(time.time() * 1000)}"


async def probe_tcp(url: str, timeout: float) -> bool:
    """Return True if a TCP connection to the URL's host/port can be opened."""
    parsed = urlparse(url)
    if not parsed.hostname:
        return False
    port = parsed.port or (443 if parsed.scheme in ("wss", "https") else 80)
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(parsed.hostname, port), timeout=timeout
        )
    except (OSError, asyncio.TimeoutError) as e:
        logger.debug("Reachability probe to {}:{} failed: {}", parsed.hostname, port, e)
        return False
    writer.close()
    with suppress(OSError):
        await writer.wait_closed()
    return True


class SessionManager:
    """One event channel and its session id, with explicit lifecycle."""

    def __init__(
        self,
        ws_url: str,
        connect_timeout: float = 5.0,
        connector: Optional[Connector] = None,
        reachability: Optional[ReachabilityProbe] = None,
    ) -> None:
        self.ws_url = ws_url
        self.connect_timeout = connect_timeout
        self._connector = connector or self._connect_websocket
        self._reachability = reachability or self._probe_network

        self._ws: Any = None
        self._reader: Optional[asyncio.Task] = None
        self._session_id: Optional[str] = None
        self._status = ChannelStatus.DISCONNECTED
        self._lock = asyncio.Lock()

        self._listeners: Optional[tuple[Optional[CompleteHandler], Optional[FailedHandler]]] = None
        self._pending: dict[str, asyncio.Future] = {}
        self._buffered: OrderedDict[str, JobEvent] = OrderedDict()
        self._unrouted: deque[JobEvent] = deque(maxlen=UNROUTED_EVENT_LIMIT)
        # Uploads in flight whose job has not been registered yet.
        self._expected_jobs = 0

    # ── State ────────────────────────────────────────────────────────────

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def status(self) -> ChannelStatus:
        return self._status

    @property
    def is_live(self) -> bool:
        return self._status is ChannelStatus.LIVE

    @property
    def pending_jobs(self) -> list[str]:
        return list(self._pending)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def initialize(self) -> str:
        """
        Return the session id, opening the event channel on first use.

        A live session id is returned as-is.  A fallback session retries the
        channel on every call and keeps its id while the channel stays
        unavailable.  Every failure path ends in a fallback id.
        """
        async with self._lock:
            if self.is_live and self._session_id is not None:
                logger.debug("Session already initialized: {}", self._session_id)
                return self._session_id
            if self._status is ChannelStatus.DEGRADED_FALLBACK:
                logger.debug("Retrying event channel for fallback session {}", self._session_id)

            try:
                reachable = await self._reachability()
            except Exception as e:
                logger.warning("Reachability check failed: {}", e)
                reachable = False

            if not reachable:
                logger.warning("No network connection, using fallback session id")
                return self._use_fallback()

            logger.info("Connecting event channel: {}", self.ws_url)
            try:
                session_id = await asyncio.wait_for(
                    self._open_channel(), timeout=self.connect_timeout
                )
            except (
                OSError,
                asyncio.TimeoutError,
                WebSocketException,
                ValidationError,
                ChannelUnavailable,
            ) as e:
                logger.warning("Event channel unavailable ({!r}), using fallback session id", e)
                await self._close_socket()
                return self._use_fallback()

            self._session_id = session_id
            self._status = ChannelStatus.LIVE
            self._reader = asyncio.create_task(self._listen(self._ws))
            logger.success("Event channel connected with id {}", session_id)
            return session_id

    async def teardown(self) -> None:
        """Close the channel and forget the session id. Safe to call repeatedly."""
        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None

        if ws is not None:
            await self._close(ws)
        if reader is not None:
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader

        if self._session_id is not None:
            logger.info("Session {} torn down", self._session_id)
        self._session_id = None
        self._status = ChannelStatus.DISCONNECTED
        self._listeners = None
        self._buffered.clear()
        self._unrouted.clear()
        self._expected_jobs = 0
        self._fail_pending("Event channel was closed.")

    # ── Listener pair ────────────────────────────────────────────────────

    def subscribe(
        self,
        on_complete: Optional[CompleteHandler],
        on_failed: Optional[FailedHandler],
    ) -> None:
        """Register the completion/failure handlers, replacing any previous pair."""
        if not self.is_live:
            logger.info("Event channel not open ({}); listeners not registered", self._status.value)
            return
        if self._listeners is not None:
            logger.debug("Replacing previously registered translation listeners")
        self._listeners = (on_complete, on_failed)

    def unsubscribe(self) -> None:
        if self._listeners is not None:
            logger.debug("Removing translation listeners")
        self._listeners = None

    # ── Per-job routing ──────────────────────────────────────────────────

    def expect_job(self) -> None:
        """Mark an upload in flight; its unkeyed event may arrive before it registers."""
        self._expected_jobs += 1

    def forget_expected_job(self) -> None:
        self._expected_jobs = max(0, self._expected_jobs - 1)

    def register_job(self, job_id: str) -> asyncio.Future:
        """
        Return a future resolved with the job's completion/failure event.

        Raises:
            ChannelUnavailable: If no live channel can deliver the event and
            none was buffered for this job.
        """
        existing = self._pending.get(job_id)
        if existing is not None:
            return existing

        self.forget_expected_job()
        future = asyncio.get_running_loop().create_future()
        buffered = self._buffered.pop(job_id, None)
        if buffered is None and self._unrouted:
            buffered = self._unrouted.popleft()
        if buffered is not None:
            logger.debug("Job {} resolved from buffered event", job_id)
            future.set_result(buffered)
            return future

        if not self.is_live:
            raise ChannelUnavailable(
                "Live translation updates are unavailable; "
                "the file was submitted but its completion cannot be observed."
            )
        self._pending[job_id] = future
        return future

    async def wait_for_job(
        self, job_id: str, timeout: Optional[float] = None
    ) -> TranslationCompleteData:
        """
        Wait for the backend to finish *job_id*.

        Raises:
            ChannelUnavailable: Channel not live, or closed while waiting.
            JobFailedError: The backend sent ``translationFailed``.
            JobTimeoutError: Nothing arrived within *timeout* seconds.
        """
        future = self.register_job(job_id)
        try:
            event = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Job {} did not finish within {}s", job_id, timeout)
            raise JobTimeoutError() from None
        finally:
            if self._pending.get(job_id) is future:
                del self._pending[job_id]

        if isinstance(event, TranslationFailed):
            raise JobFailedError(event.data.reason)
        return event.data

    # ── Channel internals ────────────────────────────────────────────────

    async def _connect_websocket(self, url: str) -> Any:
        return await websockets.connect(
            url, open_timeout=self.connect_timeout, max_size=MAX_WS_MESSAGE_SIZE
        )

    async def _probe_network(self) -> bool:
        return await probe_tcp(self.ws_url, self.connect_timeout)

    async def _open_channel(self) -> str:
        self._ws = await self._connector(self.ws_url)
        event = parse_channel_event(await self._ws.recv())
        if not isinstance(event, SessionAssigned):
            raise ChannelUnavailable(f"Expected session assignment, got {event.event!r}")
        return event.data.socket_id

    def _use_fallback(self) -> str:
        if self._status is not ChannelStatus.DEGRADED_FALLBACK or self._session_id is None:
            self._session_id = make_fallback_id()
            logger.info("Using fallback session id {}", self._session_id)
        self._status = ChannelStatus.DEGRADED_FALLBACK
        return self._session_id

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close(ws)

    @staticmethod
    async def _close(ws: Any) -> None:
        try:
            await ws.close()
        except (OSError, WebSocketException) as e:
            logger.debug("Error while closing event channel: {}", e)

    async def _listen(self, ws: Any) -> None:
        try:
            async for raw in ws:
                if not isinstance(raw, str):
                    continue
                try:
                    event = parse_channel_event(raw)
                except ValidationError as e:
                    logger.warning("Ignoring unrecognized channel frame: {}", e.errors()[:1])
                    continue
                await self.dispatch(event)
        except ConnectionClosed as e:
            logger.warning("Event channel disconnected: {}", e)
        finally:
            if self._ws is ws:
                self._on_disconnect()

    def _on_disconnect(self) -> None:
        logger.info("Session {} invalidated by disconnect", self._session_id)
        self._ws = None
        self._reader = None
        self._session_id = None
        self._status = ChannelStatus.DISCONNECTED
        self._listeners = None
        self._fail_pending("Event channel closed before the translation finished.")

    async def dispatch(self, event: Any) -> None:
        """Deliver one parsed channel event to its job waiter and listeners."""
        if isinstance(event, SessionAssigned):
            logger.info("Server re-assigned session id {}", event.data.socket_id)
            self._session_id = event.data.socket_id
            return

        logger.info("Received {} for job {}", event.event, event.job_id or "<unspecified>")
        self._route(event)
        await self._notify_listeners(event)

    def _route(self, event: JobEvent) -> None:
        job_id = event.job_id
        if job_id is not None:
            future = self._pending.pop(job_id, None)
            if future is None:
                self._buffer(job_id, event)
            elif not future.done():
                future.set_result(event)
            return

        if len(self._pending) == 1:
            _, future = self._pending.popitem()
            if not future.done():
                future.set_result(event)
        elif not self._pending:
            # Only an upload still waiting to register can own an unkeyed event.
            if self._listeners is None and self._expected_jobs > 0:
                self._unrouted.append(event)
            else:
                logger.debug("{} without jobId and no job awaiting it; dropped", event.event)
        else:
            logger.warning(
                "{} without jobId while {} jobs are pending; not routed to a job",
                event.event,
                len(self._pending),
            )

    def _buffer(self, job_id: str, event: JobEvent) -> None:
        self._buffered[job_id] = event
        self._buffered.move_to_end(job_id)
        while len(self._buffered) > BUFFERED_EVENT_LIMIT:
            evicted, _ = self._buffered.popitem(last=False)
            logger.debug("Dropping buffered event for job {}", evicted)

    async def _notify_listeners(self, event: JobEvent) -> None:
        if self._listeners is None:
            return
        on_complete, on_failed = self._listeners
        handler = on_complete if isinstance(event, TranslationComplete) else on_failed
        if handler is None:
            return
        try:
            result = handler(event.data)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Translation listener raised while handling {}", event.event)

    def _fail_pending(self, message: str) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(ChannelUnavailable(message))
