"""
LinguaLink — Event Channel Message Schemas
===========================================
Pydantic models for the server → client WebSocket event channel.

Every frame is a JSON text message ``{"event": <name>, "data": {...}}``:

- ``connected``          : ``{"socketId": "..."}``, sent once right after connect
- ``translationComplete``: ``{"fileName": "...", "jobId": "..."}``
- ``translationFailed``  : ``{"reason": "...", "jobId": "..."}``

``jobId`` is optional on both job events; events without it are routed to
the only pending job, if there is exactly one.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

SESSION_ASSIGNED = "connected"
TRANSLATION_COMPLETE = "translationComplete"
TRANSLATION_FAILED = "translationFailed"


class _EventData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class SessionAssignedData(_EventData):
    socket_id: str = Field(..., min_length=1, alias="socketId")


class TranslationCompleteData(_EventData):
    file_name: str = Field(..., min_length=1, alias="fileName")
    job_id: Optional[str] = Field(default=None, alias="jobId")


class TranslationFailedData(_EventData):
    reason: Optional[str] = Field(default=None, description="Why the backend gave up.")
    job_id: Optional[str] = Field(default=None, alias="jobId")


class SessionAssigned(BaseModel):
    """Server → Client: connection accepted, here is your session identifier."""

    event: Literal["connected"] = SESSION_ASSIGNED
    data: SessionAssignedData


class TranslationComplete(BaseModel):
    """Server → Client: a file job finished and its output can be downloaded."""

    event: Literal["translationComplete"] = TRANSLATION_COMPLETE
    data: TranslationCompleteData

    @property
    def job_id(self) -> Optional[str]:
        return self.data.job_id


class TranslationFailed(BaseModel):
    """Server → Client: a file job failed on the backend."""

    event: Literal["translationFailed"] = TRANSLATION_FAILED
    data: TranslationFailedData = Field(default_factory=TranslationFailedData)

    @property
    def job_id(self) -> Optional[str]:
        return self.data.job_id


ChannelEvent = Annotated[
    Union[SessionAssigned, TranslationComplete, TranslationFailed],
    Field(discriminator="event"),
]

JobEvent = Union[TranslationComplete, TranslationFailed]

_channel_event_adapter: TypeAdapter[ChannelEvent] = TypeAdapter(ChannelEvent)


def parse_channel_event(raw: str | bytes) -> ChannelEvent:
    """
    Parse one JSON frame into its event model.

    Raises:
        pydantic.ValidationError: For malformed JSON, unknown event names or
        missing required fields.
    """
    return _channel_event_adapter.validate_json(raw)
