"""Pydantic schemas for the voice HTTP and WebSocket surface."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StreamingMessageType(str, Enum):
    """Kind of terminal message sent on the transcription stream."""

    FINAL = "final"
    ERROR = "error"


class StreamingMessage(BaseModel):
    """Message sent to the peer of /api/v1/transcribe/stream.

    Exactly one ``final`` or ``error`` message terminates a stream.
    """

    type: StreamingMessageType
    result: str | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def final(cls, text: str) -> "StreamingMessage":
        return cls(type=StreamingMessageType.FINAL, result=text)

    @classmethod
    def failure(cls, message: str) -> "StreamingMessage":
        return cls(type=StreamingMessageType.ERROR, error=message)


class ErrorResponse(BaseModel):
    """Error body returned by every HTTP endpoint."""

    error: str
    code: int = Field(..., description="HTTP status code")
    timestamp: datetime = Field(default_factory=_utcnow)


class TranscriptionResponse(BaseModel):
    """Result of POST /api/v1/transcriptions."""

    id: UUID = Field(default_factory=uuid4)
    text: str
    segments: list[str] = Field(default_factory=list)
    language: str = "en"
    duration: float | None = Field(default=None, description="Audio duration in seconds")
    timestamp: datetime = Field(default_factory=_utcnow)


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime = Field(default_factory=_utcnow)
    version: str


class StatusResponse(BaseModel):
    """Service status with endpoint map and live session count."""

    service: str
    status: str
    version: str
    timestamp: datetime = Field(default_factory=_utcnow)
    endpoints: dict[str, str]
    active_sessions: int
    vector_store: str
