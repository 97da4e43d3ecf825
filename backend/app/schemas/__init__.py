"""Pydantic schemas for API request/response validation."""

from app.schemas.voice import (  # noqa: F401
    ErrorResponse,
    HealthResponse,
    StatusResponse,
    StreamingMessage,
    StreamingMessageType,
    TranscriptionResponse,
)
