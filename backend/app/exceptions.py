"""Error taxonomy of the voice backend.

Every failure a caller can observe is an ``AppError`` subclass carrying a
stable ``code``; ``app.api.http.errors`` maps each class to an HTTP status.

    AppError
    ├── ValidationError          bad input, nothing recorded
    │   ├── MissingInputError
    │   ├── InvalidSessionIdError
    │   ├── InvalidMultipartError
    │   ├── PayloadTooLargeError
    │   ├── InvalidAudioFormatError
    │   └── EmptyTranscriptionError
    ├── PipelineStageError       a collaborator failed mid-turn
    │   ├── TranscriptionFailedError > TranscriptionTimeoutError
    │   ├── GenerationFailedError    > GenerationTimeoutError
    │   └── SynthesisFailedError     > SynthesisTimeoutError
    ├── CollaboratorTimeoutError (mixin of the three *TimeoutError classes)
    └── ConfigurationError

A stage timeout is still an instance of its stage failure, so
``except GenerationFailedError`` also catches ``GenerationTimeoutError``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class AppError(Exception):
    """Root of the taxonomy.

    Subclasses set ``code``, a default ``message`` and ``retryable`` as class
    attributes; instances may override message and retryability and attach
    ``details`` for logs and the response body.
    """

    code: str = "APP_ERROR"
    message: str = "An unexpected error occurred"
    retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> None:
        self.message = message or self.message
        self.details = details or {}
        if retryable is not None:
            self.retryable = retryable
        self.timestamp = datetime.now(UTC)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "retryable": self.retryable,
                "timestamp": self.timestamp.isoformat(),
            }
        }

    def __str__(self) -> str:
        """String representation with code."""
        return f"[{self.code}] {self.message}"


# =============================================================================
# Validation
# =============================================================================


class ValidationError(AppError):
    """Base exception for validation errors."""

    code = "VALIDATION_ERROR"
    message = "Validation failed"


class MissingInputError(ValidationError):
    """Raised when a required request field is absent.

    Attributes:
        field: Name of the missing field (e.g., "audio", "voice_session_id")
    """

    code = "MISSING_INPUT"
    message = "Missing required input"

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(
            message=message or f"Missing {field}",
            details={"field": field},
        )


class InvalidSessionIdError(ValidationError):
    """Raised when a session identifier is not a valid UUID."""

    code = "INVALID_SESSION_ID"
    message = "Invalid voice_session_id format"

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(details={"value": value})


class InvalidMultipartError(ValidationError):
    """Raised when a multipart body cannot be parsed."""

    code = "INVALID_MULTIPART"
    message = "Invalid multipart form data"


class PayloadTooLargeError(ValidationError):
    """Raised when a request body exceeds the endpoint's upload limit."""

    code = "PAYLOAD_TOO_LARGE"
    message = "Payload too large"

    def __init__(self, limit_bytes: int) -> None:
        self.limit_bytes = limit_bytes
        super().__init__(details={"limit_bytes": limit_bytes})


class InvalidAudioFormatError(ValidationError):
    """Raised when audio is empty or not 16 kHz mono 16-bit PCM."""

    code = "INVALID_AUDIO_FORMAT"
    message = "Audio must be 16kHz mono 16-bit PCM WAV"

    @classmethod
    def for_format(
        cls, audio_format: str, details: dict[str, Any] | None = None
    ) -> InvalidAudioFormatError:
        """Build the error with a message naming the container the caller sent."""
        if audio_format == "pcm":
            return cls("Audio must be 16kHz mono 16-bit PCM", details=details)
        return cls(details=details)


class EmptyTranscriptionError(ValidationError):
    """Raised when the recognizer found no speech in the audio.

    No conversation turns are appended when this is raised.
    """

    code = "NO_SPEECH_DETECTED"
    message = "No speech detected in audio"


# =============================================================================
# Pipeline stages
# =============================================================================


class PipelineStageError(AppError):
    """Base exception for a failed pipeline stage.

    Attributes:
        stage: "transcription", "generation" or "synthesis"
    """

    code = "PIPELINE_STAGE_FAILED"
    message = "Pipeline stage failed"
    stage: str = "pipeline"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> None:
        full_details = {"stage": self.stage}
        if details:
            full_details.update(details)
        super().__init__(message=message, details=full_details, retryable=retryable)


class TranscriptionFailedError(PipelineStageError):
    """Raised when the recognizer fails for a reason other than format or silence."""

    code = "TRANSCRIPTION_FAILED"
    message = "Failed to transcribe audio"
    stage = "transcription"


class GenerationFailedError(PipelineStageError):
    """Raised when the language model call fails."""

    code = "LLM_GENERATION_FAILED"
    message = "LLM generation failed"
    stage = "generation"


class SynthesisFailedError(PipelineStageError):
    """Raised when speech synthesis fails.

    The user and assistant turns of the same request are already appended
    when this is raised.
    """

    code = "TTS_FAILED"
    message = "Text-to-speech failed"
    stage = "synthesis"


class CollaboratorTimeoutError(AppError):
    """Raised when a collaborator exceeds its stage timeout."""

    code = "TRANSIENT_COLLABORATOR_TIMEOUT"
    message = "Collaborator timed out"
    retryable = True
    stage: str = "pipeline"

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        AppError.__init__(
            self,
            message=f"{self.stage.capitalize()} timed out",
            details={"stage": self.stage, "timeout_seconds": timeout_seconds},
        )


class TranscriptionTimeoutError(CollaboratorTimeoutError, TranscriptionFailedError):
    """Transcription exceeded its timeout."""

    code = "TRANSCRIPTION_TIMEOUT"
    stage = "transcription"


class GenerationTimeoutError(CollaboratorTimeoutError, GenerationFailedError):
    """Generation exceeded its timeout."""

    code = "LLM_GENERATION_TIMEOUT"
    stage = "generation"


class SynthesisTimeoutError(CollaboratorTimeoutError, SynthesisFailedError):
    """Synthesis exceeded its timeout."""

    code = "TTS_TIMEOUT"
    stage = "synthesis"


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(AppError):
    """Base exception for configuration errors."""

    code = "CONFIGURATION_ERROR"
    message = "Invalid configuration"


__all__ = [
    "AppError",
    "ValidationError",
    "MissingInputError",
    "InvalidSessionIdError",
    "InvalidMultipartError",
    "PayloadTooLargeError",
    "InvalidAudioFormatError",
    "EmptyTranscriptionError",
    "PipelineStageError",
    "TranscriptionFailedError",
    "GenerationFailedError",
    "SynthesisFailedError",
    "CollaboratorTimeoutError",
    "TranscriptionTimeoutError",
    "GenerationTimeoutError",
    "SynthesisTimeoutError",
    "ConfigurationError",
]
