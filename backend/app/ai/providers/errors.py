"""Errors raised by provider adapters.

The voice pipeline translates these into :mod:`app.exceptions` at its
boundary; nothing above the pipeline should see them.
"""

from typing import Any


class ProviderError(Exception):
    """Base class for provider failures.

    Attributes:
        provider: Name of the provider that failed
        details: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.details = details or {}


class UnsupportedAudioFormatError(ProviderError):
    """Audio is not 16 kHz mono 16-bit PCM, or cannot be parsed."""


class NoSpeechDetectedError(ProviderError):
    """The recognizer ran but produced no text."""


class GenerationError(ProviderError):
    """The language model call failed."""


class SynthesisError(ProviderError):
    """The speech synthesis call failed."""


__all__ = [
    "ProviderError",
    "UnsupportedAudioFormatError",
    "NoSpeechDetectedError",
    "GenerationError",
    "SynthesisError",
]
