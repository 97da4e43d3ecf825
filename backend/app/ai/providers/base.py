"""Provider contracts for the three voice stages.

A voice turn goes speech -> text (``STTProvider``), text -> reply
(``LLMProvider``) and reply -> speech (``TTSProvider``). Results are plain
dataclasses so the pipeline never sees vendor payloads.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMMessage:
    role: str  # system | user | assistant
    content: str


@dataclass
class LLMResponse:
    content: str
    model: str
    tokens_in: int
    tokens_out: int
    finish_reason: str | None = None


@dataclass
class STTResult:
    transcript: str
    confidence: float | None = None
    duration_ms: int | None = None


@dataclass
class TTSResult:
    audio_data: bytes
    format: str  # mp3 | wav
    duration_ms: int | None = None


def _or_default(value: str | None, default: str | None) -> str | None:
    stripped = (value or "").strip()
    return stripped or default


class Provider(ABC):
    """Common surface: a constant ``name`` and an optional ``aclose``."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key and ``provider`` field in logs."""

    async def aclose(self) -> None:
        """Release network clients; providers without any keep the no-op."""


class LLMProvider(Provider):
    DEFAULT_MODEL: str | None = None

    @classmethod
    def resolve_model(cls, model: str | None) -> str | None:
        return _or_default(model, cls.DEFAULT_MODEL)

    @abstractmethod
    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 150,
        **kwargs,
    ) -> LLMResponse:
        """Produce one complete reply for ``messages`` (system prompt first).

        An empty ``content`` is a valid reply.

        Raises:
            GenerationError: On transport, HTTP or model errors
        """


class STTProvider(Provider):
    @abstractmethod
    async def transcribe(
        self,
        audio_data: bytes,
        format: str = "wav",
        language: str = "en",
        **kwargs,
    ) -> STTResult:
        """Transcribe a whole utterance.

        Args:
            audio_data: Raw audio bytes
            format: "wav" (RIFF container) or "pcm" (raw s16le mono 16 kHz)
            language: Language code

        Raises:
            UnsupportedAudioFormatError: Audio is not 16 kHz mono 16-bit PCM
            NoSpeechDetectedError: The recognizer produced no text
        """


class TTSProvider(Provider):
    DEFAULT_VOICE: str | None = None

    @classmethod
    def resolve_voice(cls, voice: str | None) -> str | None:
        return _or_default(voice, cls.DEFAULT_VOICE)

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        format: str = "mp3",
        speed: float = 1.0,
        **kwargs,
    ) -> TTSResult:
        """Render ``text`` as audio in ``format``.

        Raises:
            SynthesisError: On transport or HTTP errors
        """
