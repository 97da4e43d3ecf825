"""Credential-free providers for local runs and tests.

Every knob is read from the environment at call time, so a test can flip a
stage into a failure mode with ``monkeypatch.setenv`` and no restart:

    STUB_LATENCY_MS            delay before every call (default 100)
    STUB_LLM_MODE              normal | error
    STUB_LLM_FORCE_REPLY       fixed reply text; set but empty gives an empty reply
    STUB_STT_MODE              normal | error | unsupported | silence
    STUB_STT_EMPTY_TRANSCRIPT  "true" returns an empty transcript
    STUB_STT_FORCE_TRANSCRIPT  fixed transcript text
    STUB_TTS_MODE              normal | error (blank text always fails, as with ElevenLabs)
    STUB_TTS_AUDIO_BYTES       size of the silent audio returned (default 1024)
"""

import asyncio
import logging
import os
from collections.abc import Callable
from typing import TypeVar

from app.ai.providers.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    STTProvider,
    STTResult,
    TTSProvider,
    TTSResult,
)
from app.ai.providers.errors import (
    GenerationError,
    NoSpeechDetectedError,
    SynthesisError,
    UnsupportedAudioFormatError,
)
from app.ai.providers.registry import (
    register_llm_provider,
    register_stt_provider,
    register_tts_provider,
)

logger = logging.getLogger("providers")

T = TypeVar("T")

DEFAULT_TRANSCRIPT = "This is a stub transcription of the audio."

# 16 kHz mono s16le
PCM_BYTES_PER_MS = 32


def _env(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


def _text(name: str) -> str | None:
    return _env(name, None, str)


def _mode(stage: str) -> str:
    return _env(f"STUB_{stage}_MODE", "normal", str.lower)


async def _pause() -> None:
    delay_ms = _env("STUB_LATENCY_MS", 100, int)
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)


@register_llm_provider
class StubLLMProvider(LLMProvider):
    """Echoes the last user message back."""

    DEFAULT_MODEL = "stub-model"

    @property
    def name(self) -> str:
        return "stub"

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 150,
        **_kwargs,
    ) -> LLMResponse:
        await _pause()
        if _mode("LLM") == "error":
            message = _text("STUB_LLM_ERROR_MESSAGE") or "stub_llm_error"
            raise GenerationError(message, provider=self.name)

        # Set but empty forces an empty reply
        reply = os.environ.get("STUB_LLM_FORCE_REPLY")
        if reply is None:
            heard = next((m.content for m in reversed(messages) if m.role == "user"), "")
            reply = f"I hear you saying: {heard}" if heard else "I'm listening."

        return LLMResponse(
            content=reply,
            model=model or self.DEFAULT_MODEL,
            tokens_in=sum(len(m.content.split()) for m in messages),
            tokens_out=len(reply.split()),
            finish_reason="stop",
        )


@register_stt_provider
class StubSTTProvider(STTProvider):
    @property
    def name(self) -> str:
        return "stub"

    async def transcribe(
        self,
        audio_data: bytes,
        format: str = "wav",
        language: str = "en",
        **_kwargs,
    ) -> STTResult:
        await _pause()

        mode = _mode("STT")
        if mode in ("error", "fail"):
            # Plain exception, surfaces as an unexpected transcription failure
            raise RuntimeError(_text("STUB_STT_ERROR_MESSAGE") or "stub_stt_error")
        if mode == "unsupported":
            raise UnsupportedAudioFormatError("stub: unsupported audio", provider=self.name)
        if mode == "silence":
            raise NoSpeechDetectedError("No speech detected in audio", provider=self.name)

        if _text("STUB_STT_EMPTY_TRANSCRIPT") == "true":
            transcript = ""
        else:
            transcript = _text("STUB_STT_FORCE_TRANSCRIPT") or DEFAULT_TRANSCRIPT

        logger.debug(
            "Stub transcription",
            extra={"service": "providers", "provider": self.name, "audio_bytes": len(audio_data)},
        )
        return STTResult(
            transcript=transcript,
            confidence=_env("STUB_STT_FORCE_CONFIDENCE", 0.95, float),
            duration_ms=len(audio_data) // PCM_BYTES_PER_MS,
        )


@register_tts_provider
class StubTTSProvider(TTSProvider):
    """Returns zero-filled audio of a configurable size."""

    @property
    def name(self) -> str:
        return "stub"

    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        format: str = "mp3",
        speed: float = 1.0,
        **_kwargs,
    ) -> TTSResult:
        await _pause()
        if _mode("TTS") == "error":
            message = _text("STUB_TTS_ERROR_MESSAGE") or "stub_tts_error"
            raise SynthesisError(message, provider=self.name)
        if not text.strip():
            raise SynthesisError("Cannot synthesize empty text", provider=self.name)

        size = max(0, _env("STUB_TTS_AUDIO_BYTES", 1024, int))
        return TTSResult(audio_data=bytes(size), format=format, duration_ms=len(text) * 50)
