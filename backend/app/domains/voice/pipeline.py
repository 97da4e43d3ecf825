"""Voice turn orchestration: STT -> history -> LLM -> persist -> TTS.

Every collaborator call runs under its own timeout and every failure is
translated into an :mod:`app.exceptions` error at this boundary, so the
gateway never sees provider or transport exceptions.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Literal, TypeVar

from app.ai.providers.base import LLMMessage, LLMProvider, STTProvider, TTSProvider
from app.ai.providers.errors import NoSpeechDetectedError, UnsupportedAudioFormatError
from app.domains.voice.session_store import SessionStore, Turn
from app.exceptions import (
    EmptyTranscriptionError,
    GenerationFailedError,
    GenerationTimeoutError,
    InvalidAudioFormatError,
    SynthesisFailedError,
    SynthesisTimeoutError,
    TranscriptionFailedError,
    TranscriptionTimeoutError,
)
from app.infrastructure.logging import turn_id_var
from app.prompts.voice_persona import VOICE_PERSONA_PROMPT

logger = logging.getLogger("voice")

T = TypeVar("T")

AUDIO_CONTENT_TYPES = {"mp3": "audio/mpeg", "wav": "audio/wav"}


@dataclass(frozen=True)
class StageTimeouts:
    """Per-stage timeouts in seconds."""

    transcription: float = 5.0
    generation: float = 10.0
    synthesis: float = 10.0


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one pipeline run.

    ``kind == "audio"`` for a voice turn (``audio`` set), ``"text"`` for the
    transcription-only path (``text`` set).
    """

    kind: Literal["audio", "text"]
    turn_count: int
    audio: bytes | None = None
    audio_format: str | None = None
    text: str | None = None
    transcript: str | None = None
    reply: str | None = None
    duration_ms: int | None = None

    @property
    def content_type(self) -> str:
        return AUDIO_CONTENT_TYPES.get(self.audio_format or "", "application/octet-stream")


class VoicePipeline:
    """Runs conversational voice turns against a SessionStore.

    Stages of ``run_turn``:
        1. transcribe the audio (timeout, no retries)
        2. read the session history
        3. generate a reply with the persona, history and new user text
        4. append the user/assistant pair to the session
        5. synthesize the reply

    A failing stage stops the run. Stages 1-3 leave the session untouched.
    A synthesis failure happens after stage 4, so the pair stays in the
    session even though no audio is returned.

    Usage:
        pipeline = VoicePipeline(store, stt, llm, tts)
        result = await pipeline.run_turn(session_id, wav_bytes)
    """

    def __init__(
        self,
        store: SessionStore,
        stt_provider: STTProvider,
        llm_provider: LLMProvider,
        tts_provider: TTSProvider,
        timeouts: StageTimeouts | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        persona: str = VOICE_PERSONA_PROMPT,
    ) -> None:
        self.store = store
        self.stt = stt_provider
        self.llm = llm_provider
        self.tts = tts_provider
        self.timeouts = timeouts or StageTimeouts()
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.persona = persona

    async def run_turn(
        self,
        session_id: uuid.UUID,
        raw_audio: bytes,
        audio_format: str = "wav",
    ) -> PipelineResult:
        """Run one voice turn and return the synthesized reply."""
        turn_id = str(uuid.uuid4())
        token = turn_id_var.set(turn_id)
        start_time = time.time()
        try:
            transcript, _ = await self._transcribe(raw_audio, audio_format)
            history = await self.store.get_history(session_id)
            reply = await self._generate(history, transcript)
            turn_count = await self.store.append_exchange(session_id, transcript, reply)
            audio, audio_fmt = await self._synthesize(reply)
        finally:
            turn_id_var.reset(token)

        logger.info(
            "Voice turn complete",
            extra={
                "service": "voice",
                "session_id": str(session_id),
                "turn_id": turn_id,
                "turn_count": turn_count,
                "audio_bytes": len(audio),
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return PipelineResult(
            kind="audio",
            turn_count=turn_count,
            audio=audio,
            audio_format=audio_fmt,
            transcript=transcript,
            reply=reply,
        )

    async def transcribe(self, raw_audio: bytes, audio_format: str = "wav") -> PipelineResult:
        """Transcription only; does not touch the session store."""
        transcript, duration_ms = await self._transcribe(raw_audio, audio_format)
        return PipelineResult(
            kind="text",
            turn_count=0,
            text=transcript,
            transcript=transcript,
            duration_ms=duration_ms,
        )

    # ------------------------------------------------------------------
    # Stages

    async def _transcribe(self, raw_audio: bytes, audio_format: str) -> tuple[str, int | None]:
        if not raw_audio:
            raise InvalidAudioFormatError.for_format(audio_format, {"reason": "empty audio"})

        try:
            result = await self._with_timeout(
                self.stt.transcribe(raw_audio, format=audio_format),
                self.timeouts.transcription,
                TranscriptionTimeoutError,
                "transcription",
            )
        except UnsupportedAudioFormatError as e:
            raise InvalidAudioFormatError.for_format(audio_format, {"reason": str(e)}) from e
        except NoSpeechDetectedError as e:
            raise EmptyTranscriptionError() from e
        except TranscriptionTimeoutError:
            raise
        except Exception as e:
            self._log_stage_failure("transcription", e)
            raise TranscriptionFailedError(details={"reason": str(e)}) from e

        transcript = (result.transcript or "").strip()
        if not transcript:
            raise EmptyTranscriptionError()
        return transcript, result.duration_ms

    async def _generate(self, history: list[Turn], user_text: str) -> str:
        messages = [LLMMessage(role="system", content=self.persona)]
        messages.extend(LLMMessage(role=turn.role, content=turn.text) for turn in history)
        messages.append(LLMMessage(role="user", content=user_text))

        try:
            response = await self._with_timeout(
                self.llm.generate(
                    messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                self.timeouts.generation,
                GenerationTimeoutError,
                "generation",
            )
        except GenerationTimeoutError:
            raise
        except Exception as e:
            self._log_stage_failure("generation", e)
            raise GenerationFailedError(details={"reason": str(e)}) from e

        # An empty reply is valid
        return response.content or ""

    async def _synthesize(self, text: str) -> tuple[bytes, str]:
        try:
            result = await self._with_timeout(
                self.tts.synthesize(text, format="mp3"),
                self.timeouts.synthesis,
                SynthesisTimeoutError,
                "synthesis",
            )
        except SynthesisTimeoutError:
            raise
        except Exception as e:
            self._log_stage_failure("synthesis", e)
            raise SynthesisFailedError(details={"reason": str(e)}) from e
        return result.audio_data, result.format or "mp3"

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    async def _with_timeout(
        call: Awaitable[T],
        timeout_seconds: float,
        timeout_error: type[Exception],
        stage: str,
    ) -> T:
        try:
            return await asyncio.wait_for(call, timeout=timeout_seconds)
        except TimeoutError as e:
            logger.warning(
                "Pipeline stage timed out",
                extra={"service": "voice", "stage": stage, "timeout_seconds": timeout_seconds},
            )
            raise timeout_error(timeout_seconds) from e

    @staticmethod
    def _log_stage_failure(stage: str, error: Exception) -> None:
        logger.error(
            "Pipeline stage failed",
            extra={
                "service": "voice",
                "stage": stage,
                "error": str(error),
                "error_code": type(error).__name__,
            },
        )
