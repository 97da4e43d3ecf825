"""Vosk STT provider (local, offline recognition).

Recognition is CPU-bound and runs in a worker thread. The acoustic model is
loaded once, lazily, and shared by all recognizers.
"""

import asyncio
import io
import json
import logging
import threading
import time
import wave
from typing import Any

from app.ai.providers.base import STTProvider, STTResult
from app.ai.providers.errors import NoSpeechDetectedError, UnsupportedAudioFormatError
from app.ai.providers.registry import register_stt_provider

logger = logging.getLogger("stt")

SAMPLE_RATE = 16_000
SAMPLE_WIDTH = 2  # 16-bit
CHANNELS = 1
# 2000 samples per AcceptWaveform call
CHUNK_BYTES = 2000 * SAMPLE_WIDTH


@register_stt_provider
class VoskSTTProvider(STTProvider):
    """Offline recognizer for 16 kHz mono 16-bit PCM audio.

    Accepts either a WAV container (``format="wav"``) or headerless
    little-endian PCM frames (``format="pcm"``), the latter being what the
    streaming endpoint accumulates.
    """

    def __init__(self, model_path: str) -> None:
        self.model_path = model_path
        self._model: Any | None = None
        self._model_lock = threading.Lock()

        logger.info(
            "Vosk STT provider initialized",
            extra={"service": "stt", "provider": "vosk", "model": model_path},
        )

    @property
    def name(self) -> str:
        return "vosk"

    async def transcribe(
        self,
        audio_data: bytes,
        format: str = "wav",
        language: str = "en",
        **kwargs,
    ) -> STTResult:
        start_time = time.time()
        pcm = self._extract_pcm(audio_data, format)

        logger.debug(
            "Vosk transcription request",
            extra={
                "service": "stt",
                "provider": self.name,
                "audio_bytes": len(audio_data),
                "audio_format": format,
            },
        )

        try:
            data = await asyncio.to_thread(self._recognize, pcm)
        except Exception as e:
            logger.error(
                "Vosk transcription error",
                extra={"service": "stt", "provider": self.name, "error": str(e)},
                exc_info=True,
            )
            raise

        text = (data.get("text") or "").strip()
        if not text:
            raise NoSpeechDetectedError("No speech detected in audio", provider=self.name)

        words = data.get("result")
        confidence = None
        if isinstance(words, list) and words:
            confs = [w.get("conf") for w in words if isinstance(w.get("conf"), int | float)]
            if confs:
                confidence = sum(confs) / len(confs)

        duration_ms = len(pcm) * 1000 // (SAMPLE_RATE * SAMPLE_WIDTH)
        latency_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "Vosk transcription complete",
            extra={
                "service": "stt",
                "provider": self.name,
                "latency_ms": latency_ms,
                "duration_ms": duration_ms,
                "transcript_length": len(text),
            },
        )

        return STTResult(transcript=text, confidence=confidence, duration_ms=duration_ms)

    # ------------------------------------------------------------------
    # Helpers

    def _extract_pcm(self, audio_data: bytes, format: str) -> bytes:
        """Return raw PCM frames, validating 16 kHz mono 16-bit."""
        fmt = (format or "wav").lower()
        if fmt == "pcm":
            if len(audio_data) % SAMPLE_WIDTH:
                raise UnsupportedAudioFormatError(
                    "Raw PCM must be whole 16-bit samples", provider=self.name
                )
            return audio_data
        if fmt != "wav":
            raise UnsupportedAudioFormatError(
                f"Unsupported audio format: {format}", provider=self.name
            )

        try:
            with wave.open(io.BytesIO(audio_data), "rb") as wav_file:
                channels = wav_file.getnchannels()
                sample_width = wav_file.getsampwidth()
                framerate = wav_file.getframerate()
                if (
                    channels != CHANNELS
                    or sample_width != SAMPLE_WIDTH
                    or framerate != SAMPLE_RATE
                ):
                    raise UnsupportedAudioFormatError(
                        f"Audio must be 16kHz mono WAV. Got: {framerate}Hz {channels}ch "
                        f"{sample_width * 8}bit",
                        provider=self.name,
                        details={
                            "sample_rate": framerate,
                            "channels": channels,
                            "sample_width": sample_width,
                        },
                    )
                return wav_file.readframes(wav_file.getnframes())
        except (wave.Error, EOFError) as e:
            raise UnsupportedAudioFormatError(f"Invalid WAV data: {e}", provider=self.name) from e

    def _ensure_model(self) -> Any:
        if self._model is not None:
            return self._model
        with self._model_lock:
            if self._model is None:
                from vosk import Model

                self._model = Model(self.model_path)
                logger.info(
                    "Vosk model loaded",
                    extra={"service": "stt", "provider": self.name, "model": self.model_path},
                )
            return self._model

    def _build_recognizer(self) -> Any:
        from vosk import KaldiRecognizer

        recognizer = KaldiRecognizer(self._ensure_model(), SAMPLE_RATE)
        recognizer.SetWords(True)
        return recognizer

    def _recognize(self, pcm: bytes) -> dict:
        recognizer = self._build_recognizer()
        for offset in range(0, len(pcm), CHUNK_BYTES):
            recognizer.AcceptWaveform(pcm[offset : offset + CHUNK_BYTES])
        final_json = recognizer.FinalResult()
        try:
            return json.loads(final_json) if final_json else {"text": ""}
        except json.JSONDecodeError as exc:
            raise ValueError("Failed to decode Vosk JSON result") from exc
