"""ElevenLabs TTS provider implementation using the REST API."""

import logging
import time

import httpx

from app.ai.providers.base import TTSProvider, TTSResult
from app.ai.providers.errors import SynthesisError
from app.ai.providers.registry import register_tts_provider

logger = logging.getLogger("tts")


@register_tts_provider
class ElevenLabsTTSProvider(TTSProvider):
    """ElevenLabs text-to-speech, returning MP3 audio.

    Posts to ``{base_url}/text-to-speech/{voice_id}`` with the ``xi-api-key``
    header. Voice settings are fixed for a steady conversational delivery.
    """

    DEFAULT_VOICE = "EGNfK8LKuwEbqjx3yWz1"
    DEFAULT_MODEL = "eleven_turbo_v2_5"

    VOICE_SETTINGS = {
        "stability": 0.5,
        "similarity_boost": 0.75,
        "style": 0.0,
        "use_speaker_boost": True,
    }

    def __init__(
        self,
        api_key: str,
        voice_id: str | None = None,
        model_id: str | None = None,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout: float = 10.0,
    ) -> None:
        """Initialize ElevenLabs TTS provider.

        Args:
            api_key: ElevenLabs API key
            voice_id: Default voice ID
            model_id: Synthesis model (e.g. 'eleven_turbo_v2_5')
            base_url: API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.voice_id = type(self).resolve_voice(voice_id)
        self.model_id = (model_id or "").strip() or self.DEFAULT_MODEL
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

        logger.info(
            "ElevenLabs TTS provider initialized",
            extra={
                "service": "tts",
                "provider": "elevenlabs",
                "voice_id": self.voice_id,
                "model_id": self.model_id,
                "api_key_present": bool(api_key),
            },
        )

    @property
    def name(self) -> str:
        """Provider name for logging."""
        return "elevenlabs"

    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        format: str = "mp3",
        speed: float = 1.0,
        **kwargs,
    ) -> TTSResult:
        """Synthesize text to MP3 speech.

        Blank text is rejected without a request; the API refuses it too.

        Raises:
            SynthesisError: On timeout, transport or HTTP errors
        """
        start_time = time.time()
        voice_id = self.resolve_voice(voice) if voice else self.voice_id

        if not text.strip():
            raise SynthesisError("Cannot synthesize empty text", provider=self.name)

        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": dict(self.VOICE_SETTINGS),
        }

        logger.debug(
            "ElevenLabs synthesis request",
            extra={
                "service": "tts",
                "provider": self.name,
                "voice_id": voice_id,
                "text_length": len(text),
            },
        )

        try:
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=self.timeout)
            response = await self._client.post(
                f"{self.base_url}/text-to-speech/{voice_id}",
                headers={
                    "xi-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "Accept": "audio/mpeg",
                },
                json=payload,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(
                "ElevenLabs request timeout",
                extra={"service": "tts", "provider": self.name, "error": str(e)},
            )
            raise SynthesisError("ElevenLabs request timed out", provider=self.name) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "ElevenLabs HTTP error",
                extra={
                    "service": "tts",
                    "provider": self.name,
                    "status": e.response.status_code,
                    "error": e.response.text[:500],
                },
            )
            raise SynthesisError(
                f"ElevenLabs API error ({e.response.status_code})",
                provider=self.name,
                details={"status": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error(
                "ElevenLabs request failed",
                extra={"service": "tts", "provider": self.name, "error": str(e)},
            )
            raise SynthesisError(f"ElevenLabs request failed: {e}", provider=self.name) from e

        audio_data = response.content
        latency_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "ElevenLabs synthesis complete",
            extra={
                "service": "tts",
                "provider": self.name,
                "voice_id": voice_id,
                "latency_ms": latency_ms,
                "audio_bytes": len(audio_data),
                "text_length": len(text),
            },
        )

        return TTSResult(audio_data=audio_data, format="mp3")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
