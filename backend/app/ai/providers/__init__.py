"""Voice provider implementations.

This package contains the STT (Vosk), LLM (OpenRouter) and TTS (ElevenLabs)
adapters plus stub providers for development and tests.
"""

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
    ProviderError,
    SynthesisError,
    UnsupportedAudioFormatError,
)
from app.ai.providers.factory import get_llm_provider, get_stt_provider, get_tts_provider
from app.ai.providers.llm import OpenRouterProvider
from app.ai.providers.llm.stub import StubLLMProvider, StubSTTProvider, StubTTSProvider
from app.ai.providers.stt import VoskSTTProvider
from app.ai.providers.tts import ElevenLabsTTSProvider

__all__ = [
    "get_llm_provider",
    "get_stt_provider",
    "get_tts_provider",
    "LLMProvider",
    "STTProvider",
    "TTSProvider",
    "LLMMessage",
    "LLMResponse",
    "STTResult",
    "TTSResult",
    "ProviderError",
    "UnsupportedAudioFormatError",
    "NoSpeechDetectedError",
    "GenerationError",
    "SynthesisError",
    "OpenRouterProvider",
    "VoskSTTProvider",
    "ElevenLabsTTSProvider",
    "StubLLMProvider",
    "StubSTTProvider",
    "StubTTSProvider",
]
