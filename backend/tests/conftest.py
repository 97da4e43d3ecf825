"""Test configuration for the voice backend.

The suite needs no database, Qdrant or provider credentials: every test runs
against stub providers with zero simulated latency.
"""

import io
import os
import wave
from collections.abc import Generator

import pytest

os.environ["ENVIRONMENT"] = "development"
os.environ.setdefault("DATABASE_INIT_ON_STARTUP", "false")
os.environ.setdefault("QDRANT_ENABLED", "false")

TEST_API_KEY = "test_api_key_123"


@pytest.fixture(autouse=True)
def reset_environment_state() -> Generator[None, None, None]:
    """Reset environment variables between tests to prevent interference."""
    test_specific_vars = [
        "ENVIRONMENT",
        "API_KEY",
        "LLM_PROVIDER",
        "STT_PROVIDER",
        "TTS_PROVIDER",
        "OPENROUTER_API_KEY",
        "ELEVENLABS_API_KEY",
        "VOSK_MODEL_PATH",
        "DATABASE_INIT_ON_STARTUP",
        "DATABASE_DISABLE_POOLING",
        "QDRANT_ENABLED",
        "STUB_LATENCY_MS",
        "STUB_LLM_MODE",
        "STUB_LLM_FORCE_REPLY",
        "STUB_STT_MODE",
        "STUB_STT_EMPTY_TRANSCRIPT",
        "STUB_STT_FORCE_TRANSCRIPT",
        "STUB_TTS_MODE",
        "STUB_TTS_AUDIO_BYTES",
    ]
    original_env = {var: os.environ.get(var) for var in test_specific_vars}

    baseline = {
        "ENVIRONMENT": "development",
        "API_KEY": TEST_API_KEY,
        "LLM_PROVIDER": "stub",
        "STT_PROVIDER": "stub",
        "TTS_PROVIDER": "stub",
        "DATABASE_INIT_ON_STARTUP": "false",
        "DATABASE_DISABLE_POOLING": "true",
        "QDRANT_ENABLED": "false",
        "STUB_LATENCY_MS": "0",
    }
    for var in test_specific_vars:
        if var not in baseline:
            os.environ.pop(var, None)
    os.environ.update(baseline)

    yield

    for var, value in original_env.items():
        if value is None:
            os.environ.pop(var, None)
        else:
            os.environ[var] = value


@pytest.fixture(autouse=True)
def reset_settings_cache(reset_environment_state) -> Generator[None, None, None]:
    """Clear cached settings before each test so env vars are re-read."""
    from app.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_provider_singletons(reset_environment_state) -> Generator[None, None, None]:
    """Reset cached provider instances between tests."""
    from app.ai.providers.factory import (
        get_llm_provider,
        get_stt_provider,
        get_tts_provider,
    )

    for factory in (get_llm_provider, get_stt_provider, get_tts_provider):
        factory.cache_clear()
    yield
    for factory in (get_llm_provider, get_stt_provider, get_tts_provider):
        factory.cache_clear()


def make_wav(
    pcm: bytes = b"\x01\x00" * 1600,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Build an in-memory WAV file around raw PCM frames."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buf.getvalue()


@pytest.fixture
def wav_bytes() -> bytes:
    """100 ms of 16 kHz mono 16-bit audio in a WAV container."""
    return make_wav()


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {"x-api-key": TEST_API_KEY}


@pytest.fixture
def wav_factory():
    """Return ``make_wav`` for tests that need non-default audio parameters."""
    return make_wav
