"""Tests for provider construction from settings."""

import os

import pytest

from app.ai.providers.factory import get_llm_provider, get_stt_provider, get_tts_provider
from app.ai.providers.llm.openrouter import OpenRouterProvider
from app.ai.providers.llm.stub import StubLLMProvider, StubSTTProvider, StubTTSProvider
from app.ai.providers.registry import ProviderNotFoundError
from app.ai.providers.stt.vosk import VoskSTTProvider
from app.ai.providers.tts.elevenlabs import ElevenLabsTTSProvider
from app.config import get_settings


def _configure(**env: str) -> None:
    os.environ.update(env)
    get_settings.cache_clear()


class TestProviderFactory:
    def test_explicit_stub(self):
        assert isinstance(get_llm_provider(), StubLLMProvider)
        assert isinstance(get_stt_provider(), StubSTTProvider)
        assert isinstance(get_tts_provider(), StubTTSProvider)

    def test_missing_credentials_fall_back_to_stub(self):
        _configure(
            LLM_PROVIDER="openrouter",
            STT_PROVIDER="vosk",
            VOSK_MODEL_PATH="",
            TTS_PROVIDER="elevenlabs",
        )

        assert isinstance(get_llm_provider(), StubLLMProvider)
        assert isinstance(get_stt_provider(), StubSTTProvider)
        assert isinstance(get_tts_provider(), StubTTSProvider)

    def test_configured_providers(self):
        _configure(
            LLM_PROVIDER="openrouter",
            OPENROUTER_API_KEY="or_key",
            STT_PROVIDER="vosk",
            VOSK_MODEL_PATH="/models/vosk",
            TTS_PROVIDER="elevenlabs",
            ELEVENLABS_API_KEY="el_key",
        )

        llm = get_llm_provider()
        stt = get_stt_provider()
        tts = get_tts_provider()

        assert isinstance(llm, OpenRouterProvider)
        assert isinstance(stt, VoskSTTProvider)
        assert stt.model_path == "/models/vosk"
        assert isinstance(tts, ElevenLabsTTSProvider)
        assert tts.api_key == "el_key"

    def test_explicit_name_overrides_settings(self):
        _configure(OPENROUTER_API_KEY="or_key")
        assert isinstance(get_llm_provider("openrouter"), OpenRouterProvider)

    def test_instances_are_cached(self):
        assert get_llm_provider() is get_llm_provider()

    def test_unknown_provider(self):
        with pytest.raises(ProviderNotFoundError, match="Registered providers"):
            get_llm_provider("bogus")

    def test_constructor_failure_falls_back_to_stub(self, monkeypatch):
        def _boom(self, **kwargs):
            raise RuntimeError("bad config")

        monkeypatch.setattr(ElevenLabsTTSProvider, "__init__", _boom)
        _configure(TTS_PROVIDER="elevenlabs", ELEVENLABS_API_KEY="el_key")

        assert isinstance(get_tts_provider(), StubTTSProvider)
