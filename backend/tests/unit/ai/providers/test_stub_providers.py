"""Tests for the environment-driven stub providers."""

import pytest

from app.ai.providers.base import LLMMessage
from app.ai.providers.errors import (
    GenerationError,
    NoSpeechDetectedError,
    SynthesisError,
    UnsupportedAudioFormatError,
)
from app.ai.providers.llm.stub import StubLLMProvider, StubSTTProvider, StubTTSProvider


class TestStubLLMProvider:
    @pytest.mark.asyncio
    async def test_echoes_last_user_message(self):
        resp = await StubLLMProvider().generate(
            [
                LLMMessage(role="system", content="persona"),
                LLMMessage(role="user", content="hello"),
            ]
        )
        assert resp.content == "I hear you saying: hello"
        assert resp.finish_reason == "stop"

    @pytest.mark.asyncio
    async def test_forced_reply(self, monkeypatch):
        monkeypatch.setenv("STUB_LLM_FORCE_REPLY", "hi there")
        resp = await StubLLMProvider().generate([LLMMessage(role="user", content="hello")])
        assert resp.content == "hi there"

    @pytest.mark.asyncio
    async def test_forced_empty_reply(self, monkeypatch):
        monkeypatch.setenv("STUB_LLM_FORCE_REPLY", "")
        resp = await StubLLMProvider().generate([LLMMessage(role="user", content="hello")])
        assert resp.content == ""
        assert resp.tokens_out == 0

    @pytest.mark.asyncio
    async def test_error_mode(self, monkeypatch):
        monkeypatch.setenv("STUB_LLM_MODE", "error")
        with pytest.raises(GenerationError):
            await StubLLMProvider().generate([LLMMessage(role="user", content="hello")])


class TestStubSTTProvider:
    @pytest.mark.asyncio
    async def test_default_transcript(self):
        result = await StubSTTProvider().transcribe(b"\x00" * 3200)
        assert result.transcript == "This is a stub transcription of the audio."
        assert result.duration_ms == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("mode", "error_cls"),
        [
            ("error", RuntimeError),
            ("unsupported", UnsupportedAudioFormatError),
            ("silence", NoSpeechDetectedError),
        ],
    )
    async def test_failure_modes(self, monkeypatch, mode, error_cls):
        monkeypatch.setenv("STUB_STT_MODE", mode)
        with pytest.raises(error_cls):
            await StubSTTProvider().transcribe(b"\x00\x00")

    @pytest.mark.asyncio
    async def test_empty_transcript(self, monkeypatch):
        monkeypatch.setenv("STUB_STT_EMPTY_TRANSCRIPT", "true")
        result = await StubSTTProvider().transcribe(b"\x00\x00")
        assert result.transcript == ""


class TestStubTTSProvider:
    @pytest.mark.asyncio
    async def test_returns_silent_audio(self, monkeypatch):
        monkeypatch.setenv("STUB_TTS_AUDIO_BYTES", "16")
        result = await StubTTSProvider().synthesize("hi there")
        assert result.audio_data == b"\x00" * 16
        assert result.format == "mp3"

    @pytest.mark.asyncio
    async def test_error_mode(self, monkeypatch):
        monkeypatch.setenv("STUB_TTS_MODE", "error")
        with pytest.raises(SynthesisError):
            await StubTTSProvider().synthesize("hi there")

    @pytest.mark.asyncio
    async def test_blank_text_rejected(self):
        with pytest.raises(SynthesisError, match="empty text"):
            await StubTTSProvider().synthesize("  ")
