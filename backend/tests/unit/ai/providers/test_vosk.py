"""Tests for the Vosk STT provider (recognizer mocked)."""

import json
from unittest.mock import MagicMock, patch

import pytest

from app.ai.providers.errors import NoSpeechDetectedError, UnsupportedAudioFormatError
from app.ai.providers.stt.vosk import CHUNK_BYTES, VoskSTTProvider


def _recognizer(result: dict | str) -> MagicMock:
    recognizer = MagicMock()
    recognizer.FinalResult.return_value = result if isinstance(result, str) else json.dumps(result)
    return recognizer


@pytest.fixture
def provider():
    return VoskSTTProvider(model_path="/models/vosk-model-small-en-us")


class TestVoskSTTProvider:
    def test_name(self, provider):
        assert provider.name == "vosk"

    @pytest.mark.asyncio
    async def test_transcribes_wav(self, provider, wav_bytes):
        recognizer = _recognizer(
            {
                "text": "hello there",
                "result": [{"word": "hello", "conf": 0.9}, {"word": "there", "conf": 0.7}],
            }
        )
        with patch.object(VoskSTTProvider, "_build_recognizer", return_value=recognizer):
            result = await provider.transcribe(wav_bytes)

        assert result.transcript == "hello there"
        assert result.confidence == pytest.approx(0.8)
        assert result.duration_ms == 100

    @pytest.mark.asyncio
    async def test_feeds_audio_in_chunks(self, provider, wav_factory):
        pcm = b"\x01\x00" * (CHUNK_BYTES + 10)
        recognizer = _recognizer({"text": "ok"})

        with patch.object(VoskSTTProvider, "_build_recognizer", return_value=recognizer):
            await provider.transcribe(wav_factory(pcm))

        fed = [c.args[0] for c in recognizer.AcceptWaveform.call_args_list]
        assert len(fed) == 3
        assert all(len(chunk) <= CHUNK_BYTES for chunk in fed)
        assert b"".join(fed) == pcm

    @pytest.mark.asyncio
    async def test_raw_pcm_is_passed_through(self, provider):
        pcm = b"\x02\x00" * 100
        recognizer = _recognizer({"text": "raw"})

        with patch.object(VoskSTTProvider, "_build_recognizer", return_value=recognizer):
            result = await provider.transcribe(pcm, format="pcm")

        assert result.transcript == "raw"
        recognizer.AcceptWaveform.assert_called_once_with(pcm)

    @pytest.mark.asyncio
    async def test_odd_length_pcm_rejected(self, provider):
        with pytest.raises(UnsupportedAudioFormatError):
            await provider.transcribe(b"\x00\x01\x02", format="pcm")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("sample_rate", "channels"),
        [(8000, 1), (44100, 1), (16000, 2)],
    )
    async def test_wrong_wav_parameters_rejected(
        self, provider, wav_factory, sample_rate, channels
    ):
        audio = wav_factory(b"\x00\x00" * 200, sample_rate=sample_rate, channels=channels)

        with patch.object(VoskSTTProvider, "_build_recognizer") as build:
            with pytest.raises(UnsupportedAudioFormatError, match="16kHz mono"):
                await provider.transcribe(audio)
            build.assert_not_called()

    @pytest.mark.asyncio
    async def test_garbage_rejected(self, provider):
        with pytest.raises(UnsupportedAudioFormatError):
            await provider.transcribe(b"definitely not a wav file")

    @pytest.mark.asyncio
    async def test_unknown_format_rejected(self, provider):
        with pytest.raises(UnsupportedAudioFormatError):
            await provider.transcribe(b"\x00\x00", format="ogg")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("final", [{"text": ""}, {"text": "   "}, {}, ""])
    async def test_empty_result_is_no_speech(self, provider, wav_bytes, final):
        with patch.object(VoskSTTProvider, "_build_recognizer", return_value=_recognizer(final)):
            with pytest.raises(NoSpeechDetectedError):
                await provider.transcribe(wav_bytes)

    @pytest.mark.asyncio
    async def test_recognizer_failure_propagates(self, provider, wav_bytes):
        with patch.object(
            VoskSTTProvider, "_build_recognizer", side_effect=RuntimeError("model not found")
        ):
            with pytest.raises(RuntimeError, match="model not found"):
                await provider.transcribe(wav_bytes)
