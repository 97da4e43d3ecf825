"""Tests for the streaming ingest state machine."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.domains.voice.ingest import (
    NO_AUDIO_MESSAGE,
    AudioChunk,
    CloseSignal,
    FinishSignal,
    IngestState,
    OtherFrame,
    StreamIngestor,
    TransportError,
)
from app.exceptions import EmptyTranscriptionError


async def _events(*items):
    for item in items:
        yield item


@pytest.fixture
def send():
    return AsyncMock()


@pytest.fixture
def transcribe():
    return AsyncMock(return_value="hello world")


class TestHandle:
    def test_accumulates_chunks_in_order(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        assert ingestor.handle(AudioChunk(b"ab")) is True
        assert ingestor.handle(AudioChunk(b"cd")) is True

        assert ingestor.chunk_count == 2
        assert ingestor.byte_count == 4
        assert ingestor.state is IngestState.ACCUMULATING

    def test_other_frames_are_ignored(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        assert ingestor.handle(OtherFrame("text frame")) is True
        assert ingestor.state is IngestState.ACCUMULATING
        assert ingestor.byte_count == 0

    def test_finish_moves_to_finishing(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)
        ingestor.handle(AudioChunk(b"ab"))

        assert ingestor.handle(FinishSignal()) is False
        assert ingestor.state is IngestState.FINISHING

    def test_close_without_audio_aborts(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        assert ingestor.handle(CloseSignal()) is False
        assert ingestor.state is IngestState.ABORTED

    def test_events_after_signal_are_rejected(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)
        ingestor.handle(AudioChunk(b"ab"))
        ingestor.handle(FinishSignal())

        assert ingestor.handle(AudioChunk(b"cd")) is False
        assert ingestor.byte_count == 2


class TestRun:
    @pytest.mark.asyncio
    async def test_finish_transcribes_joined_audio(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        state = await ingestor.run(
            _events(AudioChunk(b"ab"), AudioChunk(b"cd"), FinishSignal(), AudioChunk(b"zz"))
        )

        assert state is IngestState.COMPLETED
        transcribe.assert_awaited_once_with(b"abcd")
        send.assert_awaited_once()
        message = send.call_args.args[0]
        assert message["type"] == "final"
        assert message["result"] == "hello world"
        assert "timestamp" in message

    @pytest.mark.asyncio
    async def test_close_with_audio_transcribes(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        state = await ingestor.run(_events(AudioChunk(b"ab"), CloseSignal()))

        assert state is IngestState.COMPLETED
        transcribe.assert_awaited_once_with(b"ab")

    @pytest.mark.asyncio
    async def test_finish_without_audio_reports_no_audio(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        state = await ingestor.run(_events(FinishSignal()))

        assert state is IngestState.ABORTED
        transcribe.assert_not_awaited()
        message = send.call_args.args[0]
        assert message["type"] == "error"
        assert message["error"] == NO_AUDIO_MESSAGE

    @pytest.mark.asyncio
    async def test_source_exhausted_counts_as_close(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        state = await ingestor.run(_events(AudioChunk(b"ab")))

        assert state is IngestState.COMPLETED
        transcribe.assert_awaited_once_with(b"ab")

    @pytest.mark.asyncio
    async def test_transport_error_discards_buffer(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        state = await ingestor.run(_events(AudioChunk(b"ab"), TransportError("reset by peer")))

        assert state is IngestState.FAILED
        transcribe.assert_not_awaited()
        assert ingestor.byte_count == 0
        message = send.call_args.args[0]
        assert message == {
            "type": "error",
            "result": None,
            "error": "WebSocket error: reset by peer",
            "timestamp": message["timestamp"],
        }

    @pytest.mark.asyncio
    async def test_transcription_error_becomes_terminal_message(self, send):
        transcribe = AsyncMock(side_effect=EmptyTranscriptionError())
        ingestor = StreamIngestor(transcribe, send)

        state = await ingestor.run(_events(AudioChunk(b"ab"), FinishSignal()))

        assert state is IngestState.COMPLETED
        message = send.call_args.args[0]
        assert message["type"] == "error"
        assert message["error"] == "Transcription failed: No speech detected in audio"

    @pytest.mark.asyncio
    async def test_unexpected_transcription_error(self, send):
        transcribe = AsyncMock(side_effect=RuntimeError("model crashed"))
        ingestor = StreamIngestor(transcribe, send)

        await ingestor.run(_events(AudioChunk(b"ab"), FinishSignal()))

        assert send.call_args.args[0]["error"] == "Transcription failed: model crashed"

    @pytest.mark.asyncio
    async def test_send_failure_is_swallowed(self, transcribe):
        send = AsyncMock(side_effect=RuntimeError("socket closed"))
        ingestor = StreamIngestor(transcribe, send)

        state = await ingestor.run(_events(AudioChunk(b"ab"), CloseSignal()))

        assert state is IngestState.COMPLETED
        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_exactly_one_terminal_message(self, transcribe, send):
        ingestor = StreamIngestor(transcribe, send)

        await ingestor.run(_events(AudioChunk(b"ab"), FinishSignal()))
        await ingestor.finish()

        assert send.await_count == 1

    @pytest.mark.asyncio
    async def test_transcription_survives_cancellation(self, send):
        started = asyncio.Event()
        release = asyncio.Event()
        finished = asyncio.Event()

        async def slow_transcribe(audio: bytes) -> str:
            started.set()
            await release.wait()
            finished.set()
            return "done"

        ingestor = StreamIngestor(slow_transcribe, send)
        task = asyncio.create_task(ingestor.run(_events(AudioChunk(b"ab"), FinishSignal())))
        await started.wait()

        task.cancel()
        release.set()
        with pytest.raises(asyncio.CancelledError):
            await task

        await asyncio.wait_for(finished.wait(), timeout=1)
