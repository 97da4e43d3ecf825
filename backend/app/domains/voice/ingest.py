"""Streaming audio ingestion for one duplex connection.

A ``StreamIngestor`` accumulates binary audio frames until the peer sends
the ``FINISH`` control frame or closes the connection, then hands the
buffer to a transcription callable and sends exactly one terminal
:class:`~app.schemas.voice.StreamingMessage`.

States::

    ACCUMULATING --finish / close with audio--> FINISHING --> COMPLETED
    ACCUMULATING --close without audio--------> ABORTED
    ACCUMULATING --transport error------------> FAILED

The ingestor knows nothing about WebSockets; the gateway converts frames to
the events below.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.exceptions import AppError
from app.infrastructure.tasks import run_shielded
from app.schemas.voice import StreamingMessage

logger = logging.getLogger("voice")

FINISH_SIGNAL = "FINISH"
NO_AUDIO_MESSAGE = "No audio data received"


class IngestState(str, Enum):
    ACCUMULATING = "accumulating"
    FINISHING = "finishing"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({IngestState.COMPLETED, IngestState.FAILED, IngestState.ABORTED})


@dataclass(frozen=True)
class AudioChunk:
    data: bytes


@dataclass(frozen=True)
class FinishSignal:
    pass


@dataclass(frozen=True)
class CloseSignal:
    pass


@dataclass(frozen=True)
class TransportError:
    error: str


@dataclass(frozen=True)
class OtherFrame:
    """Any frame that is neither audio nor a control signal."""

    description: str = ""


IngestEvent = AudioChunk | FinishSignal | CloseSignal | TransportError | OtherFrame


@dataclass
class IngestBuffer:
    """Ordered audio chunks of one connection."""

    chunks: list[bytes] = field(default_factory=list)
    byte_count: int = 0

    def add(self, data: bytes) -> None:
        self.chunks.append(data)
        self.byte_count += len(data)

    def join(self) -> bytes:
        return b"".join(self.chunks)

    def clear(self) -> None:
        self.chunks.clear()
        self.byte_count = 0


class StreamIngestor:
    """Per-connection state machine feeding the transcription stage.

    Args:
        transcribe: Awaitable taking the joined audio and returning text.
            Raised errors become the terminal ``error`` message.
        send: Sends one JSON-compatible message to the peer. Failures are
            logged and never raised.
    """

    def __init__(
        self,
        transcribe: Callable[[bytes], Awaitable[str]],
        send: Callable[[dict[str, Any]], Awaitable[None]],
    ) -> None:
        self._transcribe = transcribe
        self._send = send
        self._buffer = IngestBuffer()
        self._transport_error: str | None = None
        self.state = IngestState.ACCUMULATING

    @property
    def chunk_count(self) -> int:
        return len(self._buffer.chunks)

    @property
    def byte_count(self) -> int:
        return self._buffer.byte_count

    def handle(self, event: IngestEvent) -> bool:
        """Apply one inbound event.

        Returns:
            True while the ingestor wants more events
        """
        if self.state is not IngestState.ACCUMULATING:
            return False

        if isinstance(event, AudioChunk):
            self._buffer.add(event.data)
            return True
        if isinstance(event, FinishSignal):
            self.state = IngestState.FINISHING
            return False
        if isinstance(event, CloseSignal):
            self.state = IngestState.FINISHING if self.byte_count else IngestState.ABORTED
            return False
        if isinstance(event, TransportError):
            self._transport_error = event.error
            self.state = IngestState.FAILED
            return False

        logger.debug(
            "Ignoring stream frame",
            extra={"service": "voice", "metadata": {"frame": getattr(event, "description", "")}},
        )
        return True

    async def finish(self) -> IngestState:
        """Drive the ingestor to a terminal state and send the terminal message."""
        try:
            if self.state is IngestState.ACCUMULATING:
                # Event source ended without a signal: same as a close
                self.handle(CloseSignal())

            if self.state is IngestState.FINISHING and not self.byte_count:
                self.state = IngestState.ABORTED

            if self.state is IngestState.ABORTED:
                logger.info(
                    "Audio stream ended without audio",
                    extra={"service": "voice", "state": self.state.value},
                )
                await self._safe_send(StreamingMessage.failure(NO_AUDIO_MESSAGE))
            elif self.state is IngestState.FAILED:
                logger.warning(
                    "Audio stream transport error",
                    extra={"service": "voice", "error": self._transport_error},
                )
                await self._safe_send(
                    StreamingMessage.failure(f"WebSocket error: {self._transport_error}")
                )
            elif self.state is IngestState.FINISHING:
                await self._complete()
        finally:
            self._buffer.clear()
        return self.state

    async def run(self, events: AsyncIterator[IngestEvent]) -> IngestState:
        """Consume events until a signal arrives, then finish."""
        async for event in events:
            if not self.handle(event):
                break
        return await self.finish()

    async def _complete(self) -> None:
        audio = self._buffer.join()
        logger.info(
            "Audio stream finished",
            extra={
                "service": "voice",
                "chunk_count": self.chunk_count,
                "audio_bytes": len(audio),
            },
        )
        try:
            # Let transcription finish even if the connection task is cancelled
            text = await run_shielded(self._transcribe(audio), "stream_transcription")
        except AppError as e:
            message = StreamingMessage.failure(f"Transcription failed: {e.message}")
        except Exception as e:
            logger.error(
                "Stream transcription failed",
                extra={"service": "voice", "error": str(e)},
                exc_info=True,
            )
            message = StreamingMessage.failure(f"Transcription failed: {e}")
        else:
            message = StreamingMessage.final(text)

        self.state = IngestState.COMPLETED
        await self._safe_send(message)

    async def _safe_send(self, message: StreamingMessage) -> None:
        try:
            await self._send(message.model_dump(mode="json"))
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "Failed to send stream message",
                extra={"service": "voice", "error": str(e), "state": self.state.value},
            )
