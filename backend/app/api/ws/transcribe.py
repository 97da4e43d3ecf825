"""WebSocket endpoint for streaming transcription."""

import contextlib
import logging
from collections.abc import AsyncIterator
from uuid import uuid4

from fastapi import HTTPException, WebSocket, status
from starlette.websockets import WebSocketState

from app.api.http.dependencies import API_KEY_HEADER, verify_api_key
from app.config import get_settings
from app.core.di import get_pipeline
from app.domains.voice.ingest import (
    FINISH_SIGNAL,
    AudioChunk,
    CloseSignal,
    FinishSignal,
    IngestEvent,
    OtherFrame,
    StreamIngestor,
    TransportError,
)
from app.infrastructure.logging import clear_request_context, set_request_context

logger = logging.getLogger("ws")


async def _frames(websocket: WebSocket) -> AsyncIterator[IngestEvent]:
    """Translate raw WebSocket messages into ingest events."""
    while True:
        try:
            message = await websocket.receive()
        except Exception as e:  # noqa: BLE001
            yield TransportError(str(e))
            return

        if message["type"] == "websocket.disconnect":
            yield CloseSignal()
            return

        data = message.get("bytes")
        text = message.get("text")
        if data is not None:
            yield AudioChunk(data)
        elif text is not None and text.strip() == FINISH_SIGNAL:
            yield FinishSignal()
        else:
            yield OtherFrame(description=f"text frame ({len(text or '')} chars)")


async def transcribe_stream_endpoint(websocket: WebSocket) -> None:
    """Accumulate PCM frames until FINISH or close, then send one result.

    Protocol:
    1. client sends binary frames of 16 kHz mono 16-bit PCM
    2. client sends the text frame ``FINISH`` (or closes)
    3. server sends ``{"type": "final", "result": ...}`` or
       ``{"type": "error", "error": ...}``
    """
    try:
        verify_api_key(websocket.headers.get(API_KEY_HEADER), get_settings().api_key)
    except HTTPException as e:
        logger.warning(
            "WebSocket rejected",
            extra={"service": "ws", "status": e.status_code, "error": e.detail},
        )
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e.detail))
        return

    connection_id = str(uuid4())
    set_request_context(connection_id=connection_id)
    await websocket.accept()
    logger.info("Transcription stream opened", extra={"service": "ws"})

    pipeline = get_pipeline(websocket)

    async def transcribe(audio: bytes) -> str:
        result = await pipeline.transcribe(audio, audio_format="pcm")
        return result.text or ""

    ingestor = StreamIngestor(transcribe=transcribe, send=websocket.send_json)
    try:
        async with contextlib.aclosing(_frames(websocket)) as frames:
            state = await ingestor.run(frames)
        logger.info(
            "Transcription stream closed",
            extra={"service": "ws", "state": state.value},
        )
    finally:
        if websocket.application_state == WebSocketState.CONNECTED:
            with contextlib.suppress(Exception):
                await websocket.close()
        clear_request_context()
