"""Voice HTTP endpoints: batch transcription and one-shot voice chat."""

from __future__ import annotations

import logging
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from app.api.http.dependencies import require_api_key
from app.config import get_settings
from app.core.di import get_pipeline
from app.domains.voice.pipeline import VoicePipeline
from app.exceptions import (
    InvalidMultipartError,
    InvalidSessionIdError,
    MissingInputError,
    PayloadTooLargeError,
)
from app.infrastructure.logging import set_request_context
from app.infrastructure.tasks import run_shielded
from app.schemas.voice import TranscriptionResponse

logger = logging.getLogger("api")

router = APIRouter(tags=["voice"], dependencies=[Depends(require_api_key)])


def _check_content_length(request: Request, limit_bytes: int) -> None:
    raw = request.headers.get("content-length")
    if raw and raw.isdigit() and int(raw) > limit_bytes:
        raise PayloadTooLargeError(limit_bytes)


@router.post("/api/v1/transcriptions", response_model=TranscriptionResponse)
async def create_transcription(
    request: Request,
    format: Literal["wav", "pcm"] = Query(default="wav"),
    pipeline: VoicePipeline = Depends(get_pipeline),
) -> TranscriptionResponse:
    """Transcribe a raw audio body (16 kHz mono 16-bit WAV by default)."""
    limit = get_settings().max_transcription_upload_bytes
    _check_content_length(request, limit)

    body = await request.body()
    if not body:
        raise MissingInputError("audio", "No audio data provided")
    if len(body) > limit:
        raise PayloadTooLargeError(limit)

    result = await run_shielded(
        pipeline.transcribe(body, audio_format=format), "transcription"
    )
    text = result.text or ""
    return TranscriptionResponse(
        text=text,
        segments=[text] if text else [],
        duration=result.duration_ms / 1000 if result.duration_ms is not None else None,
    )


@router.post("/voice-chat")
async def voice_chat(
    request: Request,
    pipeline: VoicePipeline = Depends(get_pipeline),
) -> Response:
    """Run one voice turn from a multipart upload.

    Form fields:
        audio: WAV file, 16 kHz mono 16-bit
        voice_session_id: UUID chosen by the client, stable across turns

    Returns the reply as ``audio/mpeg``.
    """
    limit = get_settings().max_voice_upload_bytes
    _check_content_length(request, limit)

    audio, raw_session_id = await _read_voice_form(request)
    if len(audio) > limit:
        raise PayloadTooLargeError(limit)

    try:
        session_id = uuid.UUID(raw_session_id)
    except ValueError as e:
        raise InvalidSessionIdError(raw_session_id) from e

    set_request_context(session_id=str(session_id))
    logger.info(
        "Voice chat request",
        extra={"service": "api", "session_id": str(session_id), "audio_bytes": len(audio)},
    )

    # A client disconnect must not abort a turn whose session writes may be committed
    result = await run_shielded(pipeline.run_turn(session_id, audio), "voice_turn")
    return Response(
        content=result.audio,
        media_type=result.content_type,
        headers={"X-Conversation-Turns": str(result.turn_count)},
    )


async def _read_voice_form(request: Request) -> tuple[bytes, str]:
    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as e:
        raise InvalidMultipartError(details={"reason": str(e)}) from e

    audio: bytes | None = None
    session_id: str | None = None
    try:
        for name, value in form.multi_items():
            if name == "audio":
                audio = await value.read() if isinstance(value, UploadFile) else value.encode()
            elif name == "voice_session_id":
                session_id = value if isinstance(value, str) else (await value.read()).decode()
            else:
                logger.warning(
                    "Unknown multipart field",
                    extra={"service": "api", "metadata": {"field": name}},
                )
    finally:
        await form.close()

    if not audio:
        raise MissingInputError("audio", "Missing audio file")
    if not session_id:
        raise MissingInputError("voice_session_id", "Missing voice_session_id")
    return audio, session_id.strip()
