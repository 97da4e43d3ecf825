"""Dependency injection container."""

from dataclasses import dataclass

from starlette.requests import HTTPConnection

from app.ai.providers import (
    get_llm_provider,
    get_stt_provider,
    get_tts_provider,
)
from app.ai.providers.base import (
    LLMProvider,
    STTProvider,
    TTSProvider,
)
from app.config import Settings, get_settings
from app.domains.voice.pipeline import StageTimeouts, VoicePipeline
from app.domains.voice.session_store import SessionStore
from app.infrastructure.vector_store import VectorStoreService


@dataclass
class Container:
    """Process-wide objects shared by every request.

    Built once by the application lifespan and kept on ``app.state``.
    """

    session_store: SessionStore
    llm_provider: LLMProvider
    stt_provider: STTProvider
    tts_provider: TTSProvider
    pipeline: VoicePipeline
    vector_store: VectorStoreService | None = None


def build_container(
    settings: Settings | None = None,
    session_store: SessionStore | None = None,
) -> Container:
    """Wire the session store, providers and pipeline from settings."""
    settings = settings or get_settings()
    store = session_store or SessionStore(ttl_seconds=settings.session_ttl_seconds)
    llm = get_llm_provider()
    stt = get_stt_provider()
    tts = get_tts_provider()
    pipeline = VoicePipeline(
        store=store,
        stt_provider=stt,
        llm_provider=llm,
        tts_provider=tts,
        timeouts=StageTimeouts(
            transcription=settings.provider_timeout_stt_seconds,
            generation=settings.provider_timeout_llm_seconds,
            synthesis=settings.provider_timeout_tts_seconds,
        ),
        max_tokens=settings.voice_max_tokens,
        temperature=settings.voice_temperature,
    )
    return Container(
        session_store=store,
        llm_provider=llm,
        stt_provider=stt,
        tts_provider=tts,
        pipeline=pipeline,
    )


def get_container(connection: HTTPConnection) -> Container:
    """FastAPI dependency returning the container built at startup."""
    return connection.app.state.container


def get_pipeline(connection: HTTPConnection) -> VoicePipeline:
    """FastAPI dependency returning the shared voice pipeline."""
    return get_container(connection).pipeline
