"""Voice domain - spoken conversations with the Tea persona.

Components:
    - SessionStore: TTL-bounded in-memory conversation state
    - StreamIngestor: accumulates streamed audio frames for transcription
    - VoicePipeline: STT -> history -> LLM -> persist -> TTS for one turn
"""

from app.domains.voice.ingest import (
    AudioChunk,
    CloseSignal,
    FinishSignal,
    IngestState,
    OtherFrame,
    StreamIngestor,
    TransportError,
)
from app.domains.voice.pipeline import PipelineResult, StageTimeouts, VoicePipeline
from app.domains.voice.session_store import ConversationState, SessionStore, Turn

__all__ = [
    "AudioChunk",
    "CloseSignal",
    "ConversationState",
    "FinishSignal",
    "IngestState",
    "OtherFrame",
    "PipelineResult",
    "SessionStore",
    "StageTimeouts",
    "StreamIngestor",
    "TransportError",
    "Turn",
    "VoicePipeline",
]
