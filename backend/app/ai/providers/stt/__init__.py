"""STT (Speech-to-Text) provider implementations."""

from app.ai.providers.stt.vosk import VoskSTTProvider

__all__ = ["VoskSTTProvider"]
