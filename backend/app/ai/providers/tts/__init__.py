"""TTS (Text-to-Speech) provider implementations."""

from app.ai.providers.tts.elevenlabs import ElevenLabsTTSProvider

__all__ = ["ElevenLabsTTSProvider"]
