"""AI providers for the voice pipeline.

This module contains:
- providers: STT, LLM and TTS provider implementations
"""
