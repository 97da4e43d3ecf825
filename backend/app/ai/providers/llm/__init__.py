"""LLM provider implementations."""

from app.ai.providers.llm.openrouter import OpenRouterProvider
from app.ai.providers.llm.stub import StubLLMProvider, StubSTTProvider, StubTTSProvider

__all__ = [
    "OpenRouterProvider",
    "StubLLMProvider",
    "StubSTTProvider",
    "StubTTSProvider",
]
