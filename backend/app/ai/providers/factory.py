"""Build the configured provider for each voice stage.

Providers self-register at import time; this module resolves the configured
name through the registry and builds the instance from settings. A provider
whose credentials are missing, or whose constructor fails, is replaced by
the stub of the same kind with a warning so local runs never need keys.
"""

import logging
from collections.abc import Callable
from functools import lru_cache
from typing import Any

# Imported for registration side effects
from app.ai.providers import llm, stt, tts  # noqa: F401
from app.ai.providers.base import LLMProvider, STTProvider, TTSProvider
from app.ai.providers.llm.stub import StubLLMProvider, StubSTTProvider, StubTTSProvider
from app.ai.providers.registry import lookup
from app.config import Settings, get_settings

logger = logging.getLogger("providers")


def _openrouter_kwargs(s: Settings) -> dict[str, Any] | None:
    if not s.openrouter_api_key:
        return None
    return {
        "api_key": s.openrouter_api_key,
        "model": s.openrouter_chat_model_lite,
        "http_referer": s.openrouter_http_referer,
        "x_title": s.openrouter_x_title,
        "base_url": s.openrouter_base_url,
        "timeout": s.provider_timeout_llm_seconds,
    }


def _elevenlabs_kwargs(s: Settings) -> dict[str, Any] | None:
    if not s.elevenlabs_api_key:
        return None
    return {
        "api_key": s.elevenlabs_api_key,
        "voice_id": s.elevenlabs_voice_id,
        "model_id": s.elevenlabs_model_id,
        "base_url": s.elevenlabs_base_url,
        "timeout": s.provider_timeout_tts_seconds,
    }


def _vosk_kwargs(s: Settings) -> dict[str, Any] | None:
    if not s.vosk_model_path:
        return None
    return {"model_path": s.vosk_model_path}


# provider name -> (constructor kwargs or None when unconfigured, setting that enables it)
_CONFIGURATION: dict[str, tuple[Callable[[Settings], dict[str, Any] | None], str]] = {
    "openrouter": (_openrouter_kwargs, "OPENROUTER_API_KEY"),
    "elevenlabs": (_elevenlabs_kwargs, "ELEVENLABS_API_KEY"),
    "vosk": (_vosk_kwargs, "VOSK_MODEL_PATH"),
}


def _build(kind: str, requested: str | None, default: str, stub_class: type) -> Any:
    name = (requested or "").lower().strip() or default
    provider_class = lookup(kind, name)
    label = kind.upper()

    if name == "stub":
        logger.warning(
            f"Using stub {label} provider (explicitly requested)",
            extra={"service": "providers", "provider": "stub", "reason": "explicit_request"},
        )
        return provider_class()

    kwargs_for, env_var = _CONFIGURATION.get(name, (lambda _s: {}, ""))
    init_kwargs = kwargs_for(get_settings())
    if init_kwargs is None:
        logger.warning(
            f"Using stub {label} provider, {env_var} not configured",
            extra={
                "service": "providers",
                "provider": "stub",
                "reason": "missing_configuration",
                "metadata": {"requested": name, "env_var": env_var},
            },
        )
        return stub_class()

    try:
        instance = provider_class(**init_kwargs)
    except Exception as e:  # noqa: BLE001
        logger.warning(
            f"Using stub {label} provider, {name} failed to initialize",
            extra={
                "service": "providers",
                "provider": "stub",
                "reason": "initialization_error",
                "error": str(e),
                "metadata": {"requested": name},
            },
        )
        return stub_class()

    logger.info(f"{label} provider initialized", extra={"service": "providers", "provider": name})
    return instance


@lru_cache
def get_llm_provider(provider: str | None = None) -> LLMProvider:
    """LLM provider named ``provider``, or ``settings.llm_provider`` when None.

    Raises:
        ProviderNotFoundError: If the name is not registered
    """
    return _build("llm", provider or get_settings().llm_provider, "openrouter", StubLLMProvider)


@lru_cache
def get_stt_provider(provider: str | None = None) -> STTProvider:
    return _build("stt", provider or get_settings().stt_provider, "vosk", StubSTTProvider)


@lru_cache
def get_tts_provider(provider: str | None = None) -> TTSProvider:
    return _build("tts", provider or get_settings().tts_provider, "elevenlabs", StubTTSProvider)
