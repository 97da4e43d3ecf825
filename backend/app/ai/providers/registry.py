"""Name -> class registry for voice providers.

Provider modules decorate their classes at import time, so adding a vendor
means adding a module and importing it from its package ``__init__``:

    @register_stt_provider
    class VoskSTTProvider(STTProvider):
        @property
        def name(self) -> str:
            return "vosk"
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from app.ai.providers.base import LLMProvider, STTProvider, TTSProvider

P = TypeVar("P", bound=type)

KINDS = ("llm", "stt", "tts")

_registries: dict[str, dict[str, type]] = {kind: {} for kind in KINDS}

# Per-kind views, shared with the factory
_llm_registry: dict[str, type["LLMProvider"]] = _registries["llm"]
_stt_registry: dict[str, type["STTProvider"]] = _registries["stt"]
_tts_registry: dict[str, type["TTSProvider"]] = _registries["tts"]


class ProviderRegistryError(Exception):
    pass


class ProviderNotFoundError(ProviderRegistryError):
    """No provider of the requested kind is registered under that name."""


class DuplicateProviderError(ProviderRegistryError):
    """A second class tried to claim an existing provider name."""


def _provider_name(provider_class: type) -> str:
    # ``name`` is an instance property; its getter is called with the class
    # itself, so implementations must return a constant.
    attr = getattr(provider_class, "name", None)
    if isinstance(attr, property):
        attr = attr.fget(provider_class) if attr.fget is not None else None
    if not isinstance(attr, str) or not attr:
        raise ProviderRegistryError(
            f"Provider {provider_class.__name__} must define a constant 'name' property"
        )
    return attr


def _registrar(kind: str) -> Callable[[P], P]:
    registry = _registries[kind]

    def register(provider_class: P) -> P:
        name = _provider_name(provider_class)
        if name in registry:
            raise DuplicateProviderError(
                f"{kind.upper()} provider '{name}' is already registered"
            )
        registry[name] = provider_class
        return provider_class

    register.__name__ = f"register_{kind}_provider"
    return register


register_llm_provider = _registrar("llm")
register_stt_provider = _registrar("stt")
register_tts_provider = _registrar("tts")


def lookup(kind: str, name: str) -> type:
    """Return the class registered as ``name`` for ``kind``.

    Raises:
        ProviderNotFoundError: If nothing is registered under ``name``
    """
    registry = _registries[kind]
    try:
        return registry[name]
    except KeyError:
        known = ", ".join(sorted(registry)) or "(none)"
        raise ProviderNotFoundError(
            f"Unknown {kind.upper()} provider: '{name}'. Registered providers: {known}"
        ) from None


def get_registered_llm_providers() -> dict[str, type["LLMProvider"]]:
    return dict(_llm_registry)


def get_registered_stt_providers() -> dict[str, type["STTProvider"]]:
    return dict(_stt_registry)


def get_registered_tts_providers() -> dict[str, type["TTSProvider"]]:
    return dict(_tts_registry)


def is_llm_provider_registered(name: str) -> bool:
    return name in _llm_registry


def is_stt_provider_registered(name: str) -> bool:
    return name in _stt_registry


def is_tts_provider_registered(name: str) -> bool:
    return name in _tts_registry
