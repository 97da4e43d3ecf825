import logging
import time
from typing import Any

import httpx

from app.ai.providers.base import LLMMessage, LLMProvider, LLMResponse
from app.ai.providers.errors import GenerationError
from app.ai.providers.registry import register_llm_provider

logger = logging.getLogger("llm")

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


@register_llm_provider
class OpenRouterProvider(LLMProvider):
    """Chat completions through OpenRouter's OpenAI-compatible endpoint.

    One ``httpx.AsyncClient`` is opened lazily and reused across turns;
    ``aclose`` releases it on shutdown.
    """

    DEFAULT_MODEL = "meta-llama/llama-3.1-8b-instruct"

    @classmethod
    def resolve_model(cls, model: str | None) -> str | None:
        """OpenRouter ids are ``vendor/model``; anything else falls back to the default."""
        candidate = (model or "").strip()
        return candidate if "/" in candidate else cls.DEFAULT_MODEL

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        http_referer: str | None = None,
        x_title: str | None = None,
        base_url: str = OPENROUTER_BASE_URL,
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self._model = self.resolve_model(model)
        self._endpoint = f"{(base_url or OPENROUTER_BASE_URL).rstrip('/')}/chat/completions"
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        # Optional attribution headers used by OpenRouter rankings
        for header, value in (("HTTP-Referer", http_referer), ("X-Title", x_title)):
            if value and value.strip():
                self._headers[header] = value.strip()

    @property
    def name(self) -> str:
        return "openrouter"

    def _client_or_new(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _fail(self, message: str, error: Exception, **details: Any) -> GenerationError:
        logger.error(
            "Chat completion failed",
            extra={
                "service": "llm",
                "provider": self.name,
                "error": str(error)[:500],
                "metadata": details or None,
            },
        )
        return GenerationError(message, provider=self.name, details=details or None)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client_or_new().post(
                self._endpoint, headers=self._headers, json=payload
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise self._fail(
                f"OpenRouter API error ({status})", exc, status=status, body=exc.response.text[:500]
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise self._fail(f"OpenRouter request failed: {exc}", exc) from exc

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 150,
        **kwargs: Any,
    ) -> LLMResponse:
        started = time.perf_counter()
        chosen_model = self.resolve_model(model) if model else self._model

        payload: dict[str, Any] = {
            **kwargs,
            "model": chosen_model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.debug(
            "Chat completion requested",
            extra={
                "service": "llm",
                "provider": self.name,
                "model": chosen_model,
                "metadata": {"messages": len(messages), "max_tokens": max_tokens},
            },
        )

        data = await self._post(payload)

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            # Error bodies such as rate limits can arrive with HTTP 200
            error = (data.get("error") if isinstance(data, dict) else None) or "no choices"
            raise self._fail(
                "OpenRouter returned no choices", ValueError(str(error)), model=chosen_model
            )
        choice = choices[0]
        usage = data.get("usage") or {}
        result = LLMResponse(
            # No message body means an empty reply
            content=(choice.get("message") or {}).get("content") or "",
            model=str(data.get("model") or chosen_model),
            tokens_in=int(usage.get("prompt_tokens") or 0),
            tokens_out=int(usage.get("completion_tokens") or 0),
            finish_reason=choice.get("finish_reason"),
        )

        logger.info(
            "Chat completion finished",
            extra={
                "service": "llm",
                "provider": self.name,
                "model": result.model,
                "tokens_in": result.tokens_in,
                "tokens_out": result.tokens_out,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return result

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
