"""
Generative / Embedding Provider Clients

Thin asynchronous clients for the two interchangeable external AI services.
Both implement the same capability interface:

- ``complete(prompt)`` -> generated text
- ``embed(text)``      -> EmbeddingResult

Every transport error, timeout, non-2xx status or malformed payload is
surfaced as ``ProviderError`` so callers can treat all failures uniformly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings, settings as default_settings
from ..embeddings.models import EmbeddingResult, EmbeddingUsage

logger = logging.getLogger("lexrag.llm")


class ProviderError(RuntimeError):
    """Raised when a single provider call fails."""


class GenerativeProvider(ABC):
    """
    Capability interface shared by every provider.

    Implementations hold no process-wide state; instances are injected into
    the components that need them.
    """

    name: str = "provider"

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str:
        """Return the model's text completion for ``prompt``."""

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Return the embedding vector for ``text``."""

    # ------------------------------------------------------------------
    # Shared transport
    # ------------------------------------------------------------------

    async def _post(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=headers, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            logger.error(
                "%s request failed (%s): %s",
                self.name,
                type(exc).__name__,
                str(exc),
            )
            raise ProviderError(
                f"{self.name} request failed: {type(exc).__name__}"
            ) from exc
        except ValueError as exc:
            raise ProviderError(f"{self.name} returned a non-JSON body") from exc


# ---------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------

class OpenAIClient(GenerativeProvider):
    name = "openai"

    def __init__(
        self,
        api_key: str,
        chat_model: str = "gpt-3.5-turbo",
        embedding_model: str = "text-embedding-ada-002",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
    ) -> None:
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.chat_model = chat_model
        self.embedding_model = embedding_model
        self.base_url = base_url.rstrip("/")

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str:
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        data = await self._post(
            f"{self.base_url}/chat/completions",
            {
                "model": self.chat_model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
            headers=self._headers,
        )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("openai completion response is malformed") from exc
        return content or ""

    async def embed(self, text: str) -> EmbeddingResult:
        data = await self._post(
            f"{self.base_url}/embeddings",
            {"model": self.embedding_model, "input": text},
            headers=self._headers,
        )

        records = data.get("data") if isinstance(data, dict) else None
        if not isinstance(records, list) or not records:
            raise ProviderError("openai embedding response missing 'data' field.")

        vector = records[0].get("embedding") if isinstance(records[0], dict) else None
        if not isinstance(vector, list) or not all(
            isinstance(x, (float, int)) for x in vector
        ):
            raise ProviderError("openai returned an invalid embedding vector.")

        usage = data.get("usage") or {}
        return EmbeddingResult(
            vector=[float(x) for x in vector],
            model=self.embedding_model,
            usage=EmbeddingUsage(
                prompt_tokens=usage.get("prompt_tokens", 0) or 0,
                total_tokens=usage.get("total_tokens", 0) or 0,
            ),
        )


# ---------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------

class GeminiClient(GenerativeProvider):
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-pro",
        embedding_model: str = "embedding-001",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
    ) -> None:
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.model = model
        self.embedding_model = embedding_model
        self.base_url = base_url.rstrip("/")

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": max_tokens,
                "temperature": temperature,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        data = await self._post(
            f"{self.base_url}/models/{self.model}:generateContent",
            payload,
            params={"key": self.api_key},
        )

        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("gemini completion response is malformed") from exc
        return "".join(part.get("text", "") for part in parts)

    async def embed(self, text: str) -> EmbeddingResult:
        data = await self._post(
            f"{self.base_url}/models/{self.embedding_model}:embedContent",
            {
                "model": f"models/{self.embedding_model}",
                "content": {"parts": [{"text": text}]},
            },
            params={"key": self.api_key},
        )

        values = (data.get("embedding") or {}).get("values") if isinstance(data, dict) else None
        if not isinstance(values, list) or not values:
            raise ProviderError("gemini returned an invalid embedding vector.")

        return EmbeddingResult(
            vector=[float(x) for x in values],
            model=self.embedding_model,
        )


# ---------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------

def build_openai_client(cfg: Settings = default_settings) -> Optional[OpenAIClient]:
    if cfg.openai_api_key is None:
        return None
    return OpenAIClient(
        api_key=cfg.openai_api_key.get_secret_value(),
        chat_model=cfg.openai_chat_model,
        embedding_model=cfg.embedding_model,
        base_url=cfg.openai_base_url,
        timeout=cfg.provider_timeout,
    )


def build_gemini_client(cfg: Settings = default_settings) -> Optional[GeminiClient]:
    if cfg.gemini_api_key is None:
        return None
    return GeminiClient(
        api_key=cfg.gemini_api_key.get_secret_value(),
        model=cfg.gemini_model,
        embedding_model=cfg.gemini_embedding_model,
        base_url=cfg.gemini_base_url,
        timeout=cfg.provider_timeout,
    )


def build_providers(cfg: Settings = default_settings) -> List[GenerativeProvider]:
    """
    Return the configured generation providers in priority order.

    Gemini is preferred; OpenAI is the secondary. Providers without an API
    key are left out.
    """
    providers: List[GenerativeProvider] = []
    for provider in (build_gemini_client(cfg), build_openai_client(cfg)):
        if provider is not None:
            providers.append(provider)

    if not providers:
        logger.warning("No AI provider API keys configured")

    return providers
