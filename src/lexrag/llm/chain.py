"""
Provider Chain

Prioritized list of generative providers with first-success semantics.
The chain is the single entry point for text generation: callers never
talk to a concrete provider directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .client import GenerativeProvider, ProviderError

logger = logging.getLogger("lexrag.llm.chain")


class GenerationError(RuntimeError):
    """Raised when no provider is configured or every provider failed."""


@dataclass(frozen=True)
class Completion:
    """Text produced by the first provider that succeeded."""
    text: str
    provider: str


class ProviderChain:
    def __init__(self, providers: Sequence[GenerativeProvider]) -> None:
        self._providers: List[GenerativeProvider] = list(providers)

    @property
    def providers(self) -> List[GenerativeProvider]:
        return list(self._providers)

    def __bool__(self) -> bool:
        return bool(self._providers)

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> Completion:
        """
        Ask each provider in turn until one answers.

        Raises
        ------
        GenerationError
            If the chain is empty or every provider raised ProviderError.
        """
        if not self._providers:
            raise GenerationError("No AI service available")

        failures: List[str] = []
        for provider in self._providers:
            try:
                text = await provider.complete(
                    prompt,
                    system=system,
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
            except ProviderError as exc:
                logger.warning("Provider %s failed, trying next: %s", provider.name, exc)
                failures.append(provider.name)
                continue

            return Completion(text=text, provider=provider.name)

        raise GenerationError(f"All AI providers failed: {', '.join(failures)}")
