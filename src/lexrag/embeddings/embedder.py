"""
Embedding Client

This module implements the embedding step of the retrieval pipeline. It
wraps exactly one configured provider and is responsible for:

- Silent truncation of oversized input to the provider's character budget
- Isolation of provider/transport failures behind ``EmbeddingError``
- Strict validation of the returned vector

There is no provider fallback for embeddings. Vectors from different
models are not comparable, so an index only ever holds one model's vectors.

The class is stateless and safe to reuse across requests.
"""

from __future__ import annotations

from typing import Optional
import logging

from ..config import settings
from ..llm.client import GenerativeProvider, ProviderError
from .models import EmbeddingResult

logger = logging.getLogger("lexrag.embedder")


class EmbeddingError(RuntimeError):
    """Raised when embedding generation fails."""


class Embedder:
    """
    Asynchronous embedding generator for single texts.

    This class performs no caching and assumes the caller handles
    higher-level caching or persistent index management.
    """

    def __init__(
        self,
        provider: Optional[GenerativeProvider],
        max_chars: Optional[int] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        provider : Optional[GenerativeProvider]
            The embedding provider. ``None`` means embeddings are
            unavailable and every call raises EmbeddingError.

        max_chars : Optional[int]
            Character budget applied before submission.
            Defaults to settings.embedding_max_chars.
        """
        self.provider = provider
        self.max_chars = max_chars or settings.embedding_max_chars

    @property
    def available(self) -> bool:
        return self.provider is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> EmbeddingResult:
        """
        Generate the embedding for one input text.

        Parameters
        ----------
        text : str
            Input text. Anything beyond ``max_chars`` characters is dropped.

        Returns
        -------
        EmbeddingResult
            Vector, model name and token usage.

        Raises
        ------
        EmbeddingError
            If no provider is configured or the provider call fails.
        """
        if self.provider is None:
            raise EmbeddingError("No embedding service available")

        try:
            result = await self.provider.embed(text[: self.max_chars])
        except ProviderError as exc:
            logger.error(
                "Embedding request failed (%s): %s",
                self.provider.name,
                str(exc),
            )
            raise EmbeddingError(
                f"Embedding generation failed: {self.provider.name}"
            ) from exc

        if not result.vector:
            raise EmbeddingError("Embedding provider returned an empty vector.")

        return result
