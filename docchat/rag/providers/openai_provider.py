"""
OpenAI embedding provider implementation.

Embeds child chunks and queries through the OpenAI embeddings API, with
retries on transient failures and tiktoken-based token counting.
"""

import logging
import time
from typing import Sequence

import tiktoken
from openai import OpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from docchat.config import get_settings
from docchat.rag.providers.base import EmbeddingProvider

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embedding provider using text-embedding-3-small by default."""

    # Pricing: $0.02 per 1M tokens for text-embedding-3-small
    COST_PER_MILLION_TOKENS = 0.02

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        dimensions: int | None = None,
    ):
        """
        Initialize OpenAI embedding provider.

        Args:
            api_key: OpenAI API key (defaults to settings)
            model: Model name (defaults to settings)
            dimensions: Embedding dimensions (defaults to settings)
        """
        settings = get_settings()
        self._api_key = api_key or settings.openai_api_key
        self._model = model or settings.embedding_model
        self._dimensions = dimensions or settings.embedding_dimensions

        # Lazy-initialized client and tokenizer
        self._client: OpenAI | None = None
        self._encoder: tiktoken.Encoding | None = None

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _get_client(self) -> OpenAI:
        """Get or create the API client."""
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    def _get_encoder(self) -> tiktoken.Encoding:
        """Get or initialize the tiktoken encoder."""
        if self._encoder is None:
            # cl100k_base is the encoding of the text-embedding-3 models
            self._encoder = tiktoken.get_encoding("cl100k_base")
        return self._encoder

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=1, max=10))
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        response = self._get_client().embeddings.create(
            model=self._model,
            input=text,
            dimensions=self._dimensions,
        )
        return response.data[0].embedding

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=1, max=10))
    def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        response = self._get_client().embeddings.create(
            model=self._model,
            input=batch,
            dimensions=self._dimensions,
        )

        # Sort by index to ensure order matches input
        embeddings: list[list[float]] = [[] for _ in batch]
        for item in response.data:
            embeddings[item.index] = item.embedding
        return embeddings

    def embed_texts(
        self,
        texts: Sequence[str],
        batch_size: int = 100
    ) -> list[list[float]]:
        """Generate embeddings for multiple texts with batching."""
        all_embeddings = []

        for i in range(0, len(texts), batch_size):
            all_embeddings.extend(self._embed_batch(list(texts[i:i + batch_size])))
            logger.debug(f"Embedded batch {i // batch_size + 1}, total: {len(all_embeddings)}")

            # Brief pause between batches for rate limiting
            if i + batch_size < len(texts):
                time.sleep(0.1)

        return all_embeddings

    def count_tokens(self, text: str) -> int:
        """Count tokens in text with tiktoken."""
        return len(self._get_encoder().encode(text))

    def estimate_cost(self, texts: Sequence[str]) -> float:
        """
        Estimate cost to embed texts.

        Pricing: $0.02 per 1M tokens for text-embedding-3-small
        """
        total_tokens = sum(self.count_tokens(t) for t in texts)
        return (total_tokens / 1_000_000) * self.COST_PER_MILLION_TOKENS
