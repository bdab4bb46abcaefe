"""
Abstract base class for embedding providers.

Defines the interface the ingestion pipeline uses to turn child chunk text
and queries into vectors, so embedding backends stay pluggable.
"""

from abc import ABC, abstractmethod
from typing import Sequence


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    Implementations must provide methods for:
    - Single text embedding
    - Batch text embedding
    - Token counting
    - Cost estimation
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier used by this provider."""
        pass

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Return the embedding dimensions for this model."""
        pass

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats
        """
        pass

    @abstractmethod
    def embed_texts(
        self,
        texts: Sequence[str],
        batch_size: int = 100
    ) -> list[list[float]]:
        """
        Generate embeddings for multiple texts with batching.

        Args:
            texts: List of texts to embed
            batch_size: Number of texts per API call

        Returns:
            List of embedding vectors
        """
        pass

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        """
        Count or estimate tokens in text.

        Args:
            text: Text to count tokens for

        Returns:
            Token count (exact or estimated)
        """
        pass

    def estimate_cost(self, texts: Sequence[str]) -> float:
        """
        Estimate cost in USD to embed texts.

        Providers without pricing information report 0.0.
        """
        return 0.0
