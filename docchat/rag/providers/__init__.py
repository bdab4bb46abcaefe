"""
Embedding providers package.

Provides a pluggable interface for embedding backends with consistent APIs.
"""

from docchat.rag.providers.base import EmbeddingProvider
from docchat.rag.providers.openai_provider import OpenAIEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
