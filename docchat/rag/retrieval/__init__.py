"""
Retrieval package for similarity and diversity strategies.

Provides:
- Cosine similarity helpers
- Maximal Marginal Relevance with span-aware penalties
"""

from docchat.rag.retrieval.diversity import (
    cosine_similarity,
    cosine_similarities,
    maximal_marginal_relevance,
)

__all__ = [
    "cosine_similarity",
    "cosine_similarities",
    "maximal_marginal_relevance",
]
