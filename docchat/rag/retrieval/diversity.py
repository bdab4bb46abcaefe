"""
Similarity and diversity helpers for retrieval results.

Implements:
- Cosine similarity (single pair and query-vs-matrix)
- Maximal Marginal Relevance (MMR) with an optional span penalty that
  discourages picking many results from the same document section
"""

import logging
from typing import Any, Callable, Sequence

import numpy as np

from docchat.config import get_settings

logger = logging.getLogger(__name__)


def cosine_similarity(a: list[float] | np.ndarray, b: list[float] | np.ndarray) -> float:
    """Compute cosine similarity between two vectors."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def cosine_similarities(query: list[float] | np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """
    Compute cosine similarity between a query and each row of a matrix.

    Rows (or a query) with zero norm score 0.0.

    Args:
        query: Query vector of length d
        matrix: Array of shape (n, d)

    Returns:
        Array of n similarities
    """
    query = np.asarray(query, dtype=float)
    matrix = np.asarray(matrix, dtype=float)
    if matrix.size == 0:
        return np.zeros(len(matrix))

    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * query_norm

    dots = matrix @ query
    sims = np.zeros(len(matrix))
    nonzero = denom > 0
    sims[nonzero] = dots[nonzero] / denom[nonzero]
    return sims


def _normalize_rows(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return vectors / norms


def maximal_marginal_relevance(
    query_embedding: list[float] | np.ndarray | None,
    results: Sequence[Any],
    embedding_getter: Callable[[Any], list[float] | np.ndarray],
    lambda_param: float | None = None,
    k: int | None = None,
    relevance_getter: Callable[[Any], float] | None = None,
    section_getter: Callable[[Any], str] | None = None,
    span_weight: float = 0.0,
) -> list[Any]:
    """
    Apply Maximal Marginal Relevance (MMR) for diverse result selection.

    MMR balances relevance to query with diversity among selected results.
    Formula: MMR = λ * sim(d, q) - (1-λ) * max(sim(d, selected)) - span_penalty

    The span penalty is 0 for a section not used yet and
    span_weight * 1.5 ** (n - 1) for a section already used n times.

    Args:
        query_embedding: The query embedding (unused if relevance_getter is set)
        results: List of result objects with embeddings
        embedding_getter: Function to extract embedding from result
        lambda_param: Balance factor (1.0 = pure relevance, 0.0 = pure diversity)
        k: Number of results to return
        relevance_getter: Function returning a precomputed relevance score
        section_getter: Function returning a section key for the span penalty
        span_weight: Base span penalty

    Returns:
        List of up to k results in selection order
    """
    if not results:
        return []
    if relevance_getter is None and query_embedding is None:
        raise ValueError("MMR needs either a query embedding or a relevance getter")

    settings = get_settings()
    lambda_param = lambda_param if lambda_param is not None else settings.mmr_lambda
    k = min(k or len(results), len(results))

    result_vecs = np.array([np.asarray(embedding_getter(r), dtype=float) for r in results])

    if relevance_getter is not None:
        relevance = np.array([relevance_getter(r) for r in results], dtype=float)
    else:
        relevance = cosine_similarities(query_embedding, result_vecs)

    normed = _normalize_rows(result_vecs)
    pairwise = normed @ normed.T

    sections = [section_getter(r) for r in results] if section_getter else None
    section_usage: dict[str, int] = {}

    # Greedy MMR selection
    selected_indices: list[int] = []
    remaining_indices = list(range(len(results)))

    while len(selected_indices) < k and remaining_indices:
        best_idx = None
        best_score = float("-inf")

        for idx in remaining_indices:
            # Diversity term (max similarity to already selected)
            if selected_indices:
                max_sim_to_selected = max(0.0, float(pairwise[idx, selected_indices].max()))
            else:
                max_sim_to_selected = 0.0

            penalty = 0.0
            if sections is not None:
                used = section_usage.get(sections[idx], 0)
                if used:
                    penalty = span_weight * 1.5 ** (used - 1)

            mmr_score = (
                lambda_param * relevance[idx]
                - (1 - lambda_param) * max_sim_to_selected
                - penalty
            )

            if mmr_score > best_score:
                best_score = mmr_score
                best_idx = idx

        if best_idx is None:
            break

        selected_indices.append(best_idx)
        remaining_indices.remove(best_idx)
        if sections is not None:
            key = sections[best_idx]
            section_usage[key] = section_usage.get(key, 0) + 1

    logger.debug(
        f"MMR selection: {len(results)} -> {len(selected_indices)} "
        f"(λ={lambda_param}, span_weight={span_weight})"
    )

    return [results[i] for i in selected_indices]
