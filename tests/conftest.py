"""
Shared fixtures for the docchat test suite.

Embeddings come from a deterministic hashed bag-of-words provider so tests
never touch the network.
"""

import hashlib
import re
from typing import Sequence

import pytest

from docchat.rag.providers.base import EmbeddingProvider
from docchat.rag.vectorstore import VectorStore


class FakeEmbeddingProvider(EmbeddingProvider):
    """Hashed bag-of-words embeddings: texts sharing words are similar."""

    def __init__(self, dimensions: int = 256):
        self._dimensions = dimensions
        self.calls: list[list[str]] = []

    @property
    def model_name(self) -> str:
        return "fake-bag-of-words"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed_text(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        for word in re.findall(r"\w+", text.lower()):
            digest = hashlib.md5(word.encode()).hexdigest()
            vector[int(digest, 16) % self._dimensions] += 1.0
        return vector

    def embed_texts(self, texts: Sequence[str], batch_size: int = 100) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.embed_text(t) for t in texts]

    def count_tokens(self, text: str) -> int:
        return len(text.split())


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def store():
    return VectorStore(candidate_pool_size=100, max_documents=5, default_top_k=20)


@pytest.fixture
def sample_text():
    return (
        "Chapter 1\n"
        "Apple was founded in a garage. Steve Jobs and Steve Wozniak built the first board.\n\n"
        "Chapter 2\n"
        "Apple is in Cupertino. The campus is shaped like a ring.\n\n"
        "Chapter 3\n"
        "Microsoft is in Redmond. Bill Gates started it with Paul Allen.\n"
    )
