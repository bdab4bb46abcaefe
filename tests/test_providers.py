"""Tests for the OpenAI embedding provider against a stubbed client."""

from types import SimpleNamespace

import pytest
from tenacity import RetryError, wait_none

from docchat.rag.providers import openai_provider
from docchat.rag.providers.openai_provider import OpenAIEmbeddingProvider


class StubEmbeddings:
    """Stands in for client.embeddings; returns items in reverse order."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls: list = []

    def create(self, model, input, dimensions):
        self.calls.append(input)
        if self.failures:
            self.failures -= 1
            raise ConnectionError("temporary outage")

        texts = [input] if isinstance(input, str) else list(input)
        items = [
            SimpleNamespace(index=i, embedding=[float(len(text)), float(i), 0.0])
            for i, text in enumerate(texts)
        ]
        return SimpleNamespace(data=list(reversed(items)))


class StubEncoder:
    def encode(self, text):
        return text.split()


@pytest.fixture(autouse=True)
def no_waiting(monkeypatch):
    monkeypatch.setattr(OpenAIEmbeddingProvider.embed_text.retry, "wait", wait_none())
    monkeypatch.setattr(OpenAIEmbeddingProvider._embed_batch.retry, "wait", wait_none())
    monkeypatch.setattr(openai_provider.time, "sleep", lambda seconds: None)


def make_provider(failures: int = 0) -> tuple[OpenAIEmbeddingProvider, StubEmbeddings]:
    embeddings = StubEmbeddings(failures)
    provider = OpenAIEmbeddingProvider(
        api_key="test-key", model="text-embedding-3-small", dimensions=3
    )
    provider._client = SimpleNamespace(embeddings=embeddings)
    provider._encoder = StubEncoder()
    return provider, embeddings


class TestEmbedTexts:
    def test_output_follows_input_order(self):
        provider, _ = make_provider()
        texts = ["a", "bbb", "cc"]

        vectors = provider.embed_texts(texts)

        assert [v[0] for v in vectors] == [1.0, 3.0, 2.0]
        assert [v[1] for v in vectors] == [0.0, 1.0, 2.0]

    def test_batch_size_splits_calls(self):
        provider, embeddings = make_provider()
        texts = ["one", "two", "three", "four", "five"]

        vectors = provider.embed_texts(texts, batch_size=2)

        assert [len(batch) for batch in embeddings.calls] == [2, 2, 1]
        assert [batch for call in embeddings.calls for batch in call] == texts
        assert [v[0] for v in vectors] == [float(len(t)) for t in texts]

    def test_recovers_from_transient_failure(self):
        provider, embeddings = make_provider(failures=1)

        vectors = provider.embed_texts(["alpha", "beta"])

        assert len(vectors) == 2
        assert len(embeddings.calls) == 2
        assert embeddings.calls[0] == embeddings.calls[1] == ["alpha", "beta"]

    def test_gives_up_after_three_attempts(self):
        provider, embeddings = make_provider(failures=5)

        with pytest.raises(RetryError):
            provider.embed_texts(["alpha"])
        assert len(embeddings.calls) == 3

    def test_empty_input(self):
        provider, embeddings = make_provider()
        assert provider.embed_texts([]) == []
        assert embeddings.calls == []


class TestEmbedText:
    def test_single_text(self):
        provider, embeddings = make_provider()

        assert provider.embed_text("hello") == [5.0, 0.0, 0.0]
        assert embeddings.calls == ["hello"]

    def test_retries_single_text(self):
        provider, embeddings = make_provider(failures=2)

        assert provider.embed_text("hello") == [5.0, 0.0, 0.0]
        assert len(embeddings.calls) == 3


class TestCost:
    def test_estimate_cost_uses_token_count(self):
        provider, _ = make_provider()

        assert provider.count_tokens("three small words") == 3
        assert provider.estimate_cost(["three small words", "two more"]) == pytest.approx(
            5 / 1_000_000 * OpenAIEmbeddingProvider.COST_PER_MILLION_TOKENS
        )

    def test_properties(self):
        provider, _ = make_provider()
        assert provider.model_name == "text-embedding-3-small"
        assert provider.dimensions == 3
