"""Tests for document loading and the ingestion pipeline."""

import pytest

from docchat.ingestion import (
    IngestionPipeline,
    IngestionStats,
    document_id_for,
    iter_fragments,
    load_document,
    load_documents,
)

from conftest import FakeEmbeddingProvider


class ExplodingProvider(FakeEmbeddingProvider):
    """Fails on any batch that mentions 'explode'."""

    def embed_texts(self, texts, batch_size=100):
        if any("explode" in t for t in texts):
            raise RuntimeError("embedding service unavailable")
        return super().embed_texts(texts, batch_size)


@pytest.fixture
def pipeline(store, provider):
    return IngestionPipeline(store, provider, parent_size=100, parent_overlap=20, batch_size=8)


class TestLoader:
    def test_load_document(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("Some notes about Apple.", encoding="utf-8")

        document = load_document(path)

        assert document.name == "notes.txt"
        assert document.content == "Some notes about Apple."
        assert document.size == path.stat().st_size
        assert document.doc_id == document_id_for(path)

    def test_document_id_is_stable(self, tmp_path):
        assert document_id_for(tmp_path / "a.txt") == document_id_for(str(tmp_path / "a.txt"))
        assert document_id_for(tmp_path / "a.txt") != document_id_for(tmp_path / "b.txt")

    def test_load_documents_sorted_and_filtered(self, tmp_path):
        (tmp_path / "b.txt").write_text("B", encoding="utf-8")
        (tmp_path / "a.txt").write_text("A", encoding="utf-8")
        (tmp_path / "skip.md").write_text("M", encoding="utf-8")

        names = [d.name for d in load_documents(tmp_path)]
        assert names == ["a.txt", "b.txt"]

    def test_missing_directory(self, tmp_path):
        assert list(load_documents(tmp_path / "nope")) == []

    def test_iter_fragments(self):
        text = "abcdefghij"
        assert list(iter_fragments(text, 3)) == ["abc", "def", "ghi", "j"]
        assert "".join(iter_fragments(text, 4)) == text

    def test_iter_fragments_rejects_bad_size(self):
        with pytest.raises(ValueError):
            list(iter_fragments("text", 0))


class TestBatchIngestion:
    def test_batch_size_must_be_positive(self, store, provider):
        with pytest.raises(ValueError):
            IngestionPipeline(store, provider, batch_size=0)

    def test_explicit_batch_size_kept(self, store, provider, sample_text):
        pipeline = IngestionPipeline(store, provider, parent_size=100, parent_overlap=20, batch_size=1)
        stats = pipeline.ingest_text("doc", sample_text)

        assert pipeline.batch_size == 1
        assert stats.children_created > 0

    def test_ingest_text(self, pipeline, store, sample_text):
        stats = pipeline.ingest_text("doc", sample_text)

        assert stats.documents_processed == 1
        assert stats.parents_created == len(store.get_parent_chunks("doc"))
        assert stats.children_created == store.get_embedding_count()
        assert "apple" in [e.entity for e in store.get_top_entities("doc", min_count=2)]

    def test_reingest_replaces_document(self, pipeline, store, sample_text):
        pipeline.ingest_text("doc", sample_text)
        count = store.get_embedding_count()
        pipeline.ingest_text("doc", sample_text)
        assert store.get_embedding_count() == count

    def test_embeddings_are_batched(self, pipeline, provider, sample_text):
        stats = pipeline.ingest_text("doc", sample_text)
        assert sum(len(batch) for batch in provider.calls) == stats.children_created

    def test_query(self, pipeline, sample_text):
        pipeline.ingest_text("doc", sample_text)
        results = pipeline.query("Cupertino")

        assert results
        assert "Cupertino" in results[0].chunk
        assert results[0].document_id == "doc"

    def test_diverse_query(self, pipeline, sample_text):
        pipeline.ingest_text("doc", sample_text)
        results = pipeline.query("Apple Microsoft", top_k=3, diverse=True)

        assert 0 < len(results) <= 3
        assert len({r.start for r in results}) == len(results)

    def test_query_empty_store_skips_embedding(self, pipeline, provider):
        assert pipeline.query("anything") == []
        assert provider.calls == []

    def test_ingest_legacy(self, pipeline, store):
        text = "Redmond is home to Microsoft. " * 10
        stats = pipeline.ingest_legacy("legacy", text, chunk_size=60, overlap=0)

        assert stats.parents_created == stats.children_created == store.get_embedding_count()
        assert store.get_entity_mentions("legacy", "microsoft")
        assert pipeline.query("Microsoft")[0].document_id == "legacy"


class TestStreamingIngestion:
    def test_stream_matches_text(self, pipeline, store, sample_text):
        stats = pipeline.ingest_stream("doc", iter_fragments(sample_text, 7))

        parents = store.get_parent_chunks("doc")
        assert stats.parents_created == len(parents)
        assert parents[-1].end == len(sample_text)
        for parent in parents:
            assert sample_text[parent.start:parent.end] == parent.text
        for record in store.get_child_records("doc"):
            assert store.resolve_parent(record) is not None

    def test_indexes_built_on_finish(self, pipeline, store, sample_text):
        stream = pipeline.open_stream("doc")
        for fragment in iter_fragments(sample_text, 50):
            stream.feed(fragment)
        assert store.get_structure("doc") is None

        stream.finish()

        assert stream.is_finished
        assert [c.name for c in store.get_structure("doc").chapters] == [
            "Chapter 1", "Chapter 2", "Chapter 3",
        ]
        assert store.get_entity_mentions("doc", "cupertino")

    def test_abort_discards_document(self, pipeline, store, sample_text):
        stream = pipeline.open_stream("doc")
        stream.feed(sample_text)
        assert store.get_embedding_count() > 0

        stream.abort()

        assert store.get_embedding_count() == 0
        assert store.get_parent_chunks("doc") == []

    def test_stream_and_batch_agree_on_search(self, store, provider, sample_text):
        batch = IngestionPipeline(store, provider, parent_size=100, parent_overlap=20)
        batch.ingest_stream("streamed", iter_fragments(sample_text, 11))
        results = batch.query("Redmond", doc_id="streamed")

        assert "Redmond" in results[0].chunk


class TestIngestDocuments:
    def test_directory_ingestion(self, pipeline, store, tmp_path, sample_text):
        (tmp_path / "one.txt").write_text(sample_text, encoding="utf-8")
        (tmp_path / "two.txt").write_text("Paris is in France. Berlin is in Germany.", encoding="utf-8")
        seen = []

        stats = pipeline.ingest_documents(
            load_documents(tmp_path),
            progress_callback=lambda count, name: seen.append((count, name)),
        )

        assert stats.documents_processed == 2
        assert stats.errors == []
        assert seen == [(1, "one.txt"), (2, "two.txt")]
        assert len(store.get_document_ids()) == 2

    def test_streaming_mode(self, pipeline, store, tmp_path, sample_text):
        (tmp_path / "one.txt").write_text(sample_text, encoding="utf-8")

        stats = pipeline.ingest_documents(load_documents(tmp_path), stream=True, fragment_size=16)

        assert stats.documents_processed == 1
        assert stats.children_created == store.get_embedding_count()

    def test_failures_are_collected(self, store, tmp_path):
        (tmp_path / "good.txt").write_text("Paris is lovely in spring.", encoding="utf-8")
        (tmp_path / "bad.txt").write_text("This one will explode.", encoding="utf-8")
        pipeline = IngestionPipeline(store, ExplodingProvider(), parent_size=100, parent_overlap=20)

        stats = pipeline.ingest_documents(load_documents(tmp_path))

        assert stats.documents_processed == 1
        assert len(stats.errors) == 1
        assert "bad.txt" in stats.errors[0]
        assert store.get_document_ids() == [document_id_for(tmp_path / "good.txt")]


class TestStats:
    def test_merge(self):
        total = IngestionStats()
        total.merge(IngestionStats(documents_processed=1, parents_created=2, children_created=5))
        total.merge(IngestionStats(documents_processed=1, parents_created=1, errors=["boom"]))

        assert total.documents_processed == 2
        assert total.parents_created == 3
        assert total.children_created == 5
        assert total.errors == ["boom"]
        assert "Documents: 2" in str(total)
