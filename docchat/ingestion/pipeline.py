"""
Ingestion pipeline for turning documents into searchable parent-child indexes.

Chunks text (in one batch or as a stream of fragments), embeds the child
chunks with an embedding provider and registers parents and embeddings in
the vector store. Also runs queries against the store.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence

from docchat.config import get_settings
from docchat.ingestion.loader import SourceDocument, iter_fragments
from docchat.rag.chunker import chunk_document
from docchat.rag.chunking import (
    ChildChunk,
    HierarchicalChunks,
    StreamingHierarchicalChunker,
    hierarchical_chunker,
)
from docchat.rag.providers.base import EmbeddingProvider
from docchat.rag.vectorstore import SearchResult, VectorStore

logger = logging.getLogger(__name__)


@dataclass
class IngestionStats:
    """Statistics from an ingestion run."""

    documents_processed: int = 0
    parents_created: int = 0
    children_created: int = 0
    embedding_cost_estimate: float = 0.0
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "IngestionStats") -> None:
        """Add another run's numbers to this one."""
        self.documents_processed += other.documents_processed
        self.parents_created += other.parents_created
        self.children_created += other.children_created
        self.embedding_cost_estimate += other.embedding_cost_estimate
        self.duration_seconds += other.duration_seconds
        self.errors.extend(other.errors)

    def __str__(self) -> str:
        return (
            f"Ingestion Complete:\n"
            f"  Documents: {self.documents_processed}\n"
            f"  Parent chunks: {self.parents_created}\n"
            f"  Child chunks: {self.children_created}\n"
            f"  Est. cost: ${self.embedding_cost_estimate:.4f}\n"
            f"  Duration: {self.duration_seconds:.1f}s\n"
            f"  Errors: {len(self.errors)}"
        )


class IngestionPipeline:
    """
    Drives chunking, embedding and registration for one vector store.

    Re-ingesting a document id replaces whatever the store held for it.
    """

    def __init__(
        self,
        store: VectorStore,
        provider: EmbeddingProvider,
        parent_size: int | None = None,
        parent_overlap: int | None = None,
        batch_size: int | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            store: Vector store to fill
            provider: Embedding provider for children and queries
            parent_size: Parent chunk size (default from settings)
            parent_overlap: Parent overlap (default from settings)
            batch_size: Texts per embedding call (default from settings)
        """
        settings = get_settings()
        self.store = store
        self.provider = provider
        self.parent_size = parent_size if parent_size is not None else settings.parent_chunk_size
        self.parent_overlap = (
            parent_overlap if parent_overlap is not None else settings.parent_chunk_overlap
        )
        self.batch_size = batch_size if batch_size is not None else settings.embedding_batch_size
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts in batches; no call is made for an empty list."""
        if not texts:
            return []
        embeddings = self.provider.embed_texts(texts, batch_size=self.batch_size)
        if len(embeddings) != len(texts):
            raise ValueError(
                f"Provider returned {len(embeddings)} embeddings for {len(texts)} texts"
            )
        return embeddings

    def add_children(self, doc_id: str, children: Sequence[ChildChunk]) -> float:
        """
        Embed child chunks and register them in the store.

        Returns:
            Estimated embedding cost
        """
        texts = [child.text for child in children]
        for child, embedding in zip(children, self.embed(texts)):
            self.store.add_child_chunk_embedding(doc_id, embedding, child)
        return self.provider.estimate_cost(texts)

    def ingest_text(self, doc_id: str, text: str) -> IngestionStats:
        """
        Index a complete document with the batch hierarchical chunker.

        Args:
            doc_id: Document identifier
            text: Full document text

        Returns:
            IngestionStats for the document
        """
        start_time = time.time()
        self.store.remove_document(doc_id)

        chunks = hierarchical_chunker(text, self.parent_size, self.parent_overlap)
        self.store.add_parent_chunks(doc_id, chunks.parent_chunks)
        cost = self.add_children(doc_id, chunks.child_chunks)

        stats = IngestionStats(
            documents_processed=1,
            parents_created=len(chunks.parent_chunks),
            children_created=len(chunks.child_chunks),
            embedding_cost_estimate=cost,
            duration_seconds=time.time() - start_time,
        )
        logger.info(
            f"Indexed {doc_id}: {stats.parents_created} parents, "
            f"{stats.children_created} children"
        )
        return stats

    def ingest_legacy(
        self,
        doc_id: str,
        text: str,
        chunk_size: int | None = None,
        overlap: int | None = None,
    ) -> IngestionStats:
        """
        Index a document with single-tier chunks (each chunk is its own parent).

        Args:
            doc_id: Document identifier
            text: Full document text (plain or JSON)
            chunk_size: Chunk size (default from settings)
            overlap: Chunk overlap (default from settings)

        Returns:
            IngestionStats for the document
        """
        start_time = time.time()
        self.store.remove_document(doc_id)

        chunks = chunk_document(text, chunk_size, overlap)
        texts = [chunk.text for chunk in chunks]
        for chunk, embedding in zip(chunks, self.embed(texts)):
            self.store.add_chunk_embedding(chunk, doc_id, embedding)
        self.store.rebuild_indexes(doc_id)

        stats = IngestionStats(
            documents_processed=1,
            parents_created=len(chunks),
            children_created=len(chunks),
            embedding_cost_estimate=self.provider.estimate_cost(texts),
            duration_seconds=time.time() - start_time,
        )
        logger.info(f"Indexed {doc_id} (single-tier): {len(chunks)} chunks")
        return stats

    def open_stream(self, doc_id: str) -> "StreamingIngestion":
        """Start a streaming ingestion for a document."""
        return StreamingIngestion(self, doc_id)

    def ingest_stream(self, doc_id: str, fragments: Iterable[str]) -> IngestionStats:
        """
        Index a document delivered as a sequence of fragments.

        Args:
            doc_id: Document identifier
            fragments: Successive text fragments

        Returns:
            IngestionStats for the document
        """
        stream = self.open_stream(doc_id)
        for fragment in fragments:
            stream.feed(fragment)
        return stream.finish()

    def ingest_documents(
        self,
        documents: Iterable[SourceDocument],
        stream: bool = False,
        fragment_size: int = 4096,
        progress_callback: Optional[Callable[[int, str], None]] = None,
    ) -> IngestionStats:
        """
        Index several documents, continuing past failures.

        Args:
            documents: Documents to index
            stream: Feed each document through the streaming chunker
            fragment_size: Fragment size in streaming mode
            progress_callback: Optional callback(count, document name)

        Returns:
            Combined IngestionStats; per-document failures are in errors
        """
        start_time = time.time()
        total = IngestionStats()

        for i, document in enumerate(documents):
            try:
                if stream:
                    stats = self.ingest_stream(
                        document.doc_id, iter_fragments(document.content, fragment_size)
                    )
                else:
                    stats = self.ingest_text(document.doc_id, document.content)
                total.merge(stats)
            except Exception as e:
                error_msg = f"Error processing {document.name}: {e}"
                logger.error(error_msg)
                total.errors.append(error_msg)
                self.store.remove_document(document.doc_id)

            if progress_callback:
                progress_callback(i + 1, document.name)

        total.duration_seconds = time.time() - start_time
        return total

    def query(
        self,
        text: str,
        top_k: int | None = None,
        doc_id: str | None = None,
        diverse: bool = False,
    ) -> list[SearchResult]:
        """
        Embed a query and return the most relevant parent passages.

        Args:
            text: Query text
            top_k: Maximum results (default from store)
            doc_id: Restrict to one document
            diverse: Use MMR/span-aware selection instead of document aggregation

        Returns:
            Ranked SearchResults
        """
        if self.store.get_embedding_count() == 0:
            return []

        query_embedding = self.provider.embed_text(text)
        if diverse:
            return self.store.search_diverse(query_embedding, top_k, doc_id)
        return self.store.search(query_embedding, top_k, doc_id)


class StreamingIngestion:
    """
    One in-flight streaming ingestion.

    Parents emitted by the chunker are appended to the store before the
    embeddings of their children are registered, so child references always
    resolve. Call finish() once the last fragment has been fed, or abort()
    to discard the partial document.
    """

    def __init__(self, pipeline: IngestionPipeline, doc_id: str):
        self.pipeline = pipeline
        self.doc_id = doc_id
        self.stats = IngestionStats(documents_processed=1)
        self._chunker = StreamingHierarchicalChunker(pipeline.parent_size, pipeline.parent_overlap)
        self._started = time.time()

        pipeline.store.remove_document(doc_id)

    @property
    def is_finished(self) -> bool:
        return self._chunker.is_finished

    def _register(self, chunks: HierarchicalChunks) -> int:
        if not chunks.parent_chunks:
            return 0

        store = self.pipeline.store
        first_index = store.append_parent_chunks(self.doc_id, chunks.parent_chunks)
        expected_index = self._chunker.parent_chunk_count - len(chunks.parent_chunks)
        if first_index != expected_index:
            logger.warning(
                f"Stream for {self.doc_id} is out of step with the parent table "
                f"(chunker index {expected_index}, table index {first_index})"
            )

        self.stats.embedding_cost_estimate += self.pipeline.add_children(
            self.doc_id, chunks.child_chunks
        )
        self.stats.parents_created += len(chunks.parent_chunks)
        self.stats.children_created += len(chunks.child_chunks)
        return len(chunks.child_chunks)

    def feed(self, fragment: str) -> int:
        """
        Feed the next fragment.

        Args:
            fragment: Next piece of the document

        Returns:
            Number of child chunks registered by this fragment
        """
        return self._register(self._chunker.process_chunk(fragment, is_last=False))

    def finish(self, fragment: str = "") -> IngestionStats:
        """
        Flush the remaining buffer and finalize the document's indexes.

        Args:
            fragment: Optional last fragment

        Returns:
            IngestionStats for the document
        """
        self._register(self._chunker.process_chunk(fragment, is_last=True))
        self.pipeline.store.rebuild_indexes(self.doc_id)

        self.stats.duration_seconds = time.time() - self._started
        logger.info(
            f"Streamed {self.doc_id}: {self.stats.parents_created} parents, "
            f"{self.stats.children_created} children"
        )
        return self.stats

    def abort(self) -> None:
        """Discard everything registered for this document so far."""
        removed = self.pipeline.store.remove_document(self.doc_id)
        logger.info(f"Aborted stream for {self.doc_id}, removed {removed} children")
