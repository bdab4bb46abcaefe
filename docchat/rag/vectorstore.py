"""
In-memory vector store for parent-child retrieval.

Holds child embeddings, a per-document parent chunk table and per-document
entity/structure indexes, and answers similarity queries by returning the
parent passages behind the best matching children.

The store has no internal locking. A caller that mutates it from several
threads must serialize add/remove/clear calls against each other and
against search.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from docchat.config import get_settings
from docchat.rag.chunking.models import ChildChunk, DocumentChunk
from docchat.rag.indexing.entities import (
    EntityCount,
    EntityExtractor,
    EntityIndex,
    EntityRecord,
    build_entity_index,
    extract_entities,
    index_entities,
    top_entities,
)
from docchat.rag.indexing.structure import DocumentStructure, extract_structure
from docchat.rag.retrieval.diversity import cosine_similarities, maximal_marginal_relevance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Parented:
    """Child reference to a parent by position in the document's parent table."""

    index: int


@dataclass(frozen=True)
class SelfContained:
    """Child reference for legacy single-tier chunks: the chunk is its own parent."""


SELF_CONTAINED = SelfContained()

ChildRef = Parented | SelfContained


@dataclass(eq=False)
class ChildRecord:
    """A stored child embedding and where it sits in its document."""

    embedding: np.ndarray
    document_id: str
    parent: ChildRef
    start: int
    end: int


@dataclass(frozen=True)
class Candidate:
    """A child record scored against a query."""

    record: ChildRecord
    similarity: float

    @property
    def document_id(self) -> str:
        return self.record.document_id

    @property
    def start(self) -> int:
        return self.record.start

    @property
    def embedding(self) -> np.ndarray:
        return self.record.embedding


@dataclass(frozen=True)
class SearchResult:
    """A parent passage returned by search."""

    chunk: str
    similarity: float
    document_id: str
    start: int
    end: int


@dataclass(frozen=True)
class DocSpan:
    """Extent of a document's parent chunks."""

    min_start: int
    max_end: int


class VectorStore:
    """
    In-memory store of child embeddings with parent expansion.

    Search funnel:
    1. Scope to all children or to one document
    2. Score children by cosine similarity, keep the best candidate pool
    3. Sum candidate scores per document, keep the best documents
    4. Drop candidates from other documents
    5. Resolve candidates to parents, dedup by (document, parent start),
       sort by similarity and truncate to top_k

    Summing per document favours documents with many good hits over a single
    outlier sentence in an otherwise unrelated document.
    """

    def __init__(
        self,
        entity_extractor: EntityExtractor = extract_entities,
        candidate_pool_size: int | None = None,
        max_documents: int | None = None,
        default_top_k: int | None = None,
    ):
        """
        Initialize an empty store.

        Args:
            entity_extractor: Entity extraction function for the entity index
            candidate_pool_size: Children kept after scoring (default from settings)
            max_documents: Documents kept after aggregation (default from settings)
            default_top_k: Results returned when top_k is omitted (default from settings)
        """
        settings = get_settings()
        self.entity_extractor = entity_extractor
        self.candidate_pool_size = (
            candidate_pool_size if candidate_pool_size is not None else settings.candidate_pool_size
        )
        self.max_documents = max_documents if max_documents is not None else settings.max_documents
        self.default_top_k = default_top_k if default_top_k is not None else settings.default_top_k

        self._children: list[ChildRecord] = []
        self._dimensions: int | None = None
        self._parents: dict[str, list[DocumentChunk]] = {}
        self._entities: dict[str, EntityIndex] = {}
        self._structure: dict[str, DocumentStructure] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _coerce_embedding(self, embedding: Sequence[float] | np.ndarray) -> np.ndarray:
        """Convert to a 1-D float array and check its dimensions."""
        vector = np.asarray(embedding, dtype=float).ravel()
        if vector.size == 0:
            raise ValueError("Embedding must not be empty")
        if self._dimensions is not None and vector.size != self._dimensions:
            raise ValueError(
                f"Embedding has {vector.size} dimensions, store expects {self._dimensions}"
            )
        return vector

    def _add_record(self, record: ChildRecord) -> None:
        self._children.append(record)
        if self._dimensions is None:
            self._dimensions = record.embedding.size

    def add_chunk_embedding(
        self,
        chunk: DocumentChunk,
        doc_id: str,
        embedding: Sequence[float] | np.ndarray,
        register_parent: bool = True,
    ) -> None:
        """
        Add a single-tier chunk that acts as its own parent.

        The chunk is appended to the document's parent table and its entities
        are indexed.

        Args:
            chunk: The chunk (both child and parent)
            doc_id: Document identifier
            embedding: Embedding of the chunk text
            register_parent: Set False when the parent table already holds the
                chunk (restoring from cache)
        """
        vector = self._coerce_embedding(embedding)
        self._add_record(ChildRecord(
            embedding=vector,
            document_id=doc_id,
            parent=SELF_CONTAINED,
            start=chunk.start,
            end=chunk.end,
        ))
        if register_parent:
            self._parents.setdefault(doc_id, []).append(chunk)
            index_entities(self._entities.setdefault(doc_id, {}), [chunk], self.entity_extractor)

    def add_child_chunk_embedding(
        self,
        doc_id: str,
        embedding: Sequence[float] | np.ndarray,
        child: ChildChunk,
    ) -> None:
        """
        Add a child embedding that references a parent by table index.

        Parents should be registered first. A reference that does not resolve
        is stored anyway and skipped at search time.

        Args:
            doc_id: Document identifier
            embedding: Embedding of the child text
            child: Child chunk descriptor
        """
        vector = self._coerce_embedding(embedding)
        parents = self._parents.get(doc_id, [])
        if not 0 <= child.parent_chunk_index < len(parents):
            logger.warning(
                f"Child of {doc_id} references parent {child.parent_chunk_index} "
                f"but only {len(parents)} parents are registered"
            )

        self._add_record(ChildRecord(
            embedding=vector,
            document_id=doc_id,
            parent=Parented(child.parent_chunk_index),
            start=child.start,
            end=child.end,
        ))

    def add_parent_chunks(self, doc_id: str, parents: Sequence[DocumentChunk]) -> None:
        """
        Set a document's parent table and rebuild its entity and structure indexes.

        Args:
            doc_id: Document identifier
            parents: Parent chunks in table order
        """
        self._parents[doc_id] = list(parents)
        self.rebuild_indexes(doc_id)

    def append_parent_chunks(self, doc_id: str, parents: Sequence[DocumentChunk]) -> int:
        """
        Extend a document's parent table, indexing entities of the new parents.

        The structure index is not touched; call rebuild_indexes once the
        document is complete.

        Args:
            doc_id: Document identifier
            parents: Parent chunks to append

        Returns:
            Table index of the first appended parent
        """
        table = self._parents.setdefault(doc_id, [])
        first_index = len(table)
        table.extend(parents)
        index_entities(self._entities.setdefault(doc_id, {}), parents, self.entity_extractor)
        return first_index

    def rebuild_indexes(self, doc_id: str) -> None:
        """Recompute entity and structure indexes from the parent table."""
        parents = self._parents.get(doc_id, [])
        self._entities[doc_id] = build_entity_index(parents, self.entity_extractor)
        self._structure[doc_id] = extract_structure(parents)
        logger.debug(f"Rebuilt indexes for {doc_id} from {len(parents)} parents")

    def set_indexes(
        self,
        doc_id: str,
        entities: dict[str, EntityRecord],
        structure: DocumentStructure | None = None,
    ) -> None:
        """Install precomputed entity and structure indexes for a document."""
        self._entities[doc_id] = {
            entity.lower(): EntityRecord(count=rec.count, positions=list(rec.positions))
            for entity, rec in entities.items()
        }
        if structure is not None:
            self._structure[doc_id] = structure

    def remove_document(self, doc_id: str) -> int:
        """
        Remove a document's children, parents and indexes.

        Args:
            doc_id: Document identifier

        Returns:
            Number of child records removed (0 for an unknown document)
        """
        before = len(self._children)
        self._children = [r for r in self._children if r.document_id != doc_id]
        removed = before - len(self._children)

        self._parents.pop(doc_id, None)
        self._entities.pop(doc_id, None)
        self._structure.pop(doc_id, None)

        if not self._children:
            self._dimensions = None
        if removed:
            logger.debug(f"Removed {removed} child records for {doc_id}")
        return removed

    def clear(self) -> None:
        """Delete all documents."""
        self._children = []
        self._dimensions = None
        self._parents.clear()
        self._entities.clear()
        self._structure.clear()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def candidates(
        self,
        query_embedding: Sequence[float] | np.ndarray,
        doc_id: str | None = None,
    ) -> list[Candidate]:
        """
        Score children against a query and keep the best candidate pool.

        Args:
            query_embedding: Query vector
            doc_id: Restrict to one document

        Returns:
            Candidates sorted by similarity, highest first
        """
        if doc_id is None:
            scoped = self._children
        else:
            scoped = [r for r in self._children if r.document_id == doc_id]
        if not scoped:
            return []

        query = np.asarray(query_embedding, dtype=float).ravel()
        if query.size != self._dimensions:
            raise ValueError(
                f"Query has {query.size} dimensions, store expects {self._dimensions}"
            )

        matrix = np.vstack([r.embedding for r in scoped])
        sims = cosine_similarities(query, matrix)
        order = np.argsort(-sims, kind="stable")[:self.candidate_pool_size]

        return [Candidate(record=scoped[i], similarity=float(sims[i])) for i in order]

    def resolve_parent(self, record: ChildRecord) -> DocumentChunk | None:
        """Look up the parent chunk a child record points to, if it exists."""
        parents = self._parents.get(record.document_id)
        if not parents:
            return None

        if isinstance(record.parent, Parented):
            if 0 <= record.parent.index < len(parents):
                return parents[record.parent.index]
            return None

        for parent in parents:
            if parent.start == record.start:
                return parent
        return None

    def resolve_parents(self, candidates: Sequence[Candidate]) -> list[SearchResult]:
        """
        Map candidates to their parent passages.

        The first candidate seen for a (document, parent start) pair wins.
        Candidates whose parent cannot be resolved are dropped.

        Args:
            candidates: Candidates in priority order

        Returns:
            SearchResults in the same order as their winning candidates
        """
        results = []
        seen: set[tuple[str, int]] = set()
        unresolved = 0

        for candidate in candidates:
            parent = self.resolve_parent(candidate.record)
            if parent is None:
                unresolved += 1
                continue

            key = (candidate.document_id, parent.start)
            if key in seen:
                continue
            seen.add(key)

            results.append(SearchResult(
                chunk=parent.text,
                similarity=candidate.similarity,
                document_id=candidate.document_id,
                start=parent.start,
                end=parent.end,
            ))

        if unresolved:
            logger.debug(f"Skipped {unresolved} candidates with unresolved parents")
        return results

    def search(
        self,
        query_embedding: Sequence[float] | np.ndarray,
        top_k: int | None = None,
        doc_id: str | None = None,
    ) -> list[SearchResult]:
        """
        Return the parent passages most relevant to a query.

        Args:
            query_embedding: Query vector
            top_k: Maximum results (default from settings)
            doc_id: Restrict search to one document

        Returns:
            Up to top_k SearchResults, highest similarity first, with no
            duplicate (document_id, start) pairs
        """
        top_k = top_k if top_k is not None else self.default_top_k
        if top_k <= 0:
            return []

        pool = self.candidates(query_embedding, doc_id)
        if not pool:
            return []

        doc_scores: dict[str, float] = {}
        for candidate in pool:
            doc_scores[candidate.document_id] = (
                doc_scores.get(candidate.document_id, 0.0) + candidate.similarity
            )
        top_docs = {
            doc for doc, _ in sorted(
                doc_scores.items(), key=lambda item: item[1], reverse=True
            )[:self.max_documents]
        }

        finalists = [c for c in pool if c.document_id in top_docs]
        results = self.resolve_parents(finalists)
        results.sort(key=lambda r: r.similarity, reverse=True)

        logger.debug(
            f"Search: {len(pool)} candidates, {len(doc_scores)} docs -> "
            f"{len(top_docs)} docs, {len(results)} parents"
        )
        return results[:top_k]

    def _section_key(self, candidate: Candidate) -> str:
        structure = self._structure.get(candidate.document_id)
        if structure is None or not structure.chapters:
            return f"{candidate.document_id}-root"
        chapter = structure.chapter_at(candidate.start)
        if chapter is None:
            return f"{candidate.document_id}-unknown"
        return f"{candidate.document_id}-{chapter.name}"

    def diversify(
        self,
        candidates: Sequence[Candidate],
        top_k: int,
        lambda_param: float | None = None,
        span_weight: float | None = None,
    ) -> list[Candidate]:
        """
        Pick a diverse subset of candidates with MMR and a section penalty.

        Useful for merging candidates gathered by several sub-queries.

        Args:
            candidates: Scored candidates
            top_k: Number of candidates to select
            lambda_param: Relevance vs diversity balance (default from settings)
            span_weight: Base penalty for reusing a section (default from settings)

        Returns:
            Selected candidates in selection order
        """
        settings = get_settings()
        span_weight = span_weight if span_weight is not None else settings.span_weight

        return maximal_marginal_relevance(
            None,
            candidates,
            embedding_getter=lambda c: c.embedding,
            lambda_param=lambda_param,
            k=min(top_k, len(candidates)),
            relevance_getter=lambda c: c.similarity,
            section_getter=self._section_key,
            span_weight=span_weight,
        )

    def search_diverse(
        self,
        query_embedding: Sequence[float] | np.ndarray,
        top_k: int | None = None,
        doc_id: str | None = None,
        lambda_param: float | None = None,
        span_weight: float | None = None,
    ) -> list[SearchResult]:
        """
        Search with MMR and span-aware diversity instead of document aggregation.

        Results are returned in selection order.

        Args:
            query_embedding: Query vector
            top_k: Maximum results (default from settings)
            doc_id: Restrict search to one document
            lambda_param: Relevance vs diversity balance
            span_weight: Base penalty for reusing a section

        Returns:
            Up to top_k SearchResults
        """
        top_k = top_k if top_k is not None else self.default_top_k
        if top_k <= 0:
            return []

        pool = self.candidates(query_embedding, doc_id)
        if len(pool) <= 1:
            return self.resolve_parents(pool[:top_k])

        selected = self.diversify(pool, top_k, lambda_param, span_weight)
        return self.resolve_parents(selected)

    # ------------------------------------------------------------------
    # Read-only helpers
    # ------------------------------------------------------------------

    def get_parent_chunks(self, doc_id: str) -> list[DocumentChunk]:
        return list(self._parents.get(doc_id, []))

    def get_child_records(self, doc_id: str) -> list[ChildRecord]:
        return [r for r in self._children if r.document_id == doc_id]

    def get_document_ids(self) -> list[str]:
        """Documents with parents or children, in first-seen order."""
        ids = dict.fromkeys(self._parents)
        ids.update(dict.fromkeys(r.document_id for r in self._children))
        return list(ids)

    def get_entities(self, doc_id: str) -> dict[str, EntityRecord]:
        return dict(self._entities.get(doc_id, {}))

    def get_top_entities(
        self,
        doc_id: str,
        min_count: int | None = None,
        max_results: int | None = None,
    ) -> list[EntityCount]:
        """
        Most mentioned entities of a document.

        Args:
            doc_id: Document identifier
            min_count: Minimum mentions (default from settings)
            max_results: Maximum entities (default from settings)

        Returns:
            EntityCounts sorted by count, highest first
        """
        settings = get_settings()
        min_count = min_count if min_count is not None else settings.entity_min_count
        max_results = max_results if max_results is not None else settings.entity_max_results
        return top_entities(self._entities.get(doc_id, {}), min_count, max_results)

    def get_entity_mentions(self, doc_id: str, entity: str) -> list[int]:
        """Absolute offsets of an entity's mentions (case-insensitive)."""
        record = self._entities.get(doc_id, {}).get(entity.lower())
        return list(record.positions) if record else []

    def get_doc_span(self, doc_id: str) -> DocSpan | None:
        parents = self._parents.get(doc_id)
        if not parents:
            return None
        return DocSpan(
            min_start=min(p.start for p in parents),
            max_end=max(p.end for p in parents),
        )

    def get_structure(self, doc_id: str) -> DocumentStructure | None:
        return self._structure.get(doc_id)

    def get_embedding_count(self) -> int:
        return len(self._children)
