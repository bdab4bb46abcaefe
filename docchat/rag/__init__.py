"""
Retrieval engine: chunking, indexing, vector storage and search.
"""

from docchat.rag.chunker import chunk_document, split_text
from docchat.rag.chunking import (
    ChildChunk,
    DocumentChunk,
    StreamingHierarchicalChunker,
    hierarchical_chunker,
)
from docchat.rag.vectorstore import SearchResult, VectorStore

__all__ = [
    "ChildChunk",
    "DocumentChunk",
    "SearchResult",
    "StreamingHierarchicalChunker",
    "VectorStore",
    "chunk_document",
    "hierarchical_chunker",
    "split_text",
]
