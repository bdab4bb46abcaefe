"""
Chunking package for parent-child document splitting.

Provides:
- DocumentChunk / ChildChunk data models
- Batch hierarchical chunking with exact offset recovery
- Streaming hierarchical chunking for fragmented input
- Sentence-level child chunking
"""

from docchat.rag.chunking.models import (
    ChildChunk,
    DocumentChunk,
    HierarchicalChunks,
    check_chunk_window,
)
from docchat.rag.chunking.children import (
    SentenceSpan,
    SentenceSplitter,
    chunk_parents_to_children,
    derive_child_chunks,
    split_sentences,
)
from docchat.rag.chunking.hierarchical import hierarchical_chunker, locate_chunks
from docchat.rag.chunking.recursive import TextSplitter, split_text
from docchat.rag.chunking.streaming import (
    StreamState,
    StreamingHierarchicalChunker,
    advance,
    find_split_point,
)

__all__ = [
    # Data models
    "ChildChunk",
    "DocumentChunk",
    "HierarchicalChunks",
    "check_chunk_window",
    # Child chunking
    "SentenceSpan",
    "SentenceSplitter",
    "chunk_parents_to_children",
    "derive_child_chunks",
    "split_sentences",
    # Parent chunking
    "hierarchical_chunker",
    "locate_chunks",
    "TextSplitter",
    "split_text",
    # Streaming
    "StreamState",
    "StreamingHierarchicalChunker",
    "advance",
    "find_split_point",
]
