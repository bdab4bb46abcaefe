"""
Batch parent-child chunking for complete documents.

Creates parent chunks with the recursive splitter, recovers their exact
offsets in the source text, then derives sentence-level children from each
parent.
"""

import logging

from docchat.config import get_settings
from docchat.rag.chunking.recursive import TextSplitter, split_text
from docchat.rag.chunking.children import (
    SentenceSplitter,
    chunk_parents_to_children,
    split_sentences,
)
from docchat.rag.chunking.models import (
    DocumentChunk,
    HierarchicalChunks,
    check_chunk_window,
)

logger = logging.getLogger(__name__)


def locate_chunks(text: str, pieces: list[str], overlap: int) -> list[DocumentChunk]:
    """
    Map splitter output back to absolute offsets in the source text.

    Each piece is searched for from max(previous_start + 1, previous_end - overlap),
    so recovered starts are strictly increasing. A piece the splitter altered
    (and that therefore cannot be found) is placed right after the previous one.

    Args:
        text: Original document text
        pieces: Splitter output in document order
        overlap: Overlap the splitter was configured with

    Returns:
        List of DocumentChunk objects
    """
    chunks: list[DocumentChunk] = []
    last_start = -1
    last_end = 0

    for piece in pieces:
        search_from = max(0, last_start + 1, last_end - overlap)
        start = text.find(piece, search_from)

        if start == -1:
            start = last_end
            logger.warning(
                f"Chunk not found in source near offset {search_from}, "
                f"placing it sequentially at {start}"
            )

        end = start + len(piece)
        chunks.append(DocumentChunk(text=piece, start=start, end=end))
        last_start, last_end = start, end

    return chunks


def hierarchical_chunker(
    text: str,
    parent_size: int | None = None,
    parent_overlap: int | None = None,
    splitter: TextSplitter = split_text,
    sentence_splitter: SentenceSplitter = split_sentences,
) -> HierarchicalChunks:
    """
    Split a document into parent chunks and sentence-level child chunks.

    Args:
        text: The full document text
        parent_size: Target characters per parent (default from settings)
        parent_overlap: Overlap between parents (default from settings)
        splitter: Recursive splitter for parents
        sentence_splitter: Sentence splitter for children

    Returns:
        HierarchicalChunks with absolute offsets
    """
    settings = get_settings()
    parent_size = parent_size if parent_size is not None else settings.parent_chunk_size
    parent_overlap = parent_overlap if parent_overlap is not None else settings.parent_chunk_overlap
    check_chunk_window(parent_size, parent_overlap)

    pieces = splitter(text, parent_size, parent_overlap)
    parents = locate_chunks(text, pieces, parent_overlap)
    children = chunk_parents_to_children(parents, sentence_splitter)

    logger.debug(
        f"Hierarchical chunking: {len(text)} chars -> "
        f"{len(parents)} parents, {len(children)} children"
    )

    return HierarchicalChunks(parent_chunks=parents, child_chunks=children)
