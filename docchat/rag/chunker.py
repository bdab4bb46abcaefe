"""
Single-tier chunking for whole documents.

Each chunk is both the embedded unit and the passage returned to the caller.
JSON payloads are pretty-printed first so the splitter finds better
boundaries.
"""

import json
import logging

from docchat.config import get_settings
from docchat.rag.chunking.models import DocumentChunk, check_chunk_window
from docchat.rag.chunking.recursive import TextSplitter, split_text

logger = logging.getLogger(__name__)


def _prepare_text(text: str) -> str:
    """Pretty-print JSON payloads; leave anything else untouched."""
    try:
        parsed = json.loads(text)
    except ValueError:
        logger.debug("Content is not JSON, chunking as plain text")
        return text

    logger.debug("Content is JSON, pretty-printing before chunking")
    return json.dumps(parsed, indent=2, ensure_ascii=False)


def chunk_document(
    text: str,
    chunk_size: int | None = None,
    overlap: int | None = None,
    splitter: TextSplitter = split_text,
) -> list[DocumentChunk]:
    """
    Chunk a whole document into single-tier chunks.

    Offsets are an approximation: each chunk starts where the previous one
    ended, so they do not reflect the splitter's overlap. Do not use them to
    reconstruct overlap regions.

    Args:
        text: Document text (plain or JSON)
        chunk_size: Target characters per chunk (default from settings)
        overlap: Overlap between chunks (default from settings)
        splitter: Recursive splitter

    Returns:
        List of DocumentChunk objects
    """
    settings = get_settings()
    chunk_size = chunk_size if chunk_size is not None else settings.chunk_size
    overlap = overlap if overlap is not None else settings.chunk_overlap
    check_chunk_window(chunk_size, overlap)

    processed = _prepare_text(text)
    pieces = splitter(processed, chunk_size, overlap)
    logger.debug(f"Split text into {len(pieces)} chunks")

    chunks = []
    position = 0
    for piece in pieces:
        chunks.append(DocumentChunk(text=piece, start=position, end=position + len(piece)))
        position += len(piece)

    return chunks

