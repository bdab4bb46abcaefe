"""
Sentence-level child chunking for parent-child retrieval.

Splits parent chunks into sentence spans for fine-grained semantic search.
Each child keeps absolute document offsets and the index of its parent.
"""

import logging
import re
from typing import Callable, NamedTuple, Sequence

from docchat.rag.chunking.models import ChildChunk, DocumentChunk

logger = logging.getLogger(__name__)


class SentenceSpan(NamedTuple):
    """A sentence and its offset within the text it was split from."""

    text: str
    offset: int


SentenceSplitter = Callable[[str], Sequence[SentenceSpan]]

# A sentence starts at the first non-space character and runs until
# terminal punctuation (plus closing quotes/brackets) followed by whitespace,
# a blank line, or the end of the text.
_SENTENCE_RE = re.compile(
    r"\S.*?(?:[.!?]+[\"'”’)\]]*(?=\s|$)|(?=\n[ \t]*\n)|$)",
    re.DOTALL,
)


def split_sentences(text: str) -> list[SentenceSpan]:
    """
    Split text into sentence spans.

    Args:
        text: Text to split

    Returns:
        Sentence spans in order, without surrounding whitespace
    """
    spans = []
    for match in _SENTENCE_RE.finditer(text):
        sentence = match.group(0).rstrip()
        if sentence:
            spans.append(SentenceSpan(sentence, match.start()))
    return spans


def derive_child_chunks(
    parent: DocumentChunk,
    parent_index: int,
    splitter: SentenceSplitter = split_sentences,
) -> list[ChildChunk]:
    """
    Derive sentence-level child chunks from a parent chunk.

    Args:
        parent: Parent chunk with absolute offsets
        parent_index: Position of the parent in the document's parent table
        splitter: Sentence splitter returning local offsets

    Returns:
        List of ChildChunk objects with absolute offsets
    """
    children = []
    for span in splitter(parent.text):
        start = parent.start + span.offset
        children.append(ChildChunk(
            text=span.text,
            start=start,
            end=start + len(span.text),
            parent_chunk_index=parent_index,
        ))
    return children


def chunk_parents_to_children(
    parents: Sequence[DocumentChunk],
    splitter: SentenceSplitter = split_sentences,
    first_index: int = 0,
) -> list[ChildChunk]:
    """
    Derive child chunks for a run of parents.

    Args:
        parents: Parent chunks in table order
        splitter: Sentence splitter
        first_index: Parent table index of parents[0]

    Returns:
        Child chunks for all parents, in parent order
    """
    children = []
    for i, parent in enumerate(parents):
        children.extend(derive_child_chunks(parent, first_index + i, splitter))

    logger.debug(f"Derived {len(children)} children from {len(parents)} parents")
    return children
