"""
Streaming parent-child chunking for documents that arrive in fragments.

The chunker keeps a bounded text buffer. Each call appends a fragment, emits
every parent chunk that can be finalized, and keeps an overlap-sized tail so
the next parent repeats the end of the previous one. Fragment boundaries do
not need to line up with words or sentences.

State lives in an explicit StreamState record and `advance` is a pure
transition (state, fragment) -> (state', chunks), so fragment sequences can be
replayed and tested without hidden mutation.
"""

import logging
from dataclasses import dataclass

from docchat.config import get_settings
from docchat.rag.chunking.children import (
    SentenceSplitter,
    derive_child_chunks,
    split_sentences,
)
from docchat.rag.chunking.models import (
    DocumentChunk,
    HierarchicalChunks,
    check_chunk_window,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamState:
    """Buffer and counters of one in-flight document ingestion."""

    buffer: str = ""
    total_processed_length: int = 0  # Absolute offset of buffer[0]
    parent_chunk_count: int = 0
    emitted_until: int = 0  # Absolute end of the last emitted parent
    finished: bool = False


def find_split_point(buffer: str, chunk_size: int, overlap: int) -> int:
    """
    Choose where the next parent chunk ends.

    Looks backward from chunk_size for the nearest newline or space. A
    boundary at or before max(chunk_size / 2, overlap) is too early to be
    useful and is replaced by a hard cut at chunk_size. A buffer no longer
    than chunk_size is taken whole.

    Args:
        buffer: Buffered text
        chunk_size: Target parent size
        overlap: Characters carried into the next parent

    Returns:
        Split index into buffer
    """
    if len(buffer) <= chunk_size:
        return len(buffer)

    boundary = max(
        buffer.rfind("\n", 0, chunk_size + 1),
        buffer.rfind(" ", 0, chunk_size + 1),
    )
    if boundary <= max(chunk_size / 2, overlap):
        return chunk_size
    return boundary


def advance(
    state: StreamState,
    text: str,
    is_last: bool,
    chunk_size: int,
    overlap: int,
    sentence_splitter: SentenceSplitter = split_sentences,
) -> tuple[StreamState, HierarchicalChunks]:
    """
    Feed one fragment and emit the parent/child chunks it finalizes.

    Args:
        state: Current stream state
        text: Next fragment of the document
        is_last: Whether this is the final fragment
        chunk_size: Target parent size in characters
        overlap: Characters repeated between consecutive parents
        sentence_splitter: Sentence splitter for children

    Returns:
        Tuple of (new state, newly finalized chunks)
    """
    if state.finished:
        raise RuntimeError("Stream already finished; create a new chunker")

    buffer = state.buffer + text
    processed = state.total_processed_length
    parent_count = state.parent_chunk_count
    emitted_until = state.emitted_until
    output = HierarchicalChunks()

    while buffer:
        if not is_last and len(buffer) <= chunk_size + overlap:
            break

        if is_last and processed + len(buffer) <= emitted_until:
            # Only overlap text that is already part of the last parent remains
            processed += len(buffer)
            buffer = ""
            break

        split_point = find_split_point(buffer, chunk_size, overlap)
        if split_point <= 0 and not is_last:
            break

        parent = DocumentChunk(
            text=buffer[:split_point],
            start=processed,
            end=processed + split_point,
        )
        output.parent_chunks.append(parent)
        output.child_chunks.extend(
            derive_child_chunks(parent, parent_count, sentence_splitter)
        )
        parent_count += 1
        emitted_until = max(emitted_until, parent.end)

        if is_last and split_point >= len(buffer):
            consumed = split_point
        else:
            consumed = max(0, split_point - overlap)
        consumed = min(consumed, len(buffer))

        buffer = buffer[consumed:]
        processed += consumed

        if not is_last and len(buffer) <= overlap:
            break

    new_state = StreamState(
        buffer=buffer,
        total_processed_length=processed,
        parent_chunk_count=parent_count,
        emitted_until=emitted_until,
        finished=is_last,
    )
    return new_state, output


class StreamingHierarchicalChunker:
    """
    Stateful incremental counterpart of hierarchical_chunker.

    One instance serves exactly one document stream. Call process_chunk with
    successive fragments and is_last=True on the final one (an empty final
    fragment is fine) to flush whatever is still buffered.
    """

    def __init__(
        self,
        chunk_size: int | None = None,
        overlap: int | None = None,
        sentence_splitter: SentenceSplitter = split_sentences,
    ):
        """
        Initialize the streaming chunker.

        Args:
            chunk_size: Target parent size (default from settings)
            overlap: Overlap between parents (default from settings)
            sentence_splitter: Sentence splitter for children

        Raises:
            ValueError: If overlap is negative or not smaller than chunk_size
        """
        settings = get_settings()
        self.chunk_size = chunk_size if chunk_size is not None else settings.parent_chunk_size
        self.overlap = overlap if overlap is not None else settings.parent_chunk_overlap
        check_chunk_window(self.chunk_size, self.overlap)

        self._sentence_splitter = sentence_splitter
        self._state = StreamState()

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def buffered_length(self) -> int:
        return len(self._state.buffer)

    @property
    def parent_chunk_count(self) -> int:
        return self._state.parent_chunk_count

    @property
    def is_finished(self) -> bool:
        return self._state.finished

    def process_chunk(self, text: str, is_last: bool = False) -> HierarchicalChunks:
        """
        Consume a fragment and return newly finalized chunks.

        Args:
            text: Next fragment of the document
            is_last: Whether this is the final fragment

        Returns:
            HierarchicalChunks emitted by this call (possibly empty)

        Raises:
            RuntimeError: If the stream was already finished
        """
        self._state, output = advance(
            self._state,
            text,
            is_last,
            self.chunk_size,
            self.overlap,
            self._sentence_splitter,
        )

        if output.parent_chunks:
            logger.debug(
                f"Emitted {len(output.parent_chunks)} parents, "
                f"{len(output.child_chunks)} children "
                f"(buffered {self.buffered_length} chars)"
            )
        return output
