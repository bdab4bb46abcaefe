"""
Data models for parent-child chunking.

Parent chunks are large, contextually complete passages returned to the
caller after child matching.

Child chunks are sentence-sized units that get embedded and matched, with a
positional reference back to their parent in the document's parent table.

All offsets are absolute character offsets into the original document.
"""

from dataclasses import dataclass, field


def check_chunk_window(chunk_size: int, overlap: int) -> None:
    """Raise ValueError unless 0 <= overlap < chunk_size."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if not 0 <= overlap < chunk_size:
        raise ValueError(
            f"overlap must satisfy 0 <= overlap < chunk_size "
            f"(overlap={overlap}, chunk_size={chunk_size})"
        )


@dataclass(frozen=True)
class DocumentChunk:
    """A passage of a document with absolute [start, end) offsets."""

    text: str
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {"text": self.text, "start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: dict) -> "DocumentChunk":
        """Create from dictionary."""
        return cls(text=data["text"], start=data["start"], end=data["end"])


@dataclass(frozen=True)
class ChildChunk:
    """
    A sentence-level chunk derived from a parent chunk.

    parent_chunk_index is the position of the parent in the document's
    parent table.
    """

    text: str
    start: int
    end: int
    parent_chunk_index: int

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "parent_chunk_index": self.parent_chunk_index,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChildChunk":
        """Create from dictionary."""
        return cls(
            text=data["text"],
            start=data["start"],
            end=data["end"],
            parent_chunk_index=data["parent_chunk_index"],
        )


@dataclass
class HierarchicalChunks:
    """Parent and child chunks produced by one chunking step."""

    parent_chunks: list[DocumentChunk] = field(default_factory=list)
    child_chunks: list[ChildChunk] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.parent_chunks)

    def extend(self, other: "HierarchicalChunks") -> None:
        """Append another batch of chunks in emission order."""
        self.parent_chunks.extend(other.parent_chunks)
        self.child_chunks.extend(other.child_chunks)
