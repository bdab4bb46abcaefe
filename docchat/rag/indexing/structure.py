"""
Document structure index: chapters and paragraphs with absolute offsets.

Chapters come from heading-like lines when a document has enough of them;
otherwise the document is cut into equal-width sections. Paragraphs are the
blank-line separated blocks of each parent chunk.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Sequence

from docchat.rag.chunking.models import DocumentChunk

logger = logging.getLogger(__name__)

CHAPTER_HEADING_RE = re.compile(
    r"^(?:\s*(?:chapter|rozdzia[łl])\b[\s.:-]*[\wIVXLCDM.\d-]*)\s*$",
    re.IGNORECASE,
)
NUMBERED_HEADING_RE = re.compile(r"^\s*(?:[IVXLCDM]+|\d+)\s*(?:\.|-|:)\s*[\w' -]{0,40}\s*$")
PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n+")

MAX_HEADING_LENGTH = 80
MIN_HEADINGS = 3  # Fewer detected headings fall back to fixed windows
FALLBACK_SECTIONS = 8


@dataclass(frozen=True)
class Chapter:
    name: str
    start: int
    end: int


@dataclass(frozen=True)
class Span:
    start: int
    end: int


@dataclass
class DocumentStructure:
    """Chapters and paragraphs of one document."""

    chapters: list[Chapter] = field(default_factory=list)
    paragraphs: list[Span] = field(default_factory=list)

    def chapter_at(self, position: int) -> Chapter | None:
        """Return the chapter containing an absolute offset, if any."""
        for chapter in self.chapters:
            if chapter.start <= position < chapter.end:
                return chapter
        return None

    def to_dict(self) -> dict:
        return {
            "chapters": [
                {"name": c.name, "start": c.start, "end": c.end} for c in self.chapters
            ],
            "paragraphs": [{"start": p.start, "end": p.end} for p in self.paragraphs],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DocumentStructure":
        return cls(
            chapters=[Chapter(c["name"], c["start"], c["end"]) for c in data.get("chapters", [])],
            paragraphs=[Span(p["start"], p["end"]) for p in data.get("paragraphs", [])],
        )


def is_heading(line: str) -> bool:
    """Check whether a trimmed line looks like a chapter heading."""
    return (
        0 < len(line) < MAX_HEADING_LENGTH
        and (CHAPTER_HEADING_RE.match(line) is not None
             or NUMBERED_HEADING_RE.match(line) is not None)
    )


def find_headings(parents: Sequence[DocumentChunk]) -> list[tuple[str, int]]:
    """
    Collect heading lines with absolute offsets, ordered by position.

    A heading seen twice (in the overlap of two parents) is kept once, under
    its longest form, since a parent may end partway through the line.
    """
    headings: dict[int, str] = {}
    for parent in parents:
        offset = 0
        for line in parent.text.splitlines(keepends=True):
            trimmed = line.strip()
            position = parent.start + offset
            if is_heading(trimmed) and len(trimmed) > len(headings.get(position, "")):
                headings[position] = trimmed
            offset += len(line)
    return [(name, start) for start, name in sorted(headings.items())]


def find_paragraphs(parents: Sequence[DocumentChunk]) -> list[Span]:
    """Blank-line separated blocks of each parent, as absolute spans."""
    spans: list[Span] = []
    seen: set[Span] = set()
    for parent in parents:
        block_start = 0
        bounds = []
        for brk in PARAGRAPH_BREAK_RE.finditer(parent.text):
            bounds.append((block_start, brk.start()))
            block_start = brk.end()
        bounds.append((block_start, len(parent.text)))

        for local_start, local_end in bounds:
            if local_end <= local_start:
                continue
            span = Span(parent.start + local_start, parent.start + local_end)
            if span not in seen:
                seen.add(span)
                spans.append(span)
    return spans


def extract_structure(parents: Sequence[DocumentChunk]) -> DocumentStructure:
    """
    Build the structure index for a document.

    Args:
        parents: The document's parent chunks

    Returns:
        DocumentStructure with chapters and paragraphs
    """
    if not parents:
        return DocumentStructure()

    doc_start = min(p.start for p in parents)
    doc_end = max(p.end for p in parents)

    chapters = []
    headings = find_headings(parents)
    if len(headings) >= MIN_HEADINGS:
        for i, (name, start) in enumerate(headings):
            end = headings[i + 1][1] if i + 1 < len(headings) else doc_end
            chapters.append(Chapter(name=name, start=start, end=end))
    else:
        span = doc_end - doc_start
        for i in range(FALLBACK_SECTIONS):
            start = doc_start + (i * span) // FALLBACK_SECTIONS
            end = (
                doc_start + ((i + 1) * span) // FALLBACK_SECTIONS
                if i + 1 < FALLBACK_SECTIONS
                else doc_end
            )
            chapters.append(Chapter(name=f"Section {i + 1}", start=start, end=end))

    paragraphs = find_paragraphs(parents)
    logger.debug(
        f"Structure index: {len(chapters)} chapters "
        f"({len(headings)} headings), {len(paragraphs)} paragraphs"
    )
    return DocumentStructure(chapters=chapters, paragraphs=paragraphs)
