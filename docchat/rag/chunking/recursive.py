"""
Recursive character splitting used for parent chunks.

Every chunk is a whitespace-trimmed substring of the input, so callers can
recover its offset by searching the source text.
"""

from typing import Callable

TextSplitter = Callable[[str, int, int], list[str]]

# Separators in order of preference (most semantic to least)
SEPARATORS = [
    "\n\n",     # Paragraph break
    "\n",       # Line break
    ". ",       # Sentence end
    "? ",       # Question end
    "! ",       # Exclamation end
    ", ",       # Clause break
    " ",        # Word break
]


def split_text(text: str, chunk_size: int, chunk_overlap: int) -> list[str]:
    """
    Split text into chunks using recursive character splitting.

    Attempts to split on semantic boundaries (paragraphs, sentences)
    while respecting chunk size limits. Consecutive chunks share up to
    chunk_overlap characters.

    Args:
        text: The text to split
        chunk_size: Maximum characters per chunk
        chunk_overlap: Overlap between chunks

    Returns:
        List of text chunks in document order
    """
    if not text or not text.strip():
        return []

    chunks = []
    start = 0

    while start < len(text):
        # Chunks never start on whitespace
        while start < len(text) and text[start].isspace():
            start += 1
        if start >= len(text):
            break

        # Determine end position
        end = min(start + chunk_size, len(text))

        # If we're not at the end, try to find a good break point
        if end < len(text):
            best_break = end
            for sep in SEPARATORS:
                # Search backwards from end for separator
                break_pos = text.rfind(sep, start + chunk_overlap, end)
                if break_pos != -1:
                    best_break = break_pos + len(sep)
                    break
            end = best_break

        chunk_text = text[start:end].rstrip()
        if chunk_text:
            chunks.append(chunk_text)

        # Move start position (with overlap)
        if end >= len(text):
            break
        start = max(start + 1, end - chunk_overlap)

    return chunks
