"""
File loader for plain-text documents.

Reads text files with the metadata needed to validate cached indexes
(last-modified time and size), and can hand a file over in fragments for
streaming ingestion.
"""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass
class SourceDocument:
    """A loaded text document."""

    doc_id: str
    path: Path
    name: str
    content: str
    last_modified: float
    size: int

    def __len__(self) -> int:
        return len(self.content)


def document_id_for(path: Path | str) -> str:
    """Deterministic document id derived from the resolved path."""
    return hashlib.md5(str(Path(path).resolve()).encode()).hexdigest()


def load_document(path: Path | str, encoding: str = "utf-8") -> SourceDocument:
    """
    Load a single text document.

    Undecodable bytes are replaced rather than failing the whole file.

    Args:
        path: Path to the file
        encoding: Text encoding

    Returns:
        SourceDocument
    """
    path = Path(path)
    stat = path.stat()
    content = path.read_text(encoding=encoding, errors="replace")

    return SourceDocument(
        doc_id=document_id_for(path),
        path=path,
        name=path.name,
        content=content,
        last_modified=stat.st_mtime,
        size=stat.st_size,
    )


def load_documents(source_dir: Path | str, pattern: str = "**/*.txt") -> Iterator[SourceDocument]:
    """
    Load all documents in a directory matching a glob pattern.

    Files that cannot be read are logged and skipped.

    Args:
        source_dir: Directory to scan
        pattern: Glob pattern relative to source_dir

    Yields:
        SourceDocument objects in path order
    """
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        logger.warning(f"Source directory does not exist: {source_dir}")
        return

    for path in sorted(source_dir.glob(pattern)):
        if not path.is_file():
            continue
        try:
            yield load_document(path)
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")


def iter_fragments(text: str, fragment_size: int) -> Iterator[str]:
    """
    Cut text into fixed-size fragments, ignoring word boundaries.

    Args:
        text: Text to cut
        fragment_size: Characters per fragment

    Yields:
        Consecutive fragments
    """
    if fragment_size <= 0:
        raise ValueError(f"fragment_size must be positive, got {fragment_size}")
    for i in range(0, len(text), fragment_size):
        yield text[i:i + fragment_size]
