"""
Indexing package for per-document metadata indexes.

Provides:
- Entity index (capitalized-token mentions with absolute offsets)
- Structure index (chapters and paragraphs)
"""

from docchat.rag.indexing.entities import (
    EntityCount,
    EntityExtractor,
    EntityIndex,
    EntityRecord,
    build_entity_index,
    extract_entities,
    index_entities,
    top_entities,
)
from docchat.rag.indexing.structure import (
    Chapter,
    DocumentStructure,
    Span,
    extract_structure,
    find_headings,
    find_paragraphs,
    is_heading,
)

__all__ = [
    # Entities
    "EntityCount",
    "EntityExtractor",
    "EntityIndex",
    "EntityRecord",
    "build_entity_index",
    "extract_entities",
    "index_entities",
    "top_entities",
    # Structure
    "Chapter",
    "DocumentStructure",
    "Span",
    "extract_structure",
    "find_headings",
    "find_paragraphs",
    "is_heading",
]
