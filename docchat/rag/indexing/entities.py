"""
Lightweight entity index built from parent chunk text.

An "entity" is a run of one or more capitalized words. Mentions are stored
per lowercased entity with their absolute document offsets.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from docchat.rag.chunking.models import DocumentChunk

logger = logging.getLogger(__name__)

EntityExtractor = Callable[[str], Iterable[tuple[str, int]]]

_WORD = r"[A-Z][A-Za-zÀ-ÖØ-öø-ÿ'-]+"
ENTITY_RE = re.compile(rf"\b({_WORD}(?:\s+{_WORD})*)\b")

STOPWORDS = frozenset({
    "the", "and", "or", "a", "an", "of", "to", "in", "on", "for", "with", "by",
})


@dataclass
class EntityRecord:
    """Mention count and absolute offsets of one entity."""

    count: int = 0
    positions: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"count": self.count, "positions": list(self.positions)}

    @classmethod
    def from_dict(cls, data: dict) -> "EntityRecord":
        return cls(count=data["count"], positions=list(data["positions"]))


@dataclass(frozen=True)
class EntityCount:
    """An entity and how often it is mentioned."""

    entity: str
    count: int


EntityIndex = dict[str, EntityRecord]


def extract_entities(text: str) -> list[tuple[str, int]]:
    """
    Find capitalized-token entities in text.

    Matches shorter than two characters and bare stopwords ("The", "And")
    are dropped.

    Args:
        text: Text to scan

    Returns:
        List of (entity, local offset) tuples in text order
    """
    found = []
    for match in ENTITY_RE.finditer(text):
        entity = match.group(1).strip()
        if len(entity) < 2 or entity.lower() in STOPWORDS:
            continue
        found.append((entity, match.start(1)))
    return found


def index_entities(
    index: EntityIndex,
    parents: Sequence[DocumentChunk],
    extractor: EntityExtractor = extract_entities,
) -> int:
    """
    Add entity mentions from parents to an entity index.

    A mention at an absolute offset that is already recorded (text repeated
    in the overlap between parents) is not counted twice.

    Args:
        index: Entity index to update in place
        parents: Parent chunks with absolute offsets
        extractor: Entity extraction function

    Returns:
        Number of new mentions recorded
    """
    added = 0
    for parent in parents:
        for entity, offset in extractor(parent.text):
            position = parent.start + offset
            record = index.setdefault(entity.lower(), EntityRecord())
            if position in record.positions:
                continue
            record.count += 1
            record.positions.append(position)
            added += 1
    return added


def build_entity_index(
    parents: Sequence[DocumentChunk],
    extractor: EntityExtractor = extract_entities,
) -> EntityIndex:
    """Build a fresh entity index for a document's parents."""
    index: EntityIndex = {}
    added = index_entities(index, parents, extractor)
    logger.debug(f"Entity index: {len(index)} entities, {added} mentions")
    return index


def top_entities(index: EntityIndex, min_count: int, max_results: int) -> list[EntityCount]:
    """
    Rank entities by mention count.

    Ties keep first-seen order.

    Args:
        index: Entity index
        min_count: Minimum mentions to be included
        max_results: Maximum entities to return

    Returns:
        List of EntityCount, most mentioned first
    """
    ranked = [
        EntityCount(entity=entity, count=record.count)
        for entity, record in index.items()
        if record.count >= min_count
    ]
    ranked.sort(key=lambda e: e.count, reverse=True)
    return ranked[:max_results]
