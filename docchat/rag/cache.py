"""
Cache records for indexed documents.

A CachedDocument captures everything the vector store holds for one
document (parents, children, embeddings, entity and structure indexes) in a
JSON-safe form, keyed by document id and validated against the source file's
last-modified time and size. Where records are kept is up to the caller.
"""

import json
import logging
from dataclasses import dataclass, field

from docchat.rag.chunking.models import ChildChunk, DocumentChunk
from docchat.rag.indexing.entities import EntityRecord
from docchat.rag.indexing.structure import DocumentStructure
from docchat.rag.vectorstore import DocSpan, Parented, VectorStore

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1


@dataclass(frozen=True)
class CachedChild:
    """A child chunk as cached; parent_chunk_index is None for self-contained chunks."""

    text: str
    start: int
    end: int
    parent_chunk_index: int | None

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "parent_chunk_index": self.parent_chunk_index,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CachedChild":
        return cls(
            text=data["text"],
            start=data["start"],
            end=data["end"],
            parent_chunk_index=data.get("parent_chunk_index"),
        )


@dataclass
class CachedDocument:
    """Serializable snapshot of one indexed document."""

    doc_id: str
    path: str
    name: str
    last_modified: float
    size: int
    embeddings: list[list[float]] = field(default_factory=list)  # One per child
    parent_chunks: list[DocumentChunk] = field(default_factory=list)
    child_chunks: list[CachedChild] = field(default_factory=list)
    entities: dict[str, EntityRecord] = field(default_factory=dict)
    structure: DocumentStructure | None = None
    doc_span: DocSpan | None = None
    version: int = CACHE_FORMAT_VERSION

    def is_valid_for(self, last_modified: float, size: int) -> bool:
        """Check whether this record still describes the source file."""
        return (
            self.version == CACHE_FORMAT_VERSION
            and self.last_modified == last_modified
            and self.size == size
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-safe dictionary."""
        return {
            "version": self.version,
            "doc_id": self.doc_id,
            "path": self.path,
            "name": self.name,
            "last_modified": self.last_modified,
            "size": self.size,
            "embeddings": self.embeddings,
            "parent_chunks": [p.to_dict() for p in self.parent_chunks],
            "child_chunks": [c.to_dict() for c in self.child_chunks],
            "entities": {k: v.to_dict() for k, v in self.entities.items()},
            "structure": self.structure.to_dict() if self.structure else None,
            "doc_span": (
                {"min_start": self.doc_span.min_start, "max_end": self.doc_span.max_end}
                if self.doc_span else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CachedDocument":
        """Create from dictionary."""
        structure = data.get("structure")
        doc_span = data.get("doc_span")

        return cls(
            doc_id=data["doc_id"],
            path=data.get("path", ""),
            name=data.get("name", ""),
            last_modified=data["last_modified"],
            size=data["size"],
            embeddings=[list(e) for e in data.get("embeddings", [])],
            parent_chunks=[DocumentChunk.from_dict(p) for p in data.get("parent_chunks", [])],
            child_chunks=[CachedChild.from_dict(c) for c in data.get("child_chunks", [])],
            entities={
                k: EntityRecord.from_dict(v) for k, v in data.get("entities", {}).items()
            },
            structure=DocumentStructure.from_dict(structure) if structure else None,
            doc_span=DocSpan(doc_span["min_start"], doc_span["max_end"]) if doc_span else None,
            version=data.get("version", 0),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, payload: str) -> "CachedDocument":
        return cls.from_dict(json.loads(payload))


def export_document(
    store: VectorStore,
    doc_id: str,
    path: str = "",
    name: str = "",
    last_modified: float = 0,
    size: int = 0,
) -> CachedDocument:
    """
    Snapshot a document held by the store.

    Child text is not kept by the store, so it is sliced back out of the
    parent text. A child whose parent no longer resolves gets empty text.

    Args:
        store: Vector store holding the document
        doc_id: Document identifier
        path: Source path
        name: Display name
        last_modified: Source modification time
        size: Source size in bytes

    Returns:
        CachedDocument for the document
    """
    embeddings = []
    children = []

    for record in store.get_child_records(doc_id):
        parent = store.resolve_parent(record)
        text = ""
        if parent is not None:
            text = parent.text[record.start - parent.start:record.end - parent.start]

        index = record.parent.index if isinstance(record.parent, Parented) else None
        children.append(CachedChild(
            text=text,
            start=record.start,
            end=record.end,
            parent_chunk_index=index,
        ))
        embeddings.append(record.embedding.tolist())

    return CachedDocument(
        doc_id=doc_id,
        path=path,
        name=name,
        last_modified=last_modified,
        size=size,
        embeddings=embeddings,
        parent_chunks=store.get_parent_chunks(doc_id),
        child_chunks=children,
        entities=store.get_entities(doc_id),
        structure=store.get_structure(doc_id),
        doc_span=store.get_doc_span(doc_id),
    )


def restore_document(store: VectorStore, cached: CachedDocument) -> int:
    """
    Load a cached document into the store, replacing any previous state.

    Args:
        store: Vector store to fill
        cached: Cached record

    Returns:
        Number of child embeddings restored

    Raises:
        ValueError: If embeddings and children are out of step
    """
    if len(cached.embeddings) != len(cached.child_chunks):
        raise ValueError(
            f"Cache for {cached.doc_id} has {len(cached.embeddings)} embeddings "
            f"for {len(cached.child_chunks)} children"
        )

    store.remove_document(cached.doc_id)
    store.add_parent_chunks(cached.doc_id, cached.parent_chunks)

    for child, embedding in zip(cached.child_chunks, cached.embeddings):
        if child.parent_chunk_index is None:
            store.add_chunk_embedding(
                DocumentChunk(text=child.text, start=child.start, end=child.end),
                cached.doc_id,
                embedding,
                register_parent=False,
            )
        else:
            store.add_child_chunk_embedding(
                cached.doc_id,
                embedding,
                ChildChunk(
                    text=child.text,
                    start=child.start,
                    end=child.end,
                    parent_chunk_index=child.parent_chunk_index,
                ),
            )

    if cached.entities or cached.structure is not None:
        store.set_indexes(cached.doc_id, cached.entities, cached.structure)

    logger.debug(f"Restored {cached.doc_id} from cache ({len(cached.child_chunks)} children)")
    return len(cached.child_chunks)
