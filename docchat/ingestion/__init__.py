"""
Ingestion package: loading documents and indexing them into the vector store.
"""

from docchat.ingestion.loader import (
    SourceDocument,
    document_id_for,
    iter_fragments,
    load_document,
    load_documents,
)
from docchat.ingestion.pipeline import IngestionPipeline, IngestionStats, StreamingIngestion

__all__ = [
    "IngestionPipeline",
    "IngestionStats",
    "SourceDocument",
    "StreamingIngestion",
    "document_id_for",
    "iter_fragments",
    "load_document",
    "load_documents",
]
