#!/usr/bin/env python3
"""
Index a folder of text documents and query it.

Builds an in-memory parent-child index with OpenAI embeddings, then
optionally runs a query and prints the ranked parent passages.

Usage:
    python scripts/index_documents.py docs/                          # Index and show stats
    python scripts/index_documents.py docs/ --query "who founded it"  # Index and query
    python scripts/index_documents.py docs/ --stream --fragment-size 512
    python scripts/index_documents.py docs/ --query "..." --diverse --top-k 5
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from docchat.config import get_settings
from docchat.ingestion import IngestionPipeline, load_documents
from docchat.rag.providers import OpenAIEmbeddingProvider
from docchat.rag.vectorstore import VectorStore

logger = logging.getLogger(__name__)


def progress_callback(current: int, name: str):
    """Display progress during ingestion."""
    print(f"\r[{current:4d}] {name[:60]:<60}", end="", flush=True)


def print_results(pipeline: IngestionPipeline, query: str, top_k: int | None, diverse: bool):
    """Run a query and print ranked passages with the document's top entities."""
    results = pipeline.query(query, top_k=top_k, diverse=diverse)
    if not results:
        print("No relevant content found.")
        return

    for i, result in enumerate(results, start=1):
        excerpt = result.chunk.replace("\n", " ")
        if len(excerpt) > 300:
            excerpt = excerpt[:300] + "..."
        print(f"\n[{i}] {result.document_id[:8]} [{result.start}:{result.end}] "
              f"similarity={result.similarity:.3f}")
        print(f"    {excerpt}")

    top_doc = results[0].document_id
    entities = pipeline.store.get_top_entities(top_doc)
    if entities:
        names = ", ".join(f"{e.entity} ({e.count})" for e in entities[:10])
        print(f"\nTop entities in best document: {names}")


def main():
    parser = argparse.ArgumentParser(
        description="Index text documents into a parent-child vector store"
    )
    parser.add_argument("source_dir", type=str, help="Directory with documents")
    parser.add_argument("--pattern", type=str, default="**/*.txt", help="Glob pattern for files")
    parser.add_argument("--stream", action="store_true", help="Feed documents through the streaming chunker")
    parser.add_argument("--fragment-size", type=int, default=4096, help="Fragment size in streaming mode")
    parser.add_argument("--query", type=str, help="Query to run after indexing")
    parser.add_argument("--top-k", type=int, help="Number of passages to return")
    parser.add_argument("--diverse", action="store_true", help="Use MMR/span-aware selection")

    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Check for API key
    if not settings.openai_api_key:
        print("Error: OPENAI_API_KEY not set. Add it to .env file or environment.")
        sys.exit(1)

    store = VectorStore()
    pipeline = IngestionPipeline(store, OpenAIEmbeddingProvider())

    print("\n=== Indexing ===")
    print(f"Source: {args.source_dir} ({args.pattern})")
    print(f"Mode: {'streaming' if args.stream else 'batch'}")
    print(f"Embedding model: {settings.embedding_model}")
    print(f"Parent chunks: {settings.parent_chunk_size} chars (overlap: {settings.parent_chunk_overlap})")

    try:
        stats = pipeline.ingest_documents(
            load_documents(args.source_dir, args.pattern),
            stream=args.stream,
            fragment_size=args.fragment_size,
            progress_callback=progress_callback,
        )
    except KeyboardInterrupt:
        print("\n\nIndexing interrupted by user.")
        sys.exit(1)

    print("\n")
    print(stats)

    if stats.errors:
        print("\nErrors:")
        for error in stats.errors[:10]:  # Limit error output
            print(f"  - {error}")
        if len(stats.errors) > 10:
            print(f"  ... and {len(stats.errors) - 10} more errors")

    if args.query:
        print(f"\n=== Query: {args.query} ===")
        try:
            print_results(pipeline, args.query, args.top_k, args.diverse)
        except Exception as e:
            print(f"\nQuery failed: {e}")
            logger.exception("Query error")
            sys.exit(1)


if __name__ == "__main__":
    main()
