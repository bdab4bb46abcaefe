"""
docchat - retrieval engine for a document-grounded chat assistant.

Chunks document text into parent/child passages with absolute offsets and
answers similarity queries from an in-memory vector store.
"""

__version__ = "0.1.0"
