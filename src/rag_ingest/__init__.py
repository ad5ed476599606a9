"""
rag-ingest — document ingestion for retrieval-augmented generation.

Documents are validated, split into overlapping chunks, embedded in
batches, and upserted into a vector store together with a per-document
status record.
"""

__version__ = "0.1.0"
