"""
Ingestion — text extraction, chunking, embedding, and the orchestrating service.

This package is the write path that turns uploaded documents (PDF, plain
text, Markdown, Word) into embedded chunks stored in a vector database.
"""

from rag_ingest.ingestion.service import IngestionService

__all__ = ["IngestionService"]
