"""
Serving — FastAPI application for document upload and status lookups.

Run with ``uvicorn rag_ingest.serving.app:app``.
"""
