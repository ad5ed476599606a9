"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

# Documented fallbacks so the service runs offline when nothing is configured.
MOCK_API_KEY = "mock-api-key"
MOCK_API_BASE = "https://api.deepseek.com"
MOCK_EMBEDDING_MODEL = "mock-embedding-model"


class EmbeddingConfig(BaseModel):
    """Resolved settings handed to the embedding generator at construction."""

    api_key: str = MOCK_API_KEY
    api_base: str = MOCK_API_BASE
    model: str = MOCK_EMBEDDING_MODEL
    dimension: int = Field(default=384, gt=0)
    batch_size: int = Field(default=64, gt=0)
    max_concurrency: int = Field(default=4, gt=0)
    max_attempts: int = Field(default=3, gt=0)
    backoff_seconds: float = Field(default=1.0, ge=0)
    request_timeout: float = Field(default=60.0, gt=0)

    @property
    def is_mock(self) -> bool:
        return self.api_key == MOCK_API_KEY


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Embedding provider
    embedding_api_key: str = Field(default=MOCK_API_KEY, description="API key for the embedding endpoint")
    embedding_api_base: str = Field(default=MOCK_API_BASE, description="Base URL of the embedding endpoint")
    embedding_model: str = Field(default=MOCK_EMBEDDING_MODEL, description="Default embedding model identifier")
    embedding_dimension: int = Field(default=384, description="Vector size used by the offline fake embedder")
    embedding_batch_size: int = 64
    embedding_max_concurrency: int = 4
    embedding_max_attempts: int = 3
    embedding_backoff_seconds: float = 1.0
    embedding_request_timeout: float = 60.0

    # Chunking defaults
    chunk_size: int = 1000
    overlap_size: int = 200

    # Vector store
    vector_store_backend: str = Field(default="chroma", description="'chroma' or 'memory'")
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_path: str = Field(
        default="",
        description="Use an embedded persistent Chroma at this path instead of the HTTP server.",
    )
    chroma_collection: str = "document_chunks"
    chroma_stats_collection: str = "document_stats"
    store_timeout: float = 30.0
    upsert_batch_size: int = 5000

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def embedding_config(self, model: str | None = None) -> EmbeddingConfig:
        """Build the :class:`EmbeddingConfig`, optionally overriding the model."""
        return EmbeddingConfig(
            api_key=self.embedding_api_key,
            api_base=self.embedding_api_base,
            model=model or self.embedding_model,
            dimension=self.embedding_dimension,
            batch_size=self.embedding_batch_size,
            max_concurrency=self.embedding_max_concurrency,
            max_attempts=self.embedding_max_attempts,
            backoff_seconds=self.embedding_backoff_seconds,
            request_timeout=self.embedding_request_timeout,
        )


def configure_logging(level: str | None = None) -> None:
    """Install the root handler used by the CLI and the HTTP app."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Singleton: import `settings` wherever needed.
settings = Settings()
