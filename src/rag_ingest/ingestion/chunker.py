"""Fixed-window text chunking."""

from __future__ import annotations

from typing import Any

from langchain_text_splitters import TextSplitter

from rag_ingest.errors import InvalidConfig


class FixedWindowTextSplitter(TextSplitter):
    """Split text into fixed-size character windows with a constant overlap.

    Chunk *i* is ``text[i * step : i * step + chunk_size]`` where
    ``step = chunk_size - chunk_overlap``; the last chunk may be shorter and
    consecutive chunks share exactly ``chunk_overlap`` characters.  Unlike the
    recursive splitters no separators are honoured and no whitespace is
    stripped, so offsets are exact.

    Parameters
    ----------
    chunk_size:
        Maximum number of characters per chunk (> 0).
    chunk_overlap:
        Characters shared with the previous chunk (``0 <= overlap < size``).
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200, **kwargs: Any) -> None:
        if chunk_size <= 0:
            raise InvalidConfig(f"chunk_size ({chunk_size}) must be > 0")
        if chunk_overlap < 0:
            raise InvalidConfig(f"overlap_size ({chunk_overlap}) must be >= 0")
        if chunk_overlap >= chunk_size:
            raise InvalidConfig(
                f"overlap_size ({chunk_overlap}) must be < chunk_size ({chunk_size})"
            )
        kwargs.setdefault("strip_whitespace", False)
        kwargs.setdefault("add_start_index", True)
        super().__init__(chunk_size=chunk_size, chunk_overlap=chunk_overlap, **kwargs)

    @property
    def step(self) -> int:
        return self._chunk_size - self._chunk_overlap

    def split_text(self, text: str) -> list[str]:
        if not text:
            return []
        size = self._chunk_size
        if len(text) <= size:
            return [text]
        return [text[start : start + size] for start in range(0, len(text) - self._chunk_overlap, self.step)]


def chunk_text(text: str, chunk_size: int, overlap_size: int) -> list[str]:
    """Split *text* into overlapping fixed-size chunks.

    Raises
    ------
    InvalidConfig
        When ``overlap_size >= chunk_size`` (chunking would not advance).
    """
    return FixedWindowTextSplitter(chunk_size=chunk_size, chunk_overlap=overlap_size).split_text(text)
