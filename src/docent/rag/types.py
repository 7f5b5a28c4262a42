"""
Result types shared by the retrieval, context and attribution stages.

Chunk metadata keeps the field names ingestion writes to the store
(``fileName``, ``filePath``, ``source``, ``totalChunks``, ``chunkIndex``,
``userId``); the properties below are read-only conveniences over it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SearchResult:
    """A chunk returned by a search, with its similarity score in [0, 1]."""

    content: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None

    @property
    def source(self) -> str | None:
        return self.metadata.get("source")

    @property
    def file_name(self) -> str:
        return str(self.metadata.get("fileName") or "Unknown")

    @property
    def file_path(self) -> str | None:
        return self.metadata.get("filePath")

    @property
    def total_chunks(self) -> int | None:
        value = self.metadata.get("totalChunks")
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "score": self.score,
            "metadata": dict(self.metadata),
        }


@dataclass
class SourceWithRelevance:
    """A search result annotated with how much the answer relied on it."""

    result: SearchResult
    relevance_score: float = 0.0
    is_referenced: bool = False

    @property
    def content(self) -> str:
        return self.result.content

    @property
    def metadata(self) -> dict[str, Any]:
        return self.result.metadata

    def to_dict(self) -> dict[str, Any]:
        data = self.result.to_dict()
        data["relevanceScore"] = self.relevance_score
        data["isReferenced"] = self.is_referenced
        return data
