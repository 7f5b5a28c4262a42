from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..rag.filters import Filter
from ..rag.types import SearchResult


def distance_to_score(distance: float) -> float:
    """Map a cosine distance in [0, 2] onto a similarity score in [0, 1]."""
    return max(0.0, min(1.0, 1.0 - float(distance) / 2.0))


class VectorStore(ABC):
    """
    Abstract base class for chunk storage.
    Decouples retrieval from specific vector database implementations.
    """

    @abstractmethod
    def add(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None:
        """Add or update chunks in the store."""

    @abstractmethod
    def search(
        self,
        query_embedding: list[float],
        limit: int,
        query_filter: Filter | None = None,
    ) -> list[SearchResult]:
        """Return up to ``limit`` nearest chunks, best first, scored in [0, 1]."""

    @abstractmethod
    def get(self, query_filter: Filter | None = None, limit: int = 100) -> list[SearchResult]:
        """Metadata-only lookup; every result carries score 1.0."""

    @abstractmethod
    def count(self) -> int:
        """Return the total number of chunks in the store."""

    @abstractmethod
    def delete(self, ids: list[str]) -> None:
        """Delete chunks by ID."""
