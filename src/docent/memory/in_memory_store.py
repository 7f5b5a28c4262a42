"""In-memory chunk store: brute-force cosine search over a numpy matrix."""

from __future__ import annotations

import threading
from typing import Any

import numpy as np

from ..rag.filter_compilers import matches
from ..rag.filters import Filter
from ..rag.types import SearchResult
from .vector_store import VectorStore


class InMemoryVectorStore(VectorStore):
    """Keeps every chunk in memory and filters with the filter evaluator."""

    def __init__(self) -> None:
        self._ids: list[str] = []
        self._vectors: list[np.ndarray] = []
        self._documents: list[str] = []
        self._metadatas: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def add(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None:
        with self._lock:
            for chunk_id, vector, document, metadata in zip(ids, embeddings, documents, metadatas):
                row = np.asarray(vector, dtype=float)
                if chunk_id in self._ids:
                    index = self._ids.index(chunk_id)
                    self._vectors[index] = row
                    self._documents[index] = document
                    self._metadatas[index] = dict(metadata)
                else:
                    self._ids.append(chunk_id)
                    self._vectors.append(row)
                    self._documents.append(document)
                    self._metadatas.append(dict(metadata))

    def search(
        self,
        query_embedding: list[float],
        limit: int,
        query_filter: Filter | None = None,
    ) -> list[SearchResult]:
        with self._lock:
            candidates = [
                i for i, metadata in enumerate(self._metadatas) if matches(query_filter, metadata)
            ]
            if not candidates or limit <= 0:
                return []

            matrix = np.vstack([self._vectors[i] for i in candidates])
            query = np.asarray(query_embedding, dtype=float)
            norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
            with np.errstate(divide="ignore", invalid="ignore"):
                cosine = np.where(norms > 0, matrix @ query / norms, 0.0)
            # Same scale as a cosine-distance index: 1 - (1 - cos) / 2
            scores = np.clip((1.0 + cosine) / 2.0, 0.0, 1.0)

            order = np.argsort(-scores, kind="stable")[:limit]
            return [
                SearchResult(
                    id=self._ids[candidates[k]],
                    content=self._documents[candidates[k]],
                    score=float(scores[k]),
                    metadata=dict(self._metadatas[candidates[k]]),
                )
                for k in order
            ]

    def get(self, query_filter: Filter | None = None, limit: int = 100) -> list[SearchResult]:
        with self._lock:
            results: list[SearchResult] = []
            for i, metadata in enumerate(self._metadatas):
                if len(results) >= limit:
                    break
                if matches(query_filter, metadata):
                    results.append(
                        SearchResult(
                            id=self._ids[i],
                            content=self._documents[i],
                            score=1.0,
                            metadata=dict(metadata),
                        )
                    )
            return results

    def count(self) -> int:
        return len(self._ids)

    def delete(self, ids: list[str]) -> None:
        doomed = set(ids)
        with self._lock:
            keep = [i for i, chunk_id in enumerate(self._ids) if chunk_id not in doomed]
            self._ids = [self._ids[i] for i in keep]
            self._vectors = [self._vectors[i] for i in keep]
            self._documents = [self._documents[i] for i in keep]
            self._metadatas = [self._metadatas[i] for i in keep]
