import logging
from typing import Any, cast

import chromadb

from ..rag.filter_compilers import to_chroma_where
from ..rag.filters import Filter
from ..rag.types import SearchResult
from .vector_store import VectorStore, distance_to_score

logger = logging.getLogger(__name__)

# Chroma rejects very large delete requests
DELETE_BATCH_SIZE = 1000


class ChromaVectorStore(VectorStore):
    """
    Chunk store backed by a persistent ChromaDB collection.

    The collection uses cosine distance, so scores are ``1 - distance / 2``.
    Filters are compiled with :func:`to_chroma_where`; date fields must be
    stored as epoch seconds to be range-filterable.

    Example:
        >>> store = ChromaVectorStore("/path/to/db", "documents")
        >>> store.add(ids=["1"], embeddings=[[0.1, 0.2]], documents=["hello"], metadatas=[{"source": "uploaded"}])
        >>> results = store.search([0.1, 0.2], limit=5)
    """

    def __init__(self, db_path: str, collection_name: str, client: Any = None):
        self.db_path = db_path
        self.collection_name = collection_name
        self.client = client if client is not None else chromadb.PersistentClient(path=self.db_path)
        self.collection = self.client.get_or_create_collection(
            name=self.collection_name, metadata={"hnsw:space": "cosine"}
        )

    def add(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None:
        self.collection.upsert(
            ids=ids,
            embeddings=cast(Any, embeddings),
            documents=documents,
            metadatas=cast(Any, metadatas),
        )

    def search(
        self,
        query_embedding: list[float],
        limit: int,
        query_filter: Filter | None = None,
    ) -> list[SearchResult]:
        where = to_chroma_where(query_filter)
        raw = self.collection.query(
            query_embeddings=cast(Any, [query_embedding]),
            n_results=limit,
            where=where,
            include=cast(Any, ["documents", "metadatas", "distances"]),
        )

        ids = (raw.get("ids") or [[]])[0]
        documents = (raw.get("documents") or [[]])[0]
        metadatas = (raw.get("metadatas") or [[]])[0]
        distances = (raw.get("distances") or [[]])[0]

        results = [
            SearchResult(
                id=ids[i],
                content=documents[i] or "",
                score=distance_to_score(distances[i]),
                metadata=dict(metadatas[i] or {}),
            )
            for i in range(len(ids))
        ]
        results.sort(key=lambda r: r.score, reverse=True)
        return results

    def get(self, query_filter: Filter | None = None, limit: int = 100) -> list[SearchResult]:
        raw = self.collection.get(
            where=to_chroma_where(query_filter),
            limit=limit,
            include=cast(Any, ["documents", "metadatas"]),
        )
        ids = list(raw.get("ids") or [])
        documents = raw.get("documents") or [None] * len(ids)
        metadatas = raw.get("metadatas") or [None] * len(ids)
        return [
            SearchResult(
                id=ids[i],
                content=documents[i] or "",
                score=1.0,
                metadata=dict(metadatas[i] or {}),
            )
            for i in range(len(ids))
        ]

    def count(self) -> int:
        return int(self.collection.count())

    def delete(self, ids: list[str]) -> None:
        for start in range(0, len(ids), DELETE_BATCH_SIZE):
            self.collection.delete(ids=ids[start : start + DELETE_BATCH_SIZE])
        logger.debug("Deleted %d chunks from %s", len(ids), self.collection_name)
