"""
Retrieval Engine - semantic search over the chunk store

Embeds the query with a LangChain ``Embeddings`` model, compiles the user's
source selection into a filter and queries the store. Every failure degrades
to an empty result list so the chat response is never blocked.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable

from langchain_core.embeddings import Embeddings

from .filters import Filter, build_source_filter
from .types import SearchResult

if TYPE_CHECKING:
    from ..memory.vector_store import VectorStore
    from ..sources.registry import SourceRegistry

logger = logging.getLogger(__name__)

SourceSelection = str | Iterable[str] | None


class RetrievalEngine:
    """
    Semantic search with source filtering.

    Usage:
        engine = RetrievalEngine(embeddings, store)
        results = await engine.search("books about sailing", limit=5, source_filter=["goodreads:42"])
    """

    def __init__(
        self,
        embeddings: Embeddings,
        store: VectorStore,
        registry: SourceRegistry | None = None,
        default_limit: int = 5,
        max_limit: int = 100,
    ):
        self.embeddings = embeddings
        self.store = store
        self.registry = registry
        self.default_limit = default_limit
        self.max_limit = max_limit

    def _clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.default_limit
        return max(0, min(limit, self.max_limit))

    async def search(
        self,
        query: str,
        limit: int | None = None,
        source_filter: SourceSelection = "all",
    ) -> list[SearchResult]:
        """
        Search for the chunks most similar to ``query``.

        Args:
            query: Natural-language query
            limit: Maximum number of results (engine default when None, [] when 0 or less)
            source_filter: "all"/"none", a source name, or a list of source
                identifiers; "<source>:<userId>" scopes a source to one user

        Returns:
            Results sorted by score descending; [] on any failure
        """
        try:
            query_filter = build_source_filter(source_filter)
        except Exception as e:
            logger.error("Invalid source filter %r: %s", source_filter, e)
            return []
        return await self.search_with_filter(query, query_filter, limit)

    async def search_with_filter(
        self,
        query: str,
        query_filter: Filter | None,
        limit: int | None = None,
    ) -> list[SearchResult]:
        limit = self._clamp_limit(limit)
        if limit == 0:
            return []
        try:
            query_embedding = await self.embeddings.aembed_query(query)
        except Exception as e:
            logger.error("Failed to embed query: %s", e, exc_info=True)
            return []

        try:
            results = await asyncio.to_thread(self.store.search, query_embedding, limit, query_filter)
        except Exception as e:
            logger.error("Vector store search failed: %s", e, exc_info=True)
            return []

        results = sorted(results, key=lambda r: r.score, reverse=True)[:limit]
        logger.info(
            "Retrieved %d chunks (limit=%d, filter=%s)",
            len(results),
            limit,
            query_filter.to_dict() if query_filter else "none",
        )
        return results

    async def query_metadata(self, query_filter: Filter | None, limit: int = 100) -> list[SearchResult]:
        """Pure metadata lookup; results carry score 1.0."""
        try:
            return await asyncio.to_thread(self.store.get, query_filter, limit)
        except Exception as e:
            logger.error("Metadata query failed: %s", e, exc_info=True)
            return []

    async def available_sources(self) -> list[str]:
        """Names of configured plugins that take part in semantic search."""
        if self.registry is None:
            return []
        configured = await self.registry.get_configured_plugins()
        return [p.name for p in configured if p.capabilities.supports_semantic_search]
