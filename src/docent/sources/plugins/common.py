from __future__ import annotations

import asyncio
import logging
from typing import Any

from ...memory.vector_store import VectorStore
from ...rag.filters import Filter
from ...rag.types import SearchResult
from ..base import DataSourcePlugin, Scanner

logger = logging.getLogger(__name__)


def positive_limit(params: dict[str, Any], default: int) -> int:
    """Return ``params["limit"]`` when it is a positive number, else ``default``."""
    value = params.get("limit")
    if isinstance(value, bool):
        return default
    try:
        limit = int(value) if value is not None else 0
    except (TypeError, ValueError):
        return default
    return limit if limit > 0 else default


class StoreBackedPlugin(DataSourcePlugin):
    """Base for plugins whose chunks live in the shared chunk store."""

    def __init__(self, store: VectorStore, scanner: Scanner | None = None) -> None:
        super().__init__(scanner=scanner)
        self.store = store

    async def _fetch(self, query_filter: Filter | None, limit: int) -> list[SearchResult]:
        try:
            return await asyncio.to_thread(self.store.get, query_filter, limit)
        except Exception as e:
            logger.error("[%s] Error querying by metadata: %s", self.name, e, exc_info=True)
            return []
