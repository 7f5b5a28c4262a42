"""
RAG Context Builder - context assembly with document expansion

Turns ranked search results into the context block handed to the chat model.
A document is included whole instead of chunk-by-chunk when it is small or
when a large share of its chunks was retrieved anyway.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Iterable

from .query_router import QueryRoute
from .types import SearchResult

logger = logging.getLogger(__name__)

ContentReader = Callable[[str], Awaitable[str]]

DEFAULT_VIRTUAL_SOURCES = ("goodreads", "paperless", "google-calendar", "email")


@dataclass
class RetrievedContext:
    text: str
    parts: list[str] = field(default_factory=list)
    expanded_files: list[str] = field(default_factory=list)
    results: list[SearchResult] = field(default_factory=list)
    route: QueryRoute | None = None


class FileContentReader:
    """
    Reads full documents from local disk in a worker thread.

    Paths outside ``allowed_roots`` (when given) are refused.
    """

    def __init__(self, allowed_roots: Iterable[str | Path] | None = None, max_chars: int | None = None):
        self.allowed_roots = [Path(root).resolve() for root in allowed_roots or []]
        self.max_chars = max_chars

    def _read(self, file_path: str) -> str:
        path = Path(file_path).resolve()
        if self.allowed_roots and not any(path.is_relative_to(root) for root in self.allowed_roots):
            raise PermissionError(f"{file_path} is outside the allowed document roots")
        text = path.read_text(encoding="utf-8", errors="replace")
        if self.max_chars is not None and len(text) > self.max_chars:
            text = text[: self.max_chars] + "\n... (truncated)"
        return text

    async def __call__(self, file_path: str) -> str:
        return await asyncio.to_thread(self._read, file_path)


def format_chunk(result: SearchResult) -> str:
    return f"Document: {result.file_name}\nContent: {result.content}"


def format_full_document(result: SearchResult, content: str) -> str:
    return f"Document: {result.file_name}\n(Full Content)\n{content}"


class RAGContextBuilder:
    """
    Builds the chat context from ranked search results.

    Usage:
        builder = RAGContextBuilder(small_file_max_chunks=5, coverage_threshold=0.3)
        context = await builder.build_context(results, FileContentReader(["/data/docs"]))
        prompt = f"Context:\\n{context.text}"
    """

    def __init__(
        self,
        small_file_max_chunks: int = 5,
        coverage_threshold: float = 0.3,
        default_total_chunks: int = 100,
        virtual_sources: Iterable[str] = DEFAULT_VIRTUAL_SOURCES,
    ):
        """
        Args:
            small_file_max_chunks: Files with at most this many chunks are expanded
            coverage_threshold: Expand when retrieved/total chunks exceeds this
            default_total_chunks: Assumed size when a chunk lacks ``totalChunks``
            virtual_sources: Sources whose chunks have no backing file
        """
        self.small_file_max_chunks = small_file_max_chunks
        self.coverage_threshold = coverage_threshold
        self.default_total_chunks = default_total_chunks
        self.virtual_sources = frozenset(virtual_sources)

    def should_expand(self, result: SearchResult, hits_in_file: int) -> bool:
        if result.source in self.virtual_sources:
            return False
        total = result.total_chunks or self.default_total_chunks
        return total <= self.small_file_max_chunks or hits_in_file / total > self.coverage_threshold

    async def build_context(
        self,
        results: list[SearchResult],
        content_reader: ContentReader | None = None,
    ) -> RetrievedContext:
        """
        Assemble the context block in rank order.

        Each file is expanded at most once. When the full document cannot be
        read, its chunks are used individually instead.
        """
        hits: dict[str, int] = {}
        for result in results:
            if result.file_path:
                hits[result.file_path] = hits.get(result.file_path, 0) + 1

        parts: list[str] = []
        expanded: list[str] = []
        decided: dict[str, bool] = {}

        for result in results:
            file_path = result.file_path
            if not file_path:
                parts.append(format_chunk(result))
                continue

            if file_path not in decided:
                decided[file_path] = False
                if content_reader is not None and self.should_expand(result, hits[file_path]):
                    try:
                        full_content = await content_reader(file_path)
                    except Exception as e:
                        logger.warning(
                            "Failed to read full file %s, falling back to chunks: %s", file_path, e
                        )
                    else:
                        decided[file_path] = True
                        expanded.append(file_path)
                        parts.append(format_full_document(result, full_content))
                        continue

            if decided[file_path]:
                continue
            parts.append(format_chunk(result))

        if expanded:
            logger.info("Expanded %d document(s) to full content", len(expanded))

        return RetrievedContext(
            text="\n\n".join(parts),
            parts=parts,
            expanded_files=expanded,
            results=list(results),
        )
