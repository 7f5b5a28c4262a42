"""
Smart Retrieval - query-aware source selection

- ``analyze_query`` classifies a query (book / document / general / mixed),
  estimates its complexity and suggests sources and a chunk count
- ``SmartRetriever`` uses the analysis, or a small probe search across all
  sources, to focus the real search on the sources that answer best
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from .types import SearchResult

if TYPE_CHECKING:
    from .engine import RetrievalEngine, SourceSelection

logger = logging.getLogger(__name__)

BOOK_KEYWORDS = (
    "book", "books", "read", "reading", "author", "novel", "story", "chapter",
    "goodreads", "rated", "rating", "review", "fiction", "non-fiction", "memoir", "biography",
)
DOCUMENT_KEYWORDS = (
    "document", "documents", "file", "files", "pdf", "paperless", "invoice", "receipt",
    "tax", "contract", "report", "form", "letter", "memo", "correspondence",
)
CHUNKS_BY_COMPLEXITY = {"simple": 5, "moderate": 10, "complex": 20}

PROBE_SIZE = 10
HIGH_CONFIDENCE = 0.7
TOP_ONE_MARGIN = 1.15
TOP_TWO_MARGIN = 1.2


@dataclass
class QueryAnalysis:
    query_type: Literal["book", "document", "general", "mixed"]
    complexity: Literal["simple", "moderate", "complex"]
    suggested_sources: list[str] | Literal["all"]
    suggested_chunk_count: int
    confidence: float
    keywords: list[str] = field(default_factory=list)


@dataclass
class SmartSearchResult:
    results: list[SearchResult]
    used_sources: list[str] | Literal["all"]
    chunk_count: int


def analyze_query(query: str) -> QueryAnalysis:
    lowered = query.lower()
    word_count = len(lowered.split())

    book_matches = [kw for kw in BOOK_KEYWORDS if kw in lowered]
    doc_matches = [kw for kw in DOCUMENT_KEYWORDS if kw in lowered]

    suggested: list[str] | Literal["all"] = "all"
    if book_matches and not doc_matches:
        query_type = "book"
        confidence = min(0.9, 0.6 + len(book_matches) * 0.15)
        suggested = ["goodreads"]
    elif doc_matches and not book_matches:
        query_type = "document"
        confidence = min(0.9, 0.6 + len(doc_matches) * 0.15)
        suggested = ["paperless", "uploaded", "synced"]
    elif book_matches and doc_matches:
        query_type = "mixed"
        confidence = 0.7
    else:
        query_type = "general"
        confidence = 0.5

    if word_count <= 5:
        complexity = "simple"
    elif word_count > 15 or any(marker in lowered for marker in ("?", "how", "why", "explain")):
        complexity = "complex"
    else:
        complexity = "moderate"

    analysis = QueryAnalysis(
        query_type=query_type,
        complexity=complexity,
        suggested_sources=suggested,
        suggested_chunk_count=CHUNKS_BY_COMPLEXITY[complexity],
        confidence=confidence,
        keywords=book_matches + doc_matches,
    )
    logger.debug(
        "Query analysis: type=%s complexity=%s sources=%s chunks=%d confidence=%.2f",
        analysis.query_type,
        analysis.complexity,
        analysis.suggested_sources,
        analysis.suggested_chunk_count,
        analysis.confidence,
    )
    return analysis


def _is_manual_selection(source_filter: SourceSelection) -> bool:
    if source_filter is None:
        return False
    if isinstance(source_filter, str):
        return source_filter.strip().lower() not in ("all", "none", "")
    return bool(list(source_filter))


def rank_sources(results: list[SearchResult]) -> list[tuple[str, float, int]]:
    """Average score per source, best first: ``(source, avg_score, count)``."""
    totals: dict[str, list[float]] = {}
    for result in results:
        totals.setdefault(result.source or "synced", []).append(result.score)
    ranked = [(source, sum(scores) / len(scores), len(scores)) for source, scores in totals.items()]
    ranked.sort(key=lambda item: item[1], reverse=True)
    return ranked


def choose_focus(ranked: list[tuple[str, float, int]]) -> list[str] | Literal["all"]:
    if len(ranked) >= 2:
        top, second = ranked[0], ranked[1]
        if top[1] > second[1] * TOP_ONE_MARGIN and top[2] >= 2:
            return [top[0]]
        if len(ranked) > 2 and top[1] > ranked[2][1] * TOP_TWO_MARGIN:
            return [top[0], second[0]]
    return "all"


class SmartRetriever:
    """
    Two-stage retrieval on top of a :class:`RetrievalEngine`.

    Usage:
        retriever = SmartRetriever(engine, max_chunks=35)
        outcome = await retriever.smart_search("which invoices mention tax?")
    """

    def __init__(self, engine: RetrievalEngine, max_chunks: int = 35):
        self.engine = engine
        self.max_chunks = max_chunks

    async def smart_search(
        self,
        query: str,
        source_filter: SourceSelection = "all",
        max_chunks: int | None = None,
    ) -> SmartSearchResult:
        if source_filter is not None and not isinstance(source_filter, str):
            source_filter = list(source_filter)
        cap = self.max_chunks if max_chunks is None else max_chunks
        if cap <= 0:
            return SmartSearchResult([], "all", 0)
        analysis = analyze_query(query)
        chunk_count = min(analysis.suggested_chunk_count, cap)

        if _is_manual_selection(source_filter):
            results = await self.engine.search(query, chunk_count, source_filter)
            used = [source_filter] if isinstance(source_filter, str) else list(source_filter)
            return SmartSearchResult(results, used, chunk_count)

        if analysis.confidence > HIGH_CONFIDENCE and analysis.suggested_sources != "all":
            logger.info(
                "High confidence (%.2f), using suggested sources: %s",
                analysis.confidence,
                analysis.suggested_sources,
            )
            results = await self.engine.search(query, chunk_count, analysis.suggested_sources)
            return SmartSearchResult(results, analysis.suggested_sources, chunk_count)

        probe = await self.engine.search(query, PROBE_SIZE, "all")
        if not probe:
            return SmartSearchResult([], "all", 0)

        ranked = rank_sources(probe)
        focus = choose_focus(ranked)
        logger.info(
            "Probe averages: %s -> focusing on %s",
            ", ".join(f"{s}={avg:.3f}({n})" for s, avg, n in ranked),
            focus,
        )
        results = await self.engine.search(query, chunk_count, focus)
        return SmartSearchResult(results, focus, chunk_count)

    async def search(
        self,
        query: str,
        limit: int | None = None,
        source_filter: SourceSelection = "all",
    ) -> list[SearchResult]:
        """Engine-compatible entry point; ``limit`` caps the chunk count."""
        outcome = await self.smart_search(query, source_filter, limit)
        return outcome.results
