"""
Relevance Attribution - which retrieved chunks did the answer use?

After a response is generated, each source chunk is compared with the
response by embedding similarity. A source counts as referenced when its
similarity clears an adaptive threshold (``max(floor, mean + k * stddev)``)
and it ranks inside the top fraction of sources. The best source is always
referenced. Any embedding failure marks every source as unreferenced.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Sequence

import numpy as np
from langchain_core.embeddings import Embeddings

from ..errors import EmbeddingError
from .types import SearchResult, SourceWithRelevance

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    ``dot(a, b) / (|a| * |b|)``.

    Raises:
        EmbeddingError: on a dimension mismatch or when the result is
            undefined (zero-norm or non-finite vectors).
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise EmbeddingError(f"Vectors must have the same length ({va.shape} != {vb.shape})")

    denominator = float(np.linalg.norm(va) * np.linalg.norm(vb))
    with np.errstate(invalid="ignore", divide="ignore"):
        similarity = float(np.dot(va, vb)) / denominator if denominator else math.nan
    if not math.isfinite(similarity):
        raise EmbeddingError("Cosine similarity is undefined for these vectors")
    return similarity


def _unreferenced(sources: list[SearchResult]) -> list[SourceWithRelevance]:
    return [SourceWithRelevance(result=s, relevance_score=0.0, is_referenced=False) for s in sources]


class RelevanceAnalyzer:
    """
    Annotates retrieved sources with relevance to a generated response.

    Usage:
        analyzer = RelevanceAnalyzer(embeddings)
        annotated = await analyzer.analyze_referenced_sources(answer, results)
        citations = [s for s in annotated if s.is_referenced]
    """

    def __init__(
        self,
        embeddings: Embeddings,
        min_threshold: float = 0.4,
        std_multiplier: float = 0.5,
        top_fraction: float = 0.4,
        max_concurrency: int = 8,
    ):
        self.embeddings = embeddings
        self.min_threshold = min_threshold
        self.std_multiplier = std_multiplier
        self.top_fraction = top_fraction
        self.max_concurrency = max(1, max_concurrency)

    async def _embed_chunks(self, texts: list[str]) -> list[list[float]]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def embed(text: str) -> list[float]:
            async with semaphore:
                return await self.embeddings.aembed_query(text)

        return list(await asyncio.gather(*(embed(t) for t in texts)))

    def mark_referenced(self, scored: list[SourceWithRelevance]) -> list[SourceWithRelevance]:
        """Sort by score and set ``is_referenced`` in place; returns the sorted list."""
        scored.sort(key=lambda s: s.relevance_score, reverse=True)
        if not scored:
            return scored

        scores = np.array([s.relevance_score for s in scored], dtype=float)
        avg = float(scores.mean())
        std_dev = float(scores.std())  # population
        threshold = max(self.min_threshold, avg + self.std_multiplier * std_dev)
        top_n = max(1, math.ceil(len(scored) * self.top_fraction))

        for rank, source in enumerate(scored):
            source.is_referenced = source.relevance_score >= threshold and rank < top_n

        if not any(s.is_referenced for s in scored):
            scored[0].is_referenced = True

        logger.debug(
            "Attribution: threshold=%.3f top_n=%d referenced=%d/%d",
            threshold,
            top_n,
            sum(s.is_referenced for s in scored),
            len(scored),
        )
        return scored

    async def analyze_referenced_sources(
        self,
        response: str,
        sources: list[SearchResult],
    ) -> list[SourceWithRelevance]:
        """
        Score every source against ``response``.

        Returns:
            Sources sorted by relevance (highest first) with ``is_referenced``
            set, or every source unreferenced with score 0 when the response
            is empty or embedding fails.
        """
        if not response or not response.strip() or not sources:
            return _unreferenced(sources)

        try:
            response_embedding = await self.embeddings.aembed_query(response)
            chunk_embeddings = await self._embed_chunks([s.content for s in sources])
            scored = [
                SourceWithRelevance(
                    result=source,
                    relevance_score=cosine_similarity(response_embedding, chunk_embedding),
                )
                for source, chunk_embedding in zip(sources, chunk_embeddings)
            ]
        except Exception as e:
            logger.error("Error analyzing sources: %s", e, exc_info=True)
            return _unreferenced(sources)

        return self.mark_referenced(scored)


async def analyze_referenced_sources(
    response: str,
    sources: list[SearchResult],
    embeddings: Embeddings,
) -> list[SourceWithRelevance]:
    return await RelevanceAnalyzer(embeddings).analyze_referenced_sources(response, sources)
