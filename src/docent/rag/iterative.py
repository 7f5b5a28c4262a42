"""
Iterative retrieval helpers

- ``should_retrieve_more``: cheap phrase check on a partial answer, then a
  JSON verdict from a fast chat model
- ``retrieve_additional_context``: fetch more chunks, dropping any whose
  content is already in the working context
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

from .types import SearchResult

logger = logging.getLogger(__name__)

UNCERTAINTY_PHRASES = (
    "i don't have",
    "i don't see",
    "i cannot find",
    "i'm not sure",
    "i don't know",
    "no information",
    "not enough information",
    "insufficient",
    "unable to find",
    "cannot determine",
    "more context needed",
    "need more details",
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

ANALYSIS_PROMPT = """Analyze this Q&A interaction and determine if retrieving more document chunks would help provide a better answer.

User Question: {query}

Current Response (partial): {partial}

Current chunks retrieved: {current}
Maximum allowed: {maximum}

Respond with ONLY a JSON object (no other text) in this exact format:
{{
  "shouldRetrieve": true/false,
  "reason": "brief explanation",
  "suggestedCount": number between 1-10
}}

Guidelines:
- Return shouldRetrieve: true ONLY if more document chunks would likely help
- Return shouldRetrieve: false if: the answer is already satisfactory, the question is unanswerable, or no relevant documents exist
- Keep reason brief (10 words or less)
- suggestedCount should be 3-5 for targeted info, 8-10 for broad context"""


class Searcher(Protocol):
    async def search(
        self,
        query: str,
        limit: int | None = None,
        source_filter: str | Iterable[str] | None = "all",
    ) -> list[SearchResult]: ...


@dataclass
class RetrievalDecision:
    should_retrieve: bool
    reason: str | None = None
    suggested_count: int | None = None


def has_uncertainty(text: str) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in UNCERTAINTY_PHRASES)


def dedupe_by_content(
    new_results: list[SearchResult],
    existing: Iterable[SearchResult],
) -> list[SearchResult]:
    """Drop results whose content exactly matches an existing chunk or an earlier new one."""
    seen = {r.content for r in existing}
    unique = []
    for result in new_results:
        if result.content in seen:
            continue
        seen.add(result.content)
        unique.append(result)
    return unique


async def should_retrieve_more(
    query: str,
    partial_response: str,
    current_chunk_count: int,
    max_chunks: int,
    chat_model: BaseChatModel | None,
) -> RetrievalDecision:
    if current_chunk_count >= max_chunks:
        return RetrievalDecision(False)
    if not has_uncertainty(partial_response):
        return RetrievalDecision(False)
    if chat_model is None:
        return RetrievalDecision(False, reason="no analysis model configured")

    logger.info("Response shows uncertainty, checking if more retrieval would help")
    prompt = ANALYSIS_PROMPT.format(
        query=query,
        partial=partial_response[:500],
        current=current_chunk_count,
        maximum=max_chunks,
    )
    try:
        message = await chat_model.ainvoke([HumanMessage(content=prompt)])
        content = message.content if isinstance(message.content, str) else ""
        match = _JSON_OBJECT.search(content.strip())
        if not match:
            logger.info("Could not parse analysis response, defaulting to no retrieval")
            return RetrievalDecision(False)
        verdict = json.loads(match.group(0))
    except Exception as e:
        logger.error("Error analyzing response: %s", e, exc_info=True)
        return RetrievalDecision(False)

    suggested = verdict.get("suggestedCount") or 5
    try:
        suggested = int(suggested)
    except (TypeError, ValueError):
        suggested = 5
    decision = RetrievalDecision(
        should_retrieve=verdict.get("shouldRetrieve") is True,
        reason=verdict.get("reason"),
        suggested_count=min(suggested, max_chunks - current_chunk_count),
    )
    logger.info("Retrieval analysis: %s", decision)
    return decision


async def retrieve_additional_context(
    searcher: Searcher,
    query: str,
    existing_results: list[SearchResult],
    current_sources: str | Iterable[str] | None,
    additional_count: int,
) -> list[SearchResult]:
    logger.info("Retrieving %d additional chunks", additional_count)
    results = await searcher.search(query, additional_count, current_sources or "all")
    fresh = dedupe_by_content(results, existing_results)
    logger.info("Retrieved %d new unique chunks", len(fresh))
    return fresh
