from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from langchain_core.tools import BaseTool
from pydantic import BaseModel, Field, create_model

from ..rag.iterative import Searcher, dedupe_by_content
from ..rag.types import SearchResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNKS = 20
MIN_ADDITIONAL_CHUNKS = 1
MAX_ADDITIONAL_CHUNKS = 15
DEFAULT_ADDITIONAL_CHUNKS = 5

# Models known to handle function calling well
FUNCTION_CALLING_MODELS = ("gpt-4", "gpt-3.5", "claude", "gemini", "mistral", "command", "qwen")


def _chunks_description(minimum: int, maximum: int, default: int) -> str:
    return f"Number of additional chunks to retrieve ({minimum}-{maximum}, default: {default})"


class SearchForMoreContextInput(BaseModel):
    reason: str = Field(
        description="Brief explanation of why you need more context (e.g., 'Need more details about X')"
    )
    focus_area: str | None = Field(
        default=None,
        description="Optional: specific aspect or keywords to focus the search on",
    )
    additional_chunks: int = Field(
        default=DEFAULT_ADDITIONAL_CHUNKS,
        ge=MIN_ADDITIONAL_CHUNKS,
        le=MAX_ADDITIONAL_CHUNKS,
        description=_chunks_description(MIN_ADDITIONAL_CHUNKS, MAX_ADDITIONAL_CHUNKS, DEFAULT_ADDITIONAL_CHUNKS),
    )


def input_schema(minimum: int, maximum: int, default: int) -> type[SearchForMoreContextInput]:
    """Tool input model whose ``additional_chunks`` bounds come from settings."""
    if (minimum, maximum, default) == (MIN_ADDITIONAL_CHUNKS, MAX_ADDITIONAL_CHUNKS, DEFAULT_ADDITIONAL_CHUNKS):
        return SearchForMoreContextInput
    return create_model(
        "SearchForMoreContextInput",
        __base__=SearchForMoreContextInput,
        additional_chunks=(
            int,
            Field(
                default=default,
                ge=minimum,
                le=maximum,
                description=_chunks_description(minimum, maximum, default),
            ),
        ),
    )


def _source_label(result: SearchResult) -> str:
    return result.source or "synced"


def _failure(message: str) -> str:
    return json.dumps({"success": False, "message": message, "chunksRetrieved": 0}, ensure_ascii=False)


class SearchForMoreContextTool(BaseTool):
    """
    Lets the agent pull more chunks during one conversational turn.

    ``already_retrieved`` is the turn's chunk accumulator, shared with the
    caller: chunks returned by the tool are appended to it, so the
    ``max_chunks`` budget holds across any number of calls.
    """

    name: str = "search_for_more_context"
    description: str = (
        "Search for additional document chunks if you need more information to answer the "
        "user's question thoroughly. Use this when: 1) The current context is insufficient, "
        "2) You need more specific details, 3) The query is complex and requires broader context. "
        "Do NOT use this if you already have enough information to answer the question."
    )
    args_schema: type[BaseModel] = SearchForMoreContextInput

    searcher: Any = Field(description="Object with an async search(query, limit, source_filter)")
    current_query: str
    current_sources: Any = "all"
    # Typed Any so pydantic keeps the caller's list instead of copying it
    already_retrieved: Any = Field(default_factory=list)
    max_chunks: int = DEFAULT_MAX_CHUNKS
    min_additional_chunks: int = MIN_ADDITIONAL_CHUNKS
    max_additional_chunks: int = MAX_ADDITIONAL_CHUNKS
    default_additional_chunks: int = DEFAULT_ADDITIONAL_CHUNKS

    def _run(
        self,
        reason: str,
        focus_area: str | None = None,
        additional_chunks: int | None = None,
    ) -> str:
        return asyncio.run(self._arun(reason, focus_area, additional_chunks))

    async def _arun(
        self,
        reason: str,
        focus_area: str | None = None,
        additional_chunks: int | None = None,
    ) -> str:
        if additional_chunks is None:
            additional_chunks = self.default_additional_chunks
        logger.info(
            "Agent requesting more context: reason=%r focus=%r chunks=%d",
            reason,
            focus_area,
            additional_chunks,
        )
        already_count = len(self.already_retrieved)
        remaining = self.max_chunks - already_count
        if remaining <= 0:
            return _failure(
                f"Maximum chunk limit ({self.max_chunks}) already reached. Cannot retrieve more."
            )

        requested = min(max(additional_chunks, self.min_additional_chunks), self.max_additional_chunks)
        to_retrieve = min(requested, remaining)
        logger.info(
            "Retrieving %d more chunks (%d already retrieved, %d max)",
            to_retrieve,
            already_count,
            self.max_chunks,
        )

        try:
            results = await self.searcher.search(
                focus_area or self.current_query, to_retrieve, self.current_sources
            )
        except Exception as e:
            logger.error("Additional retrieval failed: %s", e, exc_info=True)
            results = []

        new_results = dedupe_by_content(results, self.already_retrieved)[:to_retrieve]
        logger.info("Found %d new unique chunks", len(new_results))
        if not new_results:
            return _failure(
                "No additional unique chunks found. You may need to work with the existing context."
            )

        self.already_retrieved.extend(new_results)

        new_context = "\n\n---\n\n".join(
            f"Document: {r.file_name}\nSource: {_source_label(r)}\nContent: {r.content}"
            for r in new_results
        )
        return json.dumps(
            {
                "success": True,
                "message": f"Retrieved {len(new_results)} additional chunks.",
                "chunksRetrieved": len(new_results),
                "newContext": new_context,
                "sources": [
                    {"fileName": r.file_name, "source": _source_label(r), "score": r.score}
                    for r in new_results
                ],
            },
            ensure_ascii=False,
        )


def create_retrieval_tool(
    searcher: Searcher,
    current_query: str,
    current_sources: Any = "all",
    already_retrieved: list[SearchResult] | None = None,
    max_chunks: int = DEFAULT_MAX_CHUNKS,
    min_additional_chunks: int = MIN_ADDITIONAL_CHUNKS,
    max_additional_chunks: int = MAX_ADDITIONAL_CHUNKS,
    default_additional_chunks: int = DEFAULT_ADDITIONAL_CHUNKS,
) -> SearchForMoreContextTool:
    if not min_additional_chunks <= default_additional_chunks <= max_additional_chunks:
        raise ValueError(
            f"default_additional_chunks {default_additional_chunks} is outside "
            f"[{min_additional_chunks}, {max_additional_chunks}]"
        )
    return SearchForMoreContextTool(
        searcher=searcher,
        current_query=current_query,
        current_sources=current_sources,
        already_retrieved=already_retrieved if already_retrieved is not None else [],
        max_chunks=max_chunks,
        min_additional_chunks=min_additional_chunks,
        max_additional_chunks=max_additional_chunks,
        default_additional_chunks=default_additional_chunks,
        args_schema=input_schema(min_additional_chunks, max_additional_chunks, default_additional_chunks),
    )


def should_enable_iterative_retrieval(model_name: str) -> bool:
    lowered = model_name.lower()
    return any(name in lowered for name in FUNCTION_CALLING_MODELS)
