"""Renders metadata query results as text for an LLM agent."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..rag.types import SearchResult
    from .base import DataSourcePlugin

# Above this many results only titles are listed, to save tokens
COMPACT_THRESHOLD = 20
MAX_COMPACT_TITLES = 50
CONTENT_PREVIEW_CHARS = 150


def format_metadata_results(plugin: DataSourcePlugin, results: list[SearchResult]) -> str:
    if not results:
        return "No results found matching the criteria. Count: 0"

    if len(results) > COMPACT_THRESHOLD:
        titles = "\n".join(
            f"{index}. {plugin.describe_title(result)}"
            for index, result in enumerate(results[:MAX_COMPACT_TITLES], start=1)
        )
        preview = ""
        if len(results) > MAX_COMPACT_TITLES:
            preview = f"\n\n(Showing first {MAX_COMPACT_TITLES} of {len(results)} results)"
        return (
            f"ACCURATE DATABASE COUNT: {len(results)} matching results.\n\n"
            f"Sample titles:{preview}\n{titles}"
        )

    entries = []
    for index, result in enumerate(results, start=1):
        content = result.content
        if len(content) > CONTENT_PREVIEW_CHARS:
            content = content[:CONTENT_PREVIEW_CHARS] + "..."
        entries.append(
            f"[{index}] {result.file_name}{plugin.describe_result(result)}\nContent: {content}"
        )
    return f"Found {len(results)} matching results.\n\n" + "\n\n".join(entries)
