from __future__ import annotations

from typing import Any

from ...memory.vector_store import VectorStore
from ...rag.filters import FilterBuilder
from ...rag.post_filters import filter_by_delimited_terms
from ...rag.types import SearchResult
from ..base import (
    DataSourceCapabilities,
    MetadataField,
    Scanner,
    ToolDefinition,
    ToolParameter,
)
from .common import StoreBackedPlugin, positive_limit

_LIMIT_PARAM = ToolParameter("limit", "number", False, "Maximum number of results (default: 500)")


class PaperlessPlugin(StoreBackedPlugin):
    """
    Documents indexed from a Paperless-ngx instance.

    Tags are stored pipe-delimited (``"Tax|Receipts"``) and matched with a
    substring post-filter after the store query.
    """

    name = "paperless"
    display_name = "Paperless-ngx"
    capabilities = DataSourceCapabilities(
        supports_metadata_query=True,
        supports_semantic_search=True,
        supports_scanning=True,
        requires_authentication=True,
    )

    def __init__(
        self,
        store: VectorStore,
        url: str | None = None,
        api_token: str | None = None,
        scanner: Scanner | None = None,
    ) -> None:
        super().__init__(store, scanner=scanner)
        self.url = url
        self.api_token = api_token

    def get_metadata_schema(self) -> list[MetadataField]:
        return [
            MetadataField("documentId", "Document ID", "number", True, True, "Paperless document ID"),
            MetadataField("tags", "Tags", "array", True, True, "Document tags (pipe-separated in storage)"),
            MetadataField("correspondent", "Correspondent", "string", True, True, "Document correspondent/sender"),
            MetadataField("documentDate", "Document Date", "date", True, True, "Date of the document"),
            MetadataField("addedDate", "Added Date", "date", True, True, "Date document was added to Paperless"),
            MetadataField("modifiedDate", "Modified Date", "date", True, True, "Date document was last modified"),
        ]

    async def query_by_metadata(self, params: dict[str, Any]) -> list[SearchResult]:
        builder = FilterBuilder().source(self.name)

        if params.get("documentId") is not None:
            builder.equals("documentId", params["documentId"])
        if params.get("correspondent"):
            builder.equals("correspondent", params["correspondent"])

        # startDate/endDate are the tool-facing names for the document date
        builder.date_range(
            "documentDate",
            params.get("documentStartDate") or params.get("startDate"),
            params.get("documentEndDate") or params.get("endDate"),
        )
        builder.date_range("addedDate", params.get("addedStartDate"), params.get("addedEndDate"))

        results = await self._fetch(builder.build(), positive_limit(params, 500))

        tags = params.get("tags")
        if isinstance(tags, str):
            tags = [tags]
        if tags:
            results = filter_by_delimited_terms(results, "tags", tags)
        return results

    def get_available_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="search_paperless_by_tags",
                description=(
                    "Search Paperless documents by tags. Use this when the user asks about "
                    "documents with specific tags or categories."
                ),
                parameters=(
                    ToolParameter("tags", "array", True, "Array of tag names to search for"),
                    _LIMIT_PARAM,
                ),
            ),
            ToolDefinition(
                name="search_paperless_by_correspondent",
                description=(
                    "Search Paperless documents by correspondent (sender). Use this when the "
                    "user asks about documents from a specific person or organization."
                ),
                parameters=(
                    ToolParameter("correspondent", "string", True, "Name of the correspondent to search for"),
                    _LIMIT_PARAM,
                ),
            ),
            ToolDefinition(
                name="search_paperless_by_date",
                description=(
                    "Search Paperless documents by document date. Use this to find or count "
                    "documents from a specific time period."
                ),
                parameters=(
                    ToolParameter("startDate", "string", False, "Start date in ISO format (YYYY-MM-DD)"),
                    ToolParameter("endDate", "string", False, "End date in ISO format (YYYY-MM-DD)"),
                    _LIMIT_PARAM,
                ),
            ),
        ]

    async def is_configured(self) -> bool:
        return bool(self.url and self.api_token)

    def describe_result(self, result: SearchResult) -> str:
        metadata = result.metadata
        suffix = ""
        if metadata.get("correspondent"):
            suffix += f" - From: {metadata['correspondent']}"
        if metadata.get("tags"):
            suffix += f" - Tags: {metadata['tags']}"
        if metadata.get("documentDate"):
            suffix += f" ({metadata['documentDate']})"
        return suffix
