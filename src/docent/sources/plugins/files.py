from __future__ import annotations

import asyncio
import os
from typing import Any

from ...memory.vector_store import VectorStore
from ...rag.filters import FilterBuilder
from ...rag.post_filters import filter_by_substring
from ...rag.types import SearchResult
from ..base import (
    DataSourceCapabilities,
    MetadataField,
    Scanner,
    ToolDefinition,
    ToolParameter,
)
from .common import StoreBackedPlugin, positive_limit

FILE_SOURCES = ("uploaded", "synced")

_LIMIT_PARAM = ToolParameter(
    name="limit",
    type="number",
    required=False,
    description="Maximum number of results (default: 20)",
)


class FilesPlugin(StoreBackedPlugin):
    """Uploaded files and files synced from the documents folder."""

    name = "files"
    display_name = "Files"
    capabilities = DataSourceCapabilities(
        supports_metadata_query=True,
        supports_semantic_search=True,
        supports_scanning=True,
        requires_authentication=False,
    )

    def __init__(
        self,
        store: VectorStore,
        documents_folder: str | None = None,
        scanner: Scanner | None = None,
    ) -> None:
        super().__init__(store, scanner=scanner)
        self.documents_folder = documents_folder

    def get_metadata_schema(self) -> list[MetadataField]:
        return [
            MetadataField("fileType", "File Type", "string", True, True, "File extension (pdf, txt, md, etc.)"),
            MetadataField("filePath", "File Path", "string", True, False, "Full path to the file"),
            MetadataField("fileName", "File Name", "string", True, True, "Name of the file"),
            MetadataField("source", "Source", "string", True, True, "Either 'uploaded' or 'synced'"),
            MetadataField("userId", "User ID", "string", True, True, "User who uploaded the file"),
        ]

    async def query_by_metadata(self, params: dict[str, Any]) -> list[SearchResult]:
        limit = positive_limit(params, 20)
        builder = FilterBuilder()

        if params.get("source") in FILE_SOURCES:
            builder.source(params["source"])
        else:
            builder.sources(FILE_SOURCES)

        if params.get("userId"):
            builder.user_id(params["userId"])
        if params.get("fileType"):
            builder.equals("fileType", str(params["fileType"]).lower().lstrip("."))

        results = await self._fetch(builder.build(), limit)
        return filter_by_substring(results, "fileName", params.get("fileName"))

    def get_available_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="search_files_by_type",
                description=(
                    "Search for files by file type/extension. Use this when the user asks "
                    "about specific types of documents (e.g., 'show me all PDFs')."
                ),
                parameters=(
                    ToolParameter("fileType", "string", True, "File extension (pdf, txt, md, docx, etc.)"),
                    ToolParameter("source", "string", False, "Filter by source: 'uploaded' or 'synced'"),
                    _LIMIT_PARAM,
                ),
            ),
            ToolDefinition(
                name="search_uploaded_files",
                description=(
                    "Search only user-uploaded files. Use this when the user specifically "
                    "asks about files they uploaded."
                ),
                parameters=(
                    ToolParameter("fileType", "string", False, "Filter by file extension"),
                    _LIMIT_PARAM,
                ),
                preset_params=(("source", "uploaded"),),
            ),
        ]

    async def is_configured(self) -> bool:
        if not self.documents_folder:
            return False
        return await asyncio.to_thread(os.path.isdir, self.documents_folder)

    def describe_result(self, result: SearchResult) -> str:
        suffix = ""
        if result.metadata.get("fileType"):
            suffix += f" ({result.metadata['fileType']})"
        if result.source:
            suffix += f" - Source: {result.source}"
        return suffix
