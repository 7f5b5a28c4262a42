from __future__ import annotations

from typing import Any

from ...rag.filters import FilterBuilder
from ...rag.post_filters import filter_by_delimited_terms
from ...rag.types import SearchResult
from ..base import DataSourceCapabilities, MetadataField, ToolDefinition, ToolParameter
from .common import StoreBackedPlugin, positive_limit

_LIMIT_PARAM = ToolParameter(
    "limit",
    "number",
    False,
    "Maximum number of results to return (default: 500). Should capture all books in most cases.",
)


class GoodreadsPlugin(StoreBackedPlugin):
    """Reading history imported from per-user Goodreads feeds, one chunk per book."""

    name = "goodreads"
    display_name = "Goodreads Books"
    capabilities = DataSourceCapabilities(
        supports_metadata_query=True,
        supports_semantic_search=True,
        supports_scanning=True,
        # Feeds are public per-user RSS URLs
        requires_authentication=False,
    )

    def get_metadata_schema(self) -> list[MetadataField]:
        return [
            MetadataField("userRating", "User Rating", "number", True, True, "Rating given by the user (0-5 stars)"),
            MetadataField("dateRead", "Date Read", "date", True, True, "Most recent date the book was read"),
            MetadataField("readCount", "Read Count", "number", True, True, "Number of times the book has been read"),
            MetadataField("bookAuthor", "Author", "string", True, True, "Book author name"),
            MetadataField("bookTitle", "Title", "string", True, True, "Book title"),
            MetadataField("shelves", "Shelves", "array", True, True, "Goodreads shelves (pipe-separated in storage)"),
            MetadataField("userName", "User Name", "string", True, True, "Name of the Goodreads user"),
            MetadataField("userId", "User ID", "string", True, True, "Internal user ID"),
        ]

    async def query_by_metadata(self, params: dict[str, Any]) -> list[SearchResult]:
        builder = FilterBuilder().source(self.name)

        if params.get("userId"):
            builder.user_id(params["userId"])
        builder.range("userRating", params.get("minRating"), params.get("maxRating"))
        if params.get("author"):
            builder.equals("bookAuthor", params["author"])
        builder.date_range("dateRead", params.get("startDate"), params.get("endDate"))
        if params.get("minReadCount") is not None:
            builder.greater_than_or_equal("readCount", params["minReadCount"])

        results = await self._fetch(builder.build(), positive_limit(params, 500))
        if params.get("shelf"):
            results = filter_by_delimited_terms(results, "shelves", params["shelf"])
        return results

    def get_available_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="search_goodreads_by_rating",
                description=(
                    "Query the Goodreads database to get an ACCURATE count and list of books by "
                    "rating. ALWAYS use this tool when the user asks 'how many' or wants to count "
                    "books with a specific rating. This queries the database directly and returns "
                    "ALL matching books, not just the ones in the current context."
                ),
                parameters=(
                    ToolParameter(
                        "minRating", "number", False,
                        "Minimum rating (1-5 stars). Use minRating=5 to find 5-star books.",
                    ),
                    ToolParameter(
                        "maxRating", "number", False,
                        "Maximum rating (1-5 stars). Use maxRating=5 with minRating=5 to find exactly 5-star books.",
                    ),
                    ToolParameter("author", "string", False, "Filter by specific author name"),
                    _LIMIT_PARAM,
                ),
            ),
            ToolDefinition(
                name="search_goodreads_by_date_read",
                description=(
                    "Search for books from Goodreads by the date they were read. Use this to count "
                    "or find books read in a specific time period, or get reading history."
                ),
                parameters=(
                    ToolParameter("startDate", "string", False, "Start date in ISO format (YYYY-MM-DD)"),
                    ToolParameter("endDate", "string", False, "End date in ISO format (YYYY-MM-DD)"),
                    _LIMIT_PARAM,
                ),
            ),
            ToolDefinition(
                name="search_goodreads_by_author",
                description=(
                    "Search for books from Goodreads by author name. Use this to count or find "
                    "books by a specific author, optionally filtered by rating."
                ),
                parameters=(
                    ToolParameter("author", "string", True, "Author name to search for"),
                    ToolParameter("minRating", "number", False, "Minimum rating filter (1-5 stars)"),
                    _LIMIT_PARAM,
                ),
            ),
        ]

    async def is_configured(self) -> bool:
        return True

    def describe_title(self, result: SearchResult) -> str:
        author = result.metadata.get("bookAuthor")
        return f"{result.file_name} by {author}" if author else result.file_name

    def describe_result(self, result: SearchResult) -> str:
        metadata = result.metadata
        suffix = ""
        if metadata.get("userRating"):
            suffix += f" - Rating: {metadata['userRating']}/5"
        if metadata.get("bookAuthor"):
            suffix += f" by {metadata['bookAuthor']}"
        if metadata.get("dateRead"):
            suffix += f" (read {metadata['dateRead']})"
        return suffix
