"""
Source plugin contract

A source plugin describes one kind of data (uploaded files, a document
management system, a reading log, a calendar, a mailbox):
- its capabilities and metadata schema
- structured metadata queries against the shared store
- the tools it offers to the agent
- scanning, delegated to an ingestion job
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal

from ..rag.types import SearchResult

FieldType = Literal["string", "number", "date", "boolean", "array"]
ParameterType = Literal["string", "number", "boolean", "array"]


@dataclass(frozen=True)
class DataSourceCapabilities:
    supports_metadata_query: bool = False
    supports_semantic_search: bool = False
    supports_scanning: bool = False
    requires_authentication: bool = False


@dataclass(frozen=True)
class MetadataField:
    name: str
    display_name: str
    type: FieldType
    queryable: bool = False
    filterable: bool = False
    description: str | None = None


@dataclass(frozen=True)
class ToolParameter:
    name: str
    type: ParameterType
    required: bool
    description: str


@dataclass(frozen=True)
class ToolDefinition:
    """
    Declarative description of a tool.

    ``has_custom_execution`` tools are served by the plugin's
    ``execute_tool``; the rest are answered by ``query_by_metadata`` with the
    tool arguments as query parameters.
    """

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = ()
    has_custom_execution: bool = False
    # Query parameters fixed by the tool itself, applied over the agent's arguments
    preset_params: tuple[tuple[str, Any], ...] = ()


@dataclass
class ScanResult:
    indexed: int = 0
    deleted: int = 0
    updated: int | None = None
    errors: list[str] | None = None


@dataclass
class ScanOptions:
    user_id: str | None = None
    full_rescan: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


# Ingestion is external; plugins hand scanning to an injected coroutine
Scanner = Callable[[ScanOptions], Awaitable[ScanResult]]


class DataSourcePlugin(ABC):
    """
    Abstract base class for data source plugins.

    Subclasses set ``name``, ``display_name`` and ``capabilities`` as class
    attributes and implement the abstract methods.
    """

    name: str
    display_name: str
    capabilities: DataSourceCapabilities = DataSourceCapabilities()

    def __init__(self, scanner: Scanner | None = None) -> None:
        self._scanner = scanner

    @abstractmethod
    def get_metadata_schema(self) -> list[MetadataField]:
        """Return the metadata fields chunks from this source carry."""

    @abstractmethod
    async def query_by_metadata(self, params: dict[str, Any]) -> list[SearchResult]:
        """Run a structured (non-semantic) query; results carry score 1.0."""

    @abstractmethod
    def get_available_tools(self) -> list[ToolDefinition]:
        """Return the tools this plugin offers to the agent."""

    @abstractmethod
    async def is_configured(self) -> bool:
        """Return True when the plugin has what it needs to serve queries."""

    async def scan(self, options: ScanOptions | None = None) -> ScanResult:
        if self._scanner is None:
            return ScanResult(errors=[f"No scanner configured for source '{self.name}'"])
        return await self._scanner(options or ScanOptions())

    def describe_result(self, result: SearchResult) -> str:
        """Source-specific suffix for a result line shown to the agent."""
        return ""

    def describe_title(self, result: SearchResult) -> str:
        """Short label used when many results are listed compactly."""
        return result.file_name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class ToolExecutingPlugin(DataSourcePlugin):
    """A plugin that serves some of its tools itself (live APIs, mailboxes)."""

    @abstractmethod
    async def execute_tool(
        self,
        tool_name: str,
        params: dict[str, Any],
        original_query: str | None = None,
    ) -> str:
        """
        Execute one of this plugin's custom tools.

        Raises:
            UnknownToolError: if ``tool_name`` is not one of this plugin's tools.
        """
