"""
Source Registry

Keyed collection of source plugins, built once at start-up and passed to the
retrieval and tool layers. Provides:
- registration and lookup in registration order
- capability and configuration filters
- aggregate metadata/tool maps for an orchestrating agent or UI
- tool execution routing (custom executor vs. metadata query)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..errors import UnknownToolError, build_error_response
from .base import DataSourcePlugin, MetadataField, ToolDefinition, ToolExecutingPlugin
from .formatting import format_metadata_results

logger = logging.getLogger(__name__)


class SourceRegistry:
    """
    Registry of data source plugins.

    Usage:
        registry = SourceRegistry()
        registry.register(FilesPlugin(store, documents_folder="/data/docs"))

        configured = await registry.get_configured_plugins()
        text = await registry.execute_tool("files", "search_files_by_type", {"fileType": "pdf"})
    """

    def __init__(self, is_configured_timeout: float | None = 5.0) -> None:
        self._plugins: dict[str, DataSourcePlugin] = {}
        self.is_configured_timeout = is_configured_timeout

    def register(self, plugin: DataSourcePlugin) -> None:
        if plugin.name in self._plugins:
            logger.warning("Plugin %s is already registered. Overwriting.", plugin.name)
            # Re-registration keeps the original position
        self._plugins[plugin.name] = plugin
        logger.info("Registered data source plugin: %s", plugin.display_name)

    def get(self, name: str) -> DataSourcePlugin | None:
        return self._plugins.get(name)

    def get_all(self) -> list[DataSourcePlugin]:
        return list(self._plugins.values())

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def get_metadata_queryable_plugins(self) -> list[DataSourcePlugin]:
        return [p for p in self._plugins.values() if p.capabilities.supports_metadata_query]

    def get_semantic_search_plugins(self) -> list[DataSourcePlugin]:
        return [p for p in self._plugins.values() if p.capabilities.supports_semantic_search]

    async def _check_configured(self, plugin: DataSourcePlugin) -> bool:
        try:
            if self.is_configured_timeout is None:
                return bool(await plugin.is_configured())
            return bool(
                await asyncio.wait_for(plugin.is_configured(), timeout=self.is_configured_timeout)
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Configuration check for %s timed out after %.1fs",
                plugin.name,
                self.is_configured_timeout,
            )
            return False
        except Exception as e:
            logger.warning("Error checking if %s is configured: %s", plugin.name, e)
            return False

    async def get_configured_plugins(self) -> list[DataSourcePlugin]:
        """
        Return the plugins whose configuration check passes.

        Checks run concurrently; a check that raises or times out counts as
        "not configured" and never affects the others.
        """
        plugins = self.get_all()
        flags = await asyncio.gather(*(self._check_configured(p) for p in plugins))
        return [plugin for plugin, ok in zip(plugins, flags) if ok]

    def get_all_metadata_fields(self) -> dict[str, list[MetadataField]]:
        return {name: plugin.get_metadata_schema() for name, plugin in self._plugins.items()}

    def get_all_tools(self) -> dict[str, list[ToolDefinition]]:
        tools_map: dict[str, list[ToolDefinition]] = {}
        for name, plugin in self._plugins.items():
            tools = plugin.get_available_tools()
            if tools:
                tools_map[name] = tools
        return tools_map

    def find_tool(self, plugin_name: str, tool_name: str) -> ToolDefinition:
        """
        Raises:
            UnknownToolError: if the plugin or the tool is not registered.
        """
        plugin = self._plugins.get(plugin_name)
        if plugin is None:
            raise UnknownToolError(tool_name, plugin_name)
        for tool in plugin.get_available_tools():
            if tool.name == tool_name:
                return tool
        raise UnknownToolError(tool_name, plugin_name)

    async def execute_tool(
        self,
        plugin_name: str,
        tool_name: str,
        params: dict[str, Any],
        original_query: str | None = None,
    ) -> str:
        """
        Execute a declared tool and return its text result.

        Custom-execution tools go to the plugin's executor and never to
        ``query_by_metadata``; all other tools run a metadata query with the
        tool arguments.

        Raises:
            UnknownToolError: if the plugin or the tool is not registered.
        """
        tool = self.find_tool(plugin_name, tool_name)
        plugin = self._plugins[plugin_name]

        if tool.has_custom_execution:
            if not isinstance(plugin, ToolExecutingPlugin):
                logger.error(
                    "Tool %s on %s requires custom execution but the plugin has no executor",
                    tool_name,
                    plugin_name,
                )
                return build_error_response(
                    "tool_executor_missing",
                    f"Source '{plugin_name}' cannot execute tool '{tool_name}'.",
                    tool=tool_name,
                )
            return await plugin.execute_tool(tool_name, params, original_query)

        results = await plugin.query_by_metadata({**params, **dict(tool.preset_params)})
        return format_metadata_results(plugin, results)

    def is_registered_source(self, name: str) -> bool:
        return name in self._plugins
