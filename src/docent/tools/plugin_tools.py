"""
Plugin tool generation

Turns each plugin's ``ToolDefinition`` list into LangChain
``StructuredTool`` objects. Arguments are validated by a pydantic model
generated from the tool parameters; execution goes through the registry so
custom-execution tools reach the plugin's executor.
"""

from __future__ import annotations

import json
import keyword
import logging
from typing import Any, Optional

from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel, Field, create_model

from ..errors import UnknownToolError
from ..sources.base import DataSourcePlugin, ToolDefinition, ToolParameter
from ..sources.registry import SourceRegistry

logger = logging.getLogger(__name__)

_PARAM_TYPES: dict[str, Any] = {
    "string": str,
    "number": float,
    "boolean": bool,
    "array": list[str],
}


def _field_name(param: ToolParameter) -> str:
    if not param.name.isidentifier() or keyword.iskeyword(param.name):
        raise ValueError(f"Tool parameter name {param.name!r} is not a valid identifier")
    return param.name


def build_args_schema(tool: ToolDefinition) -> type[BaseModel]:
    fields: dict[str, Any] = {}
    for param in tool.parameters:
        annotation = _PARAM_TYPES.get(param.type, Any)
        if param.required:
            fields[_field_name(param)] = (
                annotation,
                Field(..., description=param.description),
            )
        else:
            fields[_field_name(param)] = (
                Optional[annotation],
                Field(default=None, description=param.description),
            )
    model_name = "".join(part.capitalize() for part in tool.name.split("_")) + "Input"
    return create_model(model_name, **fields)


def _coerce_numbers(tool: ToolDefinition, params: dict[str, Any]) -> dict[str, Any]:
    # Whole-number floats (limits, ratings) go back to int
    for param in tool.parameters:
        value = params.get(param.name)
        if param.type == "number" and isinstance(value, float) and value.is_integer():
            params[param.name] = int(value)
    return params


def _make_tool(
    registry: SourceRegistry,
    plugin: DataSourcePlugin,
    tool: ToolDefinition,
    original_query: str | None,
    user_id: str | None,
) -> StructuredTool:
    args_schema = build_args_schema(tool)

    async def execute(**kwargs: Any) -> str:
        params = _coerce_numbers(tool, {k: v for k, v in kwargs.items() if v is not None})
        if tool.has_custom_execution and user_id is not None:
            params["userId"] = user_id
        try:
            return await registry.execute_tool(plugin.name, tool.name, params, original_query)
        except UnknownToolError:
            raise
        except Exception as e:
            logger.error("Tool %s on %s failed: %s", tool.name, plugin.name, e, exc_info=True)
            return json.dumps(
                {
                    "success": False,
                    "error": str(e) or "Unknown error occurred",
                    "message": "Failed to execute metadata query.",
                },
                ensure_ascii=False,
            )

    return StructuredTool.from_function(
        coroutine=execute,
        name=tool.name,
        description=tool.description,
        args_schema=args_schema,
    )


def generate_tools_for_plugin(
    registry: SourceRegistry,
    plugin: DataSourcePlugin,
    original_query: str | None = None,
    user_id: str | None = None,
) -> list[BaseTool]:
    return [
        _make_tool(registry, plugin, tool, original_query, user_id)
        for tool in plugin.get_available_tools()
    ]


def generate_tools_from_registry(
    registry: SourceRegistry,
    original_query: str | None = None,
    user_id: str | None = None,
) -> list[BaseTool]:
    tools: list[BaseTool] = []
    for plugin in registry.get_all():
        tools.extend(generate_tools_for_plugin(registry, plugin, original_query, user_id))
    return tools


async def generate_tools_for_configured_plugins(
    registry: SourceRegistry,
    original_query: str | None = None,
    user_id: str | None = None,
) -> list[BaseTool]:
    tools: list[BaseTool] = []
    for plugin in await registry.get_configured_plugins():
        tools.extend(generate_tools_for_plugin(registry, plugin, original_query, user_id))
    logger.info("Generated %d plugin tools for configured sources", len(tools))
    return tools
