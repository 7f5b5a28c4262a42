"""
Agent tools

- SearchForMoreContextTool: budgeted mid-turn retrieval
- plugin tools generated from each source's tool definitions
- keyword routing that narrows the tool set per query
"""

from .plugin_tools import (
    build_args_schema,
    generate_tools_for_configured_plugins,
    generate_tools_for_plugin,
    generate_tools_from_registry,
)
from .retrieval_tool import (
    SearchForMoreContextInput,
    SearchForMoreContextTool,
    create_retrieval_tool,
    should_enable_iterative_retrieval,
)
from .router import ToolRoutingResult, filter_tools_by_routing, route_tool_selection

__all__ = [
    "SearchForMoreContextInput",
    "SearchForMoreContextTool",
    "ToolRoutingResult",
    "build_args_schema",
    "create_retrieval_tool",
    "filter_tools_by_routing",
    "generate_tools_for_configured_plugins",
    "generate_tools_for_plugin",
    "generate_tools_from_registry",
    "route_tool_selection",
    "should_enable_iterative_retrieval",
]
