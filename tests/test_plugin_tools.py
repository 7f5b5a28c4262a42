"""
Tests for LangChain tools generated from plugin tool definitions.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.tools import StructuredTool

from docent.errors import UnknownToolError
from docent.sources import SourceRegistry, ToolDefinition, ToolExecutingPlugin, ToolParameter
from docent.sources.plugins import CalendarPlugin, EmailPlugin, GoodreadsPlugin, MailAccount
from docent.tools import (
    build_args_schema,
    generate_tools_for_configured_plugins,
    generate_tools_for_plugin,
    generate_tools_from_registry,
)


class RogueExecutor(ToolExecutingPlugin):
    """Declares a custom tool but rejects every call."""

    name = "rogue"
    display_name = "Rogue"

    def get_metadata_schema(self):
        return []

    async def query_by_metadata(self, params):
        return []

    def get_available_tools(self):
        return [ToolDefinition("do_it", "d", has_custom_execution=True)]

    async def is_configured(self):
        return True

    async def execute_tool(self, tool_name, params, original_query=None):
        raise UnknownToolError(tool_name, self.name)


class TestArgsSchema:
    def test_required_and_optional_fields(self):
        tool = ToolDefinition(
            name="search_goodreads_by_author",
            description="d",
            parameters=(
                ToolParameter("author", "string", True, "Author"),
                ToolParameter("minRating", "number", False, "Min"),
                ToolParameter("tags", "array", False, "Tags"),
            ),
        )

        schema = build_args_schema(tool)

        assert schema.__name__ == "SearchGoodreadsByAuthorInput"
        assert schema.model_fields["author"].is_required()
        assert schema.model_fields["minRating"].default is None
        assert schema(author="x", tags=["a"]).tags == ["a"]

    def test_keyword_parameter_name_is_rejected(self):
        tool = ToolDefinition("t", "d", parameters=(ToolParameter("from", "string", False, "Sender"),))
        with pytest.raises(ValueError):
            build_args_schema(tool)


class TestGeneratedTools:
    @pytest.fixture
    def registry(self, store):
        registry = SourceRegistry()
        registry.register(GoodreadsPlugin(store))
        registry.register(CalendarPlugin(store))
        return registry

    def test_one_tool_per_definition(self, registry):
        tools = generate_tools_from_registry(registry)

        assert all(isinstance(t, StructuredTool) for t in tools)
        assert [t.name for t in tools] == [
            "search_goodreads_by_rating",
            "search_goodreads_by_date_read",
            "search_goodreads_by_author",
            "search_calendar_by_date",
            "search_calendar_by_attendee",
            "search_calendar_by_location",
            "get_upcoming_events",
        ]

    @pytest.mark.asyncio
    async def test_metadata_tool_returns_formatted_text(self, registry):
        tool = {t.name: t for t in generate_tools_from_registry(registry)}["search_goodreads_by_rating"]

        text = await tool.ainvoke({"minRating": 5})

        assert text.startswith("Found 1 matching results.")
        assert "Sea Stories" in text

    @pytest.mark.asyncio
    async def test_query_errors_become_json(self, registry):
        tool = {t.name: t for t in generate_tools_from_registry(registry)}["search_goodreads_by_date_read"]

        payload = json.loads(await tool.ainvoke({"startDate": "sometime last year"}))

        assert payload["success"] is False
        assert payload["message"] == "Failed to execute metadata query."

    @pytest.mark.asyncio
    async def test_unknown_tool_error_propagates(self):
        registry = SourceRegistry()
        registry.register(RogueExecutor())
        (tool,) = generate_tools_from_registry(registry)

        with pytest.raises(UnknownToolError):
            await tool.ainvoke({})

    @pytest.mark.asyncio
    async def test_custom_tools_receive_user_id(self):
        service = MagicMock()
        service.list_accounts = AsyncMock(return_value=[MailAccount("me@work.com")])
        service.list_unread = AsyncMock(return_value=[])
        plugin = EmailPlugin(service)
        registry = SourceRegistry()
        registry.register(plugin)

        tools = {t.name: t for t in generate_tools_for_plugin(registry, plugin, user_id="42")}
        text = await tools["list_unread_email"].ainvoke({"limit": 3})

        assert text == "No unread emails found."
        service.list_accounts.assert_awaited_once_with("42", None)
        service.list_unread.assert_awaited_once_with(MailAccount("me@work.com"), 3)

    @pytest.mark.asyncio
    async def test_only_configured_plugins(self, registry):
        tools = await generate_tools_for_configured_plugins(registry)
        assert {t.name for t in tools} == {
            "search_goodreads_by_rating",
            "search_goodreads_by_date_read",
            "search_goodreads_by_author",
        }
