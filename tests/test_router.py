"""
Tests for keyword-based tool routing.
"""

from types import SimpleNamespace

import pytest

from docent.tools import ToolRoutingResult, filter_tools_by_routing, route_tool_selection

TOOL_NAMES = (
    "search_goodreads_by_rating",
    "search_files_by_type",
    "get_upcoming_events",
    "search_calendar_by_date",
    "search_calendar_by_attendee",
    "create_reminder",
    "search_for_more_context",
)


@pytest.fixture
def tools():
    return [SimpleNamespace(name=name) for name in TOOL_NAMES]


def _names(tools):
    return [t.name for t in tools]


class TestRouteToolSelection:
    def test_current_calendar_query(self):
        routing = route_tool_selection("What's on my calendar today?")
        assert routing.categories == ["calendar"]
        assert routing.suggested_tools == ["get_upcoming_events"]

    def test_counting_historical_calendar(self):
        routing = route_tool_selection("how many calendar events last month")
        assert routing.categories == ["counting", "calendar_historical"]
        assert routing.suggested_tools == ["search_calendar_by_date"]

    def test_reminders(self):
        routing = route_tool_selection("Remind me to water the plants")
        assert routing.categories == ["reminders"]
        assert routing.suggested_tools == ["create_reminder", "list_reminders", "cancel_reminder"]

    def test_attendee_search(self):
        routing = route_tool_selection("meetings with Kim")
        assert routing.categories == ["metadata_search"]
        assert "search_calendar_by_attendee" in routing.suggested_tools

    def test_general_query_gets_everything(self):
        routing = route_tool_selection("tell me about my favourite books")
        assert routing.categories == ["all"]
        assert routing.suggested_tools == []

    def test_explain(self):
        routing = ToolRoutingResult(["counting"], "detected counting query")
        assert routing.explain(3) == "Selected 3 tools for categories: counting (detected counting query)"


class TestFilterToolsByRouting:
    def test_all_keeps_every_tool(self, tools):
        selected = filter_tools_by_routing(tools, route_tool_selection("hello there"))
        assert _names(selected) == list(TOOL_NAMES)

    def test_suggested_tools_win(self, tools):
        selected = filter_tools_by_routing(tools, route_tool_selection("meetings with Kim"))
        assert _names(selected) == ["search_calendar_by_date", "search_calendar_by_attendee"]

    def test_counting_selects_search_tools(self, tools):
        selected = filter_tools_by_routing(tools, route_tool_selection("count my books"))
        assert _names(selected) == [
            "search_goodreads_by_rating",
            "search_files_by_type",
            "search_calendar_by_date",
            "search_calendar_by_attendee",
            "search_for_more_context",
        ]

    def test_empty_selection_falls_back_to_all(self, tools):
        routing = ToolRoutingResult(["notes"], "detected note-saving keywords")
        assert _names(filter_tools_by_routing(tools, routing)) == list(TOOL_NAMES)
