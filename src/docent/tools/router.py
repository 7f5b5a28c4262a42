"""
Tool routing logic.

Narrows the agent's tool set to the tools a query is likely to need.
Categories are detected from keywords; anything unmatched gets every tool.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Literal, Sequence

from langchain_core.tools import BaseTool

logger = logging.getLogger(__name__)

ToolCategory = Literal[
    "calendar",
    "calendar_historical",
    "counting",
    "reminders",
    "notes",
    "metadata_search",
    "all",
]

_CALENDAR = re.compile(r"\b(calendar|schedule|meeting|appointment|event)\b")
_TODAY = re.compile(r"\b(today|today's|this morning|this afternoon|this evening)\b")
_UPCOMING = re.compile(r"\b(upcoming|next week|this week|tomorrow|later|soon)\b")
_HISTORICAL = re.compile(r"\b(last week|last month|previous|past|ago|yesterday)\b")
_COUNTING = re.compile(r"\b(how many|count|total|number of)\b")
_REMINDERS = re.compile(
    r"\b(remind me|reminder|set a reminder|schedule|create reminder|list reminders|cancel reminder)\b"
)
_NOTES = re.compile(r"\b(save (that|this|it)|remember (this|that)|create a note|take a note|save as note)\b")
_ATTENDEE = re.compile(r"\b(meetings? with|events? with|who attended)\b")
_LOCATION = re.compile(r"\b(events? at|meetings? at|at the location)\b")
_DATE_RANGE = re.compile(
    r"\b(between|from .* to|during|in (january|february|march|april|may|june|july|august"
    r"|september|october|november|december))\b"
)

REMINDER_TOOLS = ("create_reminder", "list_reminders", "cancel_reminder")
NOTE_TOOLS = ("save_assistant_response",)
CALENDAR_SEARCH_TOOLS = (
    "search_calendar_by_date",
    "search_calendar_by_attendee",
    "search_calendar_by_location",
)


@dataclass
class ToolRoutingResult:
    categories: list[ToolCategory]
    reasoning: str
    suggested_tools: list[str] = field(default_factory=list)

    def explain(self, tool_count: int) -> str:
        return (
            f"Selected {tool_count} tools for categories: "
            f"{', '.join(self.categories)} ({self.reasoning})"
        )


def route_tool_selection(query: str) -> ToolRoutingResult:
    lowered = query.lower()
    categories: list[ToolCategory] = []
    reasons: list[str] = []

    if _REMINDERS.search(lowered):
        categories.append("reminders")
        reasons.append("detected reminder-related keywords")

    if _NOTES.search(lowered):
        categories.append("notes")
        reasons.append("detected note-saving keywords")

    if _COUNTING.search(lowered):
        categories.append("counting")
        reasons.append("detected counting query")
        if _CALENDAR.search(lowered):
            categories.append("calendar_historical")
            reasons.append("counting calendar events")

    if _CALENDAR.search(lowered) or _TODAY.search(lowered) or _UPCOMING.search(lowered):
        if _HISTORICAL.search(lowered):
            if "calendar_historical" not in categories:
                categories.append("calendar_historical")
            reasons.append("detected historical calendar query")
        else:
            categories.append("calendar")
            reasons.append("detected current/upcoming calendar query")

    attendee = bool(_ATTENDEE.search(lowered))
    location = bool(_LOCATION.search(lowered))
    if attendee or location or _DATE_RANGE.search(lowered):
        categories.append("metadata_search")
        reasons.append("detected metadata-specific search criteria")

    if not categories:
        categories.append("all")
        reasons.append("general query, making all tools available")

    suggested: list[str] = []
    if "calendar" in categories:
        suggested.append("get_upcoming_events")
    if "calendar_historical" in categories or "metadata_search" in categories:
        suggested.append("search_calendar_by_date")
    if "reminders" in categories:
        suggested.extend(REMINDER_TOOLS)
    if "notes" in categories:
        suggested.extend(NOTE_TOOLS)
    if attendee:
        suggested.append("search_calendar_by_attendee")
    if location:
        suggested.append("search_calendar_by_location")

    return ToolRoutingResult(categories, ", ".join(reasons), suggested)


def _category_tool_names(category: ToolCategory, tools: Sequence[BaseTool]) -> set[str]:
    if category == "calendar":
        return {"get_upcoming_events"}
    if category == "calendar_historical":
        return {"search_calendar_by_date"}
    if category == "counting":
        return {t.name for t in tools if t.name.startswith("search_") or "_by_" in t.name}
    if category == "reminders":
        return set(REMINDER_TOOLS)
    if category == "notes":
        return set(NOTE_TOOLS)
    if category == "metadata_search":
        return set(CALENDAR_SEARCH_TOOLS)
    return set()


def filter_tools_by_routing(tools: Sequence[BaseTool], routing: ToolRoutingResult) -> list[BaseTool]:
    """
    Return the subset of ``tools`` relevant to ``routing``.

    Suggested tools win when any are present; otherwise the categories pick
    the tools. An empty selection falls back to every tool.
    """
    if "all" in routing.categories:
        return list(tools)

    if routing.suggested_tools:
        suggested = [t for t in tools if t.name in routing.suggested_tools]
        if suggested:
            logger.info("%s", routing.explain(len(suggested)))
            return suggested

    relevant: set[str] = set()
    for category in routing.categories:
        relevant |= _category_tool_names(category, tools)

    selected = [t for t in tools if t.name in relevant]
    if not selected:
        return list(tools)
    logger.info("%s", routing.explain(len(selected)))
    return selected
