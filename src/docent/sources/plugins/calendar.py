"""
Google Calendar source

Past events are indexed into the chunk store and answered by metadata
queries. ``get_upcoming_events`` goes to a live ``EventProvider`` instead,
and reads phrases such as "today", "tomorrow" or "this week" from the
user's original question to pick the date window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Protocol

from ...errors import UnknownToolError
from ...memory.vector_store import VectorStore
from ...rag.filters import FilterBuilder
from ...rag.post_filters import filter_by_substring
from ...rag.types import SearchResult
from ..base import (
    DataSourceCapabilities,
    MetadataField,
    Scanner,
    ToolDefinition,
    ToolExecutingPlugin,
    ToolParameter,
)
from .common import StoreBackedPlugin, positive_limit

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD_DAYS = 7


@dataclass
class CalendarEvent:
    title: str
    start: datetime
    end: datetime | None = None
    location: str = ""
    attendees: str = ""
    calendar_name: str | None = None
    html_link: str | None = None


class EventProvider(Protocol):
    """Live calendar API (OAuth and HTTP are the provider's concern)."""

    async def is_connected(self) -> bool: ...

    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]: ...


def _parse_day(value: Any) -> date | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def resolve_event_window(
    query: str | None,
    start_date: Any = None,
    end_date: Any = None,
    days: int | None = None,
    today: date | None = None,
) -> tuple[datetime, datetime]:
    """
    Pick the [start, end] window for an upcoming-events request.

    Phrases in the query win over explicit dates; weeks run Sunday to
    Saturday.
    """
    today = today or date.today()
    start = _parse_day(start_date)
    end = _parse_day(end_date)

    lowered = (query or "").lower()
    if "today" in lowered:
        start, end = today, today
    elif "this week" in lowered:
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        start, end = week_start, week_start + timedelta(days=6)
    elif "tomorrow" in lowered:
        start = end = today + timedelta(days=1)

    start = start or today
    end = end or start + timedelta(days=days or DEFAULT_LOOKAHEAD_DAYS)
    return datetime.combine(start, time.min), datetime.combine(end, time.max)


def format_events(events: list[CalendarEvent]) -> str:
    if not events:
        return "No upcoming events found in the specified time range."

    entries = []
    for index, event in enumerate(events, start=1):
        entry = f"{index}. **{event.title}**\n   When: {event.start:%a, %b %d, %Y %I:%M %p}"
        if event.end and event.end != event.start:
            entry += f" - {event.end:%I:%M %p}"
        if event.location:
            entry += f"\n   Where: {event.location}"
        if event.attendees:
            entry += f"\n   Who: {event.attendees}"
        if event.calendar_name:
            entry += f"\n   Calendar: {event.calendar_name}"
        entries.append(entry)

    plural = "s" if len(events) > 1 else ""
    return f"Found {len(events)} upcoming event{plural}:\n\n" + "\n\n".join(entries)


_LIMIT_PARAM = ToolParameter("limit", "number", False, "Maximum number of results to return (default: 500)")


class CalendarPlugin(StoreBackedPlugin, ToolExecutingPlugin):
    name = "google-calendar"
    display_name = "Google Calendar"
    capabilities = DataSourceCapabilities(
        supports_metadata_query=True,
        supports_semantic_search=True,
        supports_scanning=True,
        requires_authentication=True,
    )

    def __init__(
        self,
        store: VectorStore,
        event_provider: EventProvider | None = None,
        scanner: Scanner | None = None,
    ) -> None:
        super().__init__(store, scanner=scanner)
        self.event_provider = event_provider

    def get_metadata_schema(self) -> list[MetadataField]:
        return [
            MetadataField("eventTitle", "Event Title", "string", True, True, "Title of the calendar event"),
            MetadataField("eventStartTime", "Start Time", "date", True, True, "Event start time"),
            MetadataField("eventEndTime", "End Time", "date", True, True, "Event end time"),
            MetadataField("eventLocation", "Location", "string", True, True, "Event location"),
            MetadataField("eventAttendees", "Attendees", "string", True, True, "Event attendees (comma-separated)"),
            MetadataField("calendarName", "Calendar", "string", True, True, "Name of the calendar"),
        ]

    async def query_by_metadata(self, params: dict[str, Any]) -> list[SearchResult]:
        builder = FilterBuilder().source(self.name)
        builder.date_range("eventStartTime", params.get("startDate"), params.get("endDate"))

        results = await self._fetch(builder.build(), positive_limit(params, 500))
        for field, key in (
            ("eventLocation", "location"),
            ("eventAttendees", "attendee"),
            ("calendarName", "calendarName"),
            ("eventTitle", "eventTitle"),
        ):
            results = filter_by_substring(results, field, params.get(key))
        return results

    def get_available_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="search_calendar_by_date",
                description=(
                    "Search indexed calendar events by date range. Use this for historical "
                    "questions such as 'meetings last month'."
                ),
                parameters=(
                    ToolParameter("startDate", "string", False, "Start date in ISO format (YYYY-MM-DD)"),
                    ToolParameter("endDate", "string", False, "End date in ISO format (YYYY-MM-DD)"),
                    _LIMIT_PARAM,
                ),
            ),
            ToolDefinition(
                name="search_calendar_by_attendee",
                description="Search calendar events by attendee, optionally within a date range.",
                parameters=(
                    ToolParameter("attendee", "string", True, "Attendee name or email to search for"),
                    ToolParameter("startDate", "string", False, "Optional start date filter (YYYY-MM-DD)"),
                    ToolParameter("endDate", "string", False, "Optional end date filter (YYYY-MM-DD)"),
                    _LIMIT_PARAM,
                ),
            ),
            ToolDefinition(
                name="search_calendar_by_location",
                description="Search calendar events by location (partial match).",
                parameters=(
                    ToolParameter("location", "string", True, "Location to search for (partial match)"),
                    _LIMIT_PARAM,
                ),
            ),
            ToolDefinition(
                name="get_upcoming_events",
                description=(
                    "Get upcoming events from Google Calendar in real time (not the indexed "
                    "database). Detects 'today', 'tomorrow' and 'this week' in the question and "
                    "uses the next 7 days otherwise. Do NOT use this for historical queries or "
                    "for searching by attendee or location."
                ),
                parameters=(
                    ToolParameter(
                        "startDate", "string", False,
                        "Start date in ISO format (YYYY-MM-DD). Leave empty for automatic detection from query.",
                    ),
                    ToolParameter(
                        "endDate", "string", False,
                        "End date in ISO format (YYYY-MM-DD). Leave empty for automatic detection from query.",
                    ),
                    ToolParameter(
                        "days", "number", False,
                        "Number of days to look ahead (default: 7). Only used if dates aren't detected or specified.",
                    ),
                ),
                has_custom_execution=True,
            ),
        ]

    async def is_configured(self) -> bool:
        if self.event_provider is None:
            return False
        return await self.event_provider.is_connected()

    async def execute_tool(
        self,
        tool_name: str,
        params: dict[str, Any],
        original_query: str | None = None,
    ) -> str:
        if tool_name != "get_upcoming_events":
            raise UnknownToolError(tool_name, self.name)

        if self.event_provider is None:
            return "Error fetching upcoming events: calendar is not connected"

        try:
            start, end = resolve_event_window(
                original_query,
                params.get("startDate"),
                params.get("endDate"),
                params.get("days"),
            )
            logger.info("Fetching upcoming events from %s to %s", start, end)
            events = await self.event_provider.list_events(start, end)
        except Exception as e:
            logger.error("Error executing get_upcoming_events: %s", e, exc_info=True)
            return f"Error fetching upcoming events: {e}"
        return format_events(events)

    def describe_result(self, result: SearchResult) -> str:
        metadata = result.metadata
        suffix = ""
        if metadata.get("eventStartTime"):
            suffix += f" ({metadata['eventStartTime']})"
        if metadata.get("eventLocation"):
            suffix += f" - {metadata['eventLocation']}"
        return suffix
