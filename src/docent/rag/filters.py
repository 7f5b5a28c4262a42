"""
Filter Builder - composable metadata filters

A filter is a small tree of plain data:
- MatchCondition: field equals value
- RangeCondition: numeric or ISO date bounds on a field
- Filter: ``must`` (AND), ``should`` (OR), ``must_not`` (NOT) lists whose
  entries are conditions or nested Filters

Trees are backend-neutral; ``filter_compilers`` turns them into a store's
query syntax. An empty filter is represented as ``None`` and means
"no restriction".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Union

NO_FILTER_VALUES = frozenset({"all", "none", ""})
SOURCE_FIELD = "source"
USER_ID_FIELD = "userId"


@dataclass(frozen=True)
class MatchCondition:
    key: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "match": {"value": self.value}}


@dataclass(frozen=True)
class RangeCondition:
    key: str
    gt: Any = None
    gte: Any = None
    lt: Any = None
    lte: Any = None

    def bounds(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in (("gt", self.gt), ("gte", self.gte), ("lt", self.lt), ("lte", self.lte))
            if value is not None
        }

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "range": self.bounds()}


Condition = Union[MatchCondition, RangeCondition, "Filter"]


@dataclass
class Filter:
    must: list[Condition] = field(default_factory=list)
    should: list[Condition] = field(default_factory=list)
    must_not: list[Condition] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.must or self.should or self.must_not)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.must:
            data["must"] = [c.to_dict() for c in self.must]
        if self.should:
            data["should"] = [c.to_dict() for c in self.should]
        if self.must_not:
            data["must_not"] = [c.to_dict() for c in self.must_not]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Filter:
        return cls(
            must=[_condition_from_dict(c) for c in data.get("must", [])],
            should=[_condition_from_dict(c) for c in data.get("should", [])],
            must_not=[_condition_from_dict(c) for c in data.get("must_not", [])],
        )


def _condition_from_dict(data: dict[str, Any]) -> Condition:
    if "key" in data and "match" in data:
        return MatchCondition(data["key"], data["match"].get("value"))
    if "key" in data and "range" in data:
        return RangeCondition(data["key"], **data["range"])
    return Filter.from_dict(data)


def to_iso_datetime(value: datetime | date | str) -> str:
    """
    Normalise a date bound to a canonical UTC ISO-8601 string
    (``YYYY-MM-DDTHH:MM:SS.mmmZ``).

    Raises:
        ValueError: if ``value`` is a string that is not an ISO date.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class FilterBuilder:
    """
    Fluent builder for metadata filters.

    Usage:
        query_filter = (
            FilterBuilder()
            .sources(["uploaded", "synced"])
            .greater_than_or_equal("userRating", 4)
            .build()
        )
    """

    def __init__(self) -> None:
        self._must: list[Condition] = []
        self._should: list[Condition] = []
        self._must_not: list[Condition] = []

    def equals(self, field_name: str, value: Any) -> FilterBuilder:
        self._must.append(MatchCondition(field_name, value))
        return self

    def source(self, source: str) -> FilterBuilder:
        return self.equals(SOURCE_FIELD, source)

    def sources(self, sources: Iterable[str]) -> FilterBuilder:
        """Restrict to any of ``sources``; an empty list adds nothing."""
        return self.in_(SOURCE_FIELD, sources)

    def user_id(self, user_id: str) -> FilterBuilder:
        return self.equals(USER_ID_FIELD, user_id)

    def in_(self, field_name: str, values: Iterable[Any]) -> FilterBuilder:
        """
        Match any of ``values``.

        The first OR group uses the top-level ``should`` list; later groups
        are nested under ``must`` so each group is ANDed with the others.
        """
        values = list(values)
        if not values:
            return self
        if len(values) == 1:
            return self.equals(field_name, values[0])
        group = [MatchCondition(field_name, v) for v in values]
        if self._should:
            self._must.append(Filter(should=group))
        else:
            self._should.extend(group)
        return self

    def greater_than(self, field_name: str, value: Any) -> FilterBuilder:
        self._must.append(RangeCondition(field_name, gt=value))
        return self

    def greater_than_or_equal(self, field_name: str, value: Any) -> FilterBuilder:
        self._must.append(RangeCondition(field_name, gte=value))
        return self

    def less_than(self, field_name: str, value: Any) -> FilterBuilder:
        self._must.append(RangeCondition(field_name, lt=value))
        return self

    def less_than_or_equal(self, field_name: str, value: Any) -> FilterBuilder:
        self._must.append(RangeCondition(field_name, lte=value))
        return self

    def range(self, field_name: str, min_value: Any = None, max_value: Any = None) -> FilterBuilder:
        """Inclusive range; a missing bound leaves that side open."""
        if min_value is None and max_value is None:
            return self
        self._must.append(RangeCondition(field_name, gte=min_value, lte=max_value))
        return self

    def date_range(
        self,
        field_name: str,
        start: datetime | date | str | None = None,
        end: datetime | date | str | None = None,
    ) -> FilterBuilder:
        return self.range(
            field_name,
            to_iso_datetime(start) if start is not None else None,
            to_iso_datetime(end) if end is not None else None,
        )

    def must(self, condition: Condition) -> FilterBuilder:
        self._must.append(condition)
        return self

    def should(self, condition: Condition) -> FilterBuilder:
        self._should.append(condition)
        return self

    def must_not(self, condition: Condition) -> FilterBuilder:
        self._must_not.append(condition)
        return self

    def build(self) -> Filter | None:
        if not (self._must or self._should or self._must_not):
            return None
        return Filter(
            must=list(self._must),
            should=list(self._should),
            must_not=list(self._must_not),
        )

    def reset(self) -> FilterBuilder:
        self._must.clear()
        self._should.clear()
        self._must_not.clear()
        return self


def create_filter_builder() -> FilterBuilder:
    return FilterBuilder()


def _source_condition(entry: str) -> Condition:
    if ":" in entry:
        source, sub_key = entry.split(":", 1)
        return Filter(must=[MatchCondition(SOURCE_FIELD, source), MatchCondition(USER_ID_FIELD, sub_key)])
    return MatchCondition(SOURCE_FIELD, entry)


def build_source_filter(source_filter: str | Iterable[str] | None) -> Filter | None:
    """
    Translate a user's source selection into a filter.

    ``"all"``, ``"none"``, empty or ``None`` select everything. Entries of the
    form ``"<source>:<subKey>"`` (e.g. ``"goodreads:42"``) restrict to that
    source *and* that user id. Several entries are OR'ed.
    """
    if source_filter is None:
        return None

    if isinstance(source_filter, str):
        if source_filter.strip().lower() in NO_FILTER_VALUES:
            return None
        condition = _source_condition(source_filter)
        if isinstance(condition, Filter):
            return condition
        return Filter(must=[condition])

    entries = [s for s in source_filter if s and s.strip()]
    if not entries or any(s.strip().lower() in NO_FILTER_VALUES for s in entries):
        return None

    conditions = [_source_condition(s) for s in entries]
    if len(conditions) == 1:
        only = conditions[0]
        if isinstance(only, Filter):
            return Filter(must=list(only.must))
        return Filter(must=[only])
    return Filter(should=conditions)
