"""
Filter compilers

Turns backend-neutral filter trees into something a store can execute:
- ``matches``: evaluates a filter against one metadata dict (in-memory store)
- ``to_chroma_where``: compiles to ChromaDB ``where`` syntax

ChromaDB can only range over numbers, so date bounds are converted to epoch
seconds; collections served by Chroma store date fields as epoch seconds.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..errors import FilterCompileError
from .filters import Condition, Filter, MatchCondition, RangeCondition

_RANGE_OPS = {"gt": "$gt", "gte": "$gte", "lt": "$lt", "lte": "$lte"}
_NEGATED_RANGE_OPS = {"gt": "$lte", "gte": "$lt", "lt": "$gte", "lte": "$gt"}


def _iso_to_epoch(text: str) -> float | None:
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def comparable_value(value: Any) -> float | None:
    """Map a numeric, numeric-string or ISO date value onto a float."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return _iso_to_epoch(value)
    return None


# ============================================================
# In-memory evaluation
# ============================================================


def _match_holds(condition: MatchCondition, metadata: dict[str, Any]) -> bool:
    actual = metadata.get(condition.key)
    if isinstance(actual, (list, tuple, set)):
        return condition.value in actual
    return actual == condition.value


def _range_holds(condition: RangeCondition, metadata: dict[str, Any]) -> bool:
    actual = comparable_value(metadata.get(condition.key))
    if actual is None:
        return False
    for op, bound in condition.bounds().items():
        limit = comparable_value(bound)
        if limit is None:
            return False
        if op == "gt" and not actual > limit:
            return False
        if op == "gte" and not actual >= limit:
            return False
        if op == "lt" and not actual < limit:
            return False
        if op == "lte" and not actual <= limit:
            return False
    return True


def _condition_holds(condition: Condition, metadata: dict[str, Any]) -> bool:
    if isinstance(condition, MatchCondition):
        return _match_holds(condition, metadata)
    if isinstance(condition, RangeCondition):
        return _range_holds(condition, metadata)
    return matches(condition, metadata)


def matches(query_filter: Filter | None, metadata: dict[str, Any]) -> bool:
    """Return True when ``metadata`` satisfies ``query_filter`` (None matches everything)."""
    if query_filter is None:
        return True
    if not all(_condition_holds(c, metadata) for c in query_filter.must):
        return False
    if query_filter.should and not any(_condition_holds(c, metadata) for c in query_filter.should):
        return False
    return not any(_condition_holds(c, metadata) for c in query_filter.must_not)


# ============================================================
# ChromaDB
# ============================================================


def _combine(op: str, parts: list[dict[str, Any] | None]) -> dict[str, Any] | None:
    kept = [p for p in parts if p]
    if not kept:
        return None
    if len(kept) == 1:
        return kept[0]
    return {op: kept}


def _chroma_scalar(value: Any, key: str) -> Any:
    if isinstance(value, (str, int, float, bool)):
        return value
    raise FilterCompileError(f"Cannot match '{key}' against {type(value).__name__} in ChromaDB")


def _chroma_bound(value: Any, key: str) -> float:
    number = comparable_value(value)
    if number is None:
        raise FilterCompileError(f"Range bound {value!r} on '{key}' is not numeric or an ISO date")
    return number


def _compile_match(condition: MatchCondition, negate: bool) -> dict[str, Any]:
    op = "$ne" if negate else "$eq"
    return {condition.key: {op: _chroma_scalar(condition.value, condition.key)}}


def _compile_range(condition: RangeCondition, negate: bool) -> dict[str, Any] | None:
    ops = _NEGATED_RANGE_OPS if negate else _RANGE_OPS
    parts: list[dict[str, Any] | None] = [
        {condition.key: {ops[name]: _chroma_bound(bound, condition.key)}}
        for name, bound in condition.bounds().items()
    ]
    # NOT (a AND b) == (NOT a) OR (NOT b)
    return _combine("$or" if negate else "$and", parts)


def _compile_condition(condition: Condition, negate: bool) -> dict[str, Any] | None:
    if isinstance(condition, MatchCondition):
        return _compile_match(condition, negate)
    if isinstance(condition, RangeCondition):
        return _compile_range(condition, negate)
    return _compile_filter(condition, negate)


def _compile_filter(query_filter: Filter, negate: bool) -> dict[str, Any] | None:
    if query_filter.is_empty():
        if negate:
            raise FilterCompileError("Cannot negate an empty filter")
        return None

    if not negate:
        parts = [_compile_condition(c, False) for c in query_filter.must]
        parts.append(_combine("$or", [_compile_condition(c, False) for c in query_filter.should]))
        parts.extend(_compile_condition(c, True) for c in query_filter.must_not)
        return _combine("$and", parts)

    parts = [_compile_condition(c, True) for c in query_filter.must]
    parts.append(_combine("$and", [_compile_condition(c, True) for c in query_filter.should]))
    parts.extend(_compile_condition(c, False) for c in query_filter.must_not)
    return _combine("$or", parts)


def to_chroma_where(query_filter: Filter | None) -> dict[str, Any] | None:
    """
    Compile a filter tree to a ChromaDB ``where`` clause.

    Returns:
        The clause, or None when the filter places no restriction.

    Raises:
        FilterCompileError: if the tree uses values ChromaDB cannot express.
    """
    if query_filter is None:
        return None
    return _compile_filter(query_filter, negate=False)
