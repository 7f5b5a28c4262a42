"""
Query Router - fast path vs slow path

Scores a query with cheap text heuristics. Short, self-contained lookups
take the fast path: one plain search, no rephrasing or source analysis.
Complex, multi-part or follow-up questions take the slow path through the
smart retriever and iterative retrieval.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

SHORT_QUERY_WORDS = 8
LONG_QUERY_WORDS = 20

_DEFINITIONAL = re.compile(r"^(what is|who is|when is|where is|define)", re.IGNORECASE)
# Pronouns and follow-up openers mean the query leans on earlier turns
_CONTEXT_DEPENDENT = re.compile(
    r"(it|this|that|these|those|they|them|he|she|his|her|their|what about|how about|and )",
    re.IGNORECASE,
)
_COUNTING = re.compile(r"\b(how many|count|total|number of)\b", re.IGNORECASE)
_LISTING = re.compile(r"^(list|show me|give me|find)\s", re.IGNORECASE)
_COMPLEX = re.compile(r"\b(why|how|explain|analyze|compare|discuss|elaborate)\b", re.IGNORECASE)
_CLAUSE_MARKERS = (" and ", " or ", "; ")


@dataclass
class QueryRoute:
    path: Literal["fast", "slow"]
    reason: str
    skip_rephrasing: bool
    skip_iterative_retrieval: bool
    skip_source_analysis: bool
    use_two_stage_search: bool

    @property
    def is_fast(self) -> bool:
        return self.path == "fast"


def route_query(query: str, is_first_message: bool = True) -> QueryRoute:
    """
    Pick the retrieval path for ``query``.

    Args:
        query: The user's question
        is_first_message: False for follow-ups, where pronouns need history

    Returns:
        QueryRoute; ties go to the slow path
    """
    text = query.strip()
    word_count = len(text.split())

    is_short = word_count <= SHORT_QUERY_WORDS
    is_definitional = bool(_DEFINITIONAL.search(text))
    is_self_contained = not _CONTEXT_DEPENDENT.search(text)
    is_counting = bool(_COUNTING.search(text))
    is_list = bool(_LISTING.search(text))

    is_complex = bool(_COMPLEX.search(text))
    is_multi_part = "?" in text and len(text.split("?")) > 2
    has_multiple_clauses = any(marker in text for marker in _CLAUSE_MARKERS)
    is_long = word_count > LONG_QUERY_WORDS
    needs_context = not is_first_message and not is_self_contained

    fast_score = (
        3 * is_short
        + 2 * is_definitional
        + 2 * is_self_contained
        + 2 * is_counting
        + is_list
        + is_first_message
    )
    slow_score = (
        3 * is_complex
        + 3 * is_multi_part
        + 2 * has_multiple_clauses
        + 2 * is_long
        + 2 * needs_context
    )

    if fast_score > slow_score:
        route = QueryRoute(
            path="fast",
            reason=(
                f"Fast path: score {fast_score} vs {slow_score} (short={is_short}, "
                f"self-contained={is_self_contained}, definitional={is_definitional})"
            ),
            skip_rephrasing=True,
            skip_iterative_retrieval=True,
            skip_source_analysis=True,
            use_two_stage_search=False,
        )
    else:
        route = QueryRoute(
            path="slow",
            reason=(
                f"Slow path: score {fast_score} vs {slow_score} (complex={is_complex}, "
                f"multi-part={is_multi_part}, needs-context={needs_context})"
            ),
            skip_rephrasing=False,
            skip_iterative_retrieval=False,
            skip_source_analysis=False,
            use_two_stage_search=True,
        )

    logger.debug("Routed %r: %s", text[:80], route.reason)
    return route


def should_use_simple_search(route: QueryRoute) -> bool:
    return route.is_fast and not route.use_two_stage_search
