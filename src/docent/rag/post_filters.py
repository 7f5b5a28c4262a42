"""
In-memory post-filters for "contains" semantics.

Stores match fields exactly; multi-valued fields such as tags or shelves are
kept as delimited strings (``"Tax|Receipts|2023"``). These helpers narrow
an already-filtered result list by substring, after the store query ran.
"""

from __future__ import annotations

from typing import Iterable

from .types import SearchResult


def _tokens(value: object, delimiter: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        raw = [str(v) for v in value]
    else:
        raw = str(value).split(delimiter)
    return [token.strip().lower() for token in raw if token.strip()]


def filter_by_delimited_terms(
    results: list[SearchResult],
    field: str,
    terms: str | Iterable[str],
    delimiter: str = "|",
) -> list[SearchResult]:
    """
    Keep results where any term is a substring of any stored token.

    Matching is case-insensitive. Results without the field are dropped. An
    empty term list leaves ``results`` unchanged.
    """
    if isinstance(terms, str):
        terms = [terms]
    wanted = [t.strip().lower() for t in terms if t and t.strip()]
    if not wanted:
        return results

    kept = []
    for result in results:
        tokens = _tokens(result.metadata.get(field), delimiter)
        if any(term in token for term in wanted for token in tokens):
            kept.append(result)
    return kept


def filter_by_substring(results: list[SearchResult], field: str, term: str | None) -> list[SearchResult]:
    """Single-valued variant: keep results whose field contains ``term``."""
    if not term:
        return results
    needle = term.lower()
    return [r for r in results if needle in str(r.metadata.get(field) or "").lower()]
