"""
RAG package

Retrieval, context assembly and attribution:
- FilterBuilder / build_source_filter: metadata filter trees
- RetrievalEngine: embedding search with source filtering
- RAGContextBuilder: rank-ordered context with document expansion
- RelevanceAnalyzer: which sources a response actually used
- SmartRetriever: query-aware source focusing
- route_query: fast path / slow path choice per query
- ContextWindowManager: conversation history within a token budget
"""

from .attribution import RelevanceAnalyzer, analyze_referenced_sources, cosine_similarity
from .context_builder import FileContentReader, RAGContextBuilder, RetrievedContext
from .context_window import (
    ContextWindowManager,
    ContextWindowResult,
    apply_sliding_window,
    apply_smart_context,
    apply_token_window,
    calculate_message_tokens,
    estimate_token_count,
    manage_context,
)
from .engine import RetrievalEngine
from .filter_compilers import matches, to_chroma_where
from .filters import (
    Filter,
    FilterBuilder,
    MatchCondition,
    RangeCondition,
    build_source_filter,
    create_filter_builder,
)
from .iterative import (
    RetrievalDecision,
    dedupe_by_content,
    retrieve_additional_context,
    should_retrieve_more,
)
from .post_filters import filter_by_delimited_terms, filter_by_substring
from .query_router import QueryRoute, route_query, should_use_simple_search
from .smart_retrieval import QueryAnalysis, SmartRetriever, SmartSearchResult, analyze_query
from .types import SearchResult, SourceWithRelevance

__all__ = [
    "ContextWindowManager",
    "ContextWindowResult",
    "FileContentReader",
    "Filter",
    "FilterBuilder",
    "MatchCondition",
    "QueryAnalysis",
    "QueryRoute",
    "RAGContextBuilder",
    "RangeCondition",
    "RelevanceAnalyzer",
    "RetrievalDecision",
    "RetrievalEngine",
    "RetrievedContext",
    "SearchResult",
    "SmartRetriever",
    "SmartSearchResult",
    "SourceWithRelevance",
    "analyze_query",
    "analyze_referenced_sources",
    "apply_sliding_window",
    "apply_smart_context",
    "apply_token_window",
    "build_source_filter",
    "calculate_message_tokens",
    "cosine_similarity",
    "create_filter_builder",
    "dedupe_by_content",
    "estimate_token_count",
    "filter_by_delimited_terms",
    "filter_by_substring",
    "manage_context",
    "matches",
    "retrieve_additional_context",
    "route_query",
    "should_retrieve_more",
    "should_use_simple_search",
    "to_chroma_where",
]
