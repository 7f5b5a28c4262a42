"""
Tests for query analysis and focused retrieval.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from helpers import make_result
from docent.rag import SmartRetriever, analyze_query
from docent.rag.smart_retrieval import choose_focus, rank_sources


class TestAnalyzeQuery:
    def test_book_query(self):
        analysis = analyze_query("how many books did I read by that author?")

        assert analysis.query_type == "book"
        assert analysis.suggested_sources == ["goodreads"]
        assert analysis.confidence == pytest.approx(0.9)
        assert analysis.complexity == "complex"
        assert analysis.suggested_chunk_count == 20

    def test_document_query(self):
        analysis = analyze_query("tax invoice")

        assert analysis.query_type == "document"
        assert analysis.suggested_sources == ["paperless", "uploaded", "synced"]
        assert analysis.complexity == "simple"
        assert analysis.suggested_chunk_count == 5

    def test_mixed_and_general(self):
        assert analyze_query("the book receipt").query_type == "mixed"
        general = analyze_query("plans for the long weekend with the family next month")
        assert general.query_type == "general"
        assert general.suggested_sources == "all"
        assert general.complexity == "moderate"


class TestFocus:
    def test_rank_sources_averages(self):
        ranked = rank_sources([
            make_result("a", 0.9, source="paperless"),
            make_result("b", 0.7, source="paperless"),
            make_result("c", 0.6),
        ])
        assert ranked == [("paperless", pytest.approx(0.8), 2), ("synced", 0.6, 1)]

    def test_single_dominant_source(self):
        assert choose_focus([("a", 0.9, 3), ("b", 0.7, 2)]) == ["a"]

    def test_dominant_source_needs_two_hits(self):
        assert choose_focus([("a", 0.9, 1), ("b", 0.7, 2)]) == "all"

    def test_top_two_against_third(self):
        assert choose_focus([("a", 0.8, 1), ("b", 0.75, 2), ("c", 0.6, 3)]) == ["a", "b"]

    def test_close_scores_keep_all(self):
        assert choose_focus([("a", 0.8, 3), ("b", 0.78, 3), ("c", 0.76, 3)]) == "all"


class TestSmartRetriever:
    @pytest.fixture
    def engine(self):
        engine = MagicMock()
        engine.search = AsyncMock(return_value=[make_result("x")])
        return engine

    @pytest.mark.asyncio
    async def test_manual_selection_is_respected(self, engine):
        outcome = await SmartRetriever(engine).smart_search("tax invoice", ("goodreads:42",))

        engine.search.assert_awaited_once_with("tax invoice", 5, ["goodreads:42"])
        assert outcome.used_sources == ["goodreads:42"]

    @pytest.mark.asyncio
    async def test_high_confidence_uses_suggested_sources(self, engine):
        outcome = await SmartRetriever(engine).smart_search("tax invoice")

        engine.search.assert_awaited_once_with("tax invoice", 5, ["paperless", "uploaded", "synced"])
        assert outcome.chunk_count == 5

    @pytest.mark.asyncio
    async def test_sample_search_then_focus(self, engine):
        sample = [
            make_result("p1", 0.9, source="paperless"),
            make_result("p2", 0.88, source="paperless"),
            make_result("g1", 0.5, source="goodreads"),
        ]
        engine.search = AsyncMock(side_effect=[sample, [make_result("final")]])

        outcome = await SmartRetriever(engine).smart_search("what happened at the lake")

        assert engine.search.await_args_list[0].args == ("what happened at the lake", 10, "all")
        assert engine.search.await_args_list[1].args == ("what happened at the lake", 5, ["paperless"])
        assert outcome.used_sources == ["paperless"]
        assert [r.content for r in outcome.results] == ["final"]

    @pytest.mark.asyncio
    async def test_empty_sample_search(self, engine):
        engine.search = AsyncMock(return_value=[])

        outcome = await SmartRetriever(engine).smart_search("what happened at the lake")

        assert outcome.results == []
        assert outcome.chunk_count == 0

    @pytest.mark.asyncio
    async def test_search_is_engine_compatible(self, engine):
        results = await SmartRetriever(engine, max_chunks=3).search("how does it work?", 2, ["uploaded"])

        engine.search.assert_awaited_once_with("how does it work?", 2, ["uploaded"])
        assert [r.content for r in results] == ["x"]

    @pytest.mark.asyncio
    async def test_zero_chunk_cap_searches_nothing(self, engine):
        outcome = await SmartRetriever(engine).smart_search("tax invoice", max_chunks=0)

        assert outcome.results == []
        engine.search.assert_not_awaited()
