import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from helpers import make_result
from docent.rag import dedupe_by_content, retrieve_additional_context, should_retrieve_more
from docent.rag.iterative import has_uncertainty

UNSURE = "I'm not sure, the documents don't say when the trip ended."


def test_has_uncertainty():
    assert has_uncertainty(UNSURE)
    assert has_uncertainty("There is NOT ENOUGH INFORMATION here")
    assert not has_uncertainty("The trip ended on May 3rd.")


def test_dedupe_by_content_covers_existing_and_batch():
    existing = [make_result("a")]
    new = [make_result("a"), make_result("b"), make_result("b"), make_result("c")]

    assert [r.content for r in dedupe_by_content(new, existing)] == ["b", "c"]


class TestShouldRetrieveMore:
    @pytest.mark.asyncio
    async def test_budget_exhausted(self):
        model = FakeListChatModel(responses=['{"shouldRetrieve": true}'])
        decision = await should_retrieve_more("q", UNSURE, 20, 20, model)
        assert decision.should_retrieve is False

    @pytest.mark.asyncio
    async def test_confident_answer_skips_model(self):
        decision = await should_retrieve_more("q", "The answer is 42.", 5, 20, None)
        assert decision.should_retrieve is False

    @pytest.mark.asyncio
    async def test_model_verdict_is_parsed_and_capped(self):
        model = FakeListChatModel(
            responses=['Here you go: {"shouldRetrieve": true, "reason": "missing dates", "suggestedCount": 8}']
        )

        decision = await should_retrieve_more("When did the trip end?", UNSURE, 15, 20, model)

        assert decision.should_retrieve is True
        assert decision.reason == "missing dates"
        assert decision.suggested_count == 5

    @pytest.mark.asyncio
    async def test_unparseable_verdict(self):
        model = FakeListChatModel(responses=["no idea"])
        decision = await should_retrieve_more("q", UNSURE, 1, 20, model)
        assert decision.should_retrieve is False

    @pytest.mark.asyncio
    async def test_missing_model(self):
        decision = await should_retrieve_more("q", UNSURE, 1, 20, None)
        assert decision.should_retrieve is False


@pytest.mark.asyncio
async def test_retrieve_additional_context_dedupes():
    class Searcher:
        async def search(self, query, limit=None, source_filter="all"):
            self.args = (query, limit, source_filter)
            return [make_result("old"), make_result("new")]

    searcher = Searcher()
    fresh = await retrieve_additional_context(searcher, "q", [make_result("old")], None, 4)

    assert [r.content for r in fresh] == ["new"]
    assert searcher.args == ("q", 4, "all")
