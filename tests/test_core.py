"""
Tests for the DocentCore facade wired from settings.
"""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage

from docent import DocentCore, create_core
from docent.config import DocentSettings
from docent.core import create_vector_store
from docent.memory import InMemoryVectorStore
from docent.rag import FileContentReader


@pytest.fixture
def settings(tmp_path):
    return DocentSettings(
        vector_store={"backend": "memory"},
        retrieval={"default_limit": 2},
        iterative_retrieval={"max_chunks": 12},
        sources={"enabled": ["files", "goodreads"], "documents_folder": str(tmp_path)},
    )


@pytest.fixture
def chat_model():
    return FakeListChatModel(responses=['{"shouldRetrieve": true, "reason": "thin answer", "suggestedCount": 4}'])


@pytest.fixture
def core(settings, embeddings, store, chat_model) -> DocentCore:
    return create_core(settings, embeddings=embeddings, store=store, chat_model=chat_model)


def test_memory_backend():
    assert isinstance(create_vector_store(DocentSettings(vector_store={"backend": "memory"})), InMemoryVectorStore)


def test_registry_follows_enabled_sources(core):
    assert [p.name for p in core.registry.get_all()] == ["files", "goodreads"]
    assert core.engine.default_limit == 2


def test_default_content_reader_is_scoped_to_documents_folder(core, tmp_path):
    reader = core.default_content_reader()
    assert isinstance(reader, FileContentReader)
    assert reader.allowed_roots == [Path(tmp_path).resolve()]


@pytest.mark.asyncio
async def test_retrieve_context(core):
    context = await core.retrieve_context("sailing boat ocean", source_filter=["goodreads:42"])

    assert [r.file_name for r in context.results] == ["Sea Stories", "Green Thumb"]
    assert context.text.startswith("Document: Sea Stories\nContent: Sailing")
    assert context.expanded_files == []
    assert context.route.path == "fast"


def test_retrieval_tool_uses_configured_budget(core):
    tool = core.create_retrieval_tool("sailing", ["goodreads"])
    assert tool.max_chunks == 12
    assert tool.current_sources == ["goodreads"]


@pytest.mark.asyncio
async def test_analyze(core):
    context = await core.retrieve_context("sailing boat ocean", source_filter="goodreads")

    analyzed = await core.analyze("We went sailing on a boat over the ocean", context.results)

    assert analyzed[0].result.file_name == "Sea Stories"
    assert analyzed[0].is_referenced


@pytest.mark.asyncio
async def test_complex_question_takes_the_smart_retriever(core):
    core.smart_retriever.smart_search = AsyncMock(wraps=core.smart_retriever.smart_search)

    context = await core.retrieve_context(
        "Why did the sailing book and the ocean paper disagree, and how should I compare them?",
        limit=4,
    )

    assert context.route.path == "slow"
    core.smart_retriever.smart_search.assert_awaited_once()
    assert core.smart_retriever.smart_search.await_args.args[2] == 4


@pytest.mark.asyncio
async def test_routing_can_be_switched_off(settings, embeddings, store, chat_model):
    settings.smart_retrieval.query_routing = False
    core = create_core(settings, embeddings=embeddings, store=store, chat_model=chat_model)
    core.smart_retriever.smart_search = AsyncMock()

    context = await core.retrieve_context("Why and how would you compare these sailing books?")

    assert context.route is None
    core.smart_retriever.smart_search.assert_not_awaited()
    assert context.results


def test_retrieval_tool_uses_configured_chunk_bounds(settings, embeddings, store, chat_model):
    settings.iterative_retrieval.max_additional_chunks = 3
    settings.iterative_retrieval.default_additional_chunks = 2
    core = create_core(settings, embeddings=embeddings, store=store, chat_model=chat_model)

    tool = core.create_retrieval_tool("sailing")

    assert tool.max_additional_chunks == 3
    assert tool.default_additional_chunks == 2
    assert tool.args_schema.model_json_schema()["properties"]["additional_chunks"]["maximum"] == 3


def test_retrieval_tool_is_absent_when_disabled(settings, embeddings, store, chat_model):
    settings.iterative_retrieval.enabled = False
    core = create_core(settings, embeddings=embeddings, store=store, chat_model=chat_model)

    assert core.create_retrieval_tool("sailing") is None


@pytest.mark.asyncio
async def test_should_retrieve_more_uses_the_chat_model(core):
    decision = await core.should_retrieve_more("what about tax?", "I don't have enough detail on that.", 10)

    assert decision.should_retrieve is True
    assert decision.reason == "thin answer"
    assert decision.suggested_count == 2


@pytest.mark.asyncio
async def test_should_retrieve_more_respects_disabled_setting(settings, embeddings, store, chat_model):
    settings.iterative_retrieval.enabled = False
    core = create_core(settings, embeddings=embeddings, store=store, chat_model=chat_model)

    decision = await core.should_retrieve_more("q", "I don't know.", 0)

    assert decision.should_retrieve is False


@pytest.mark.asyncio
async def test_manage_context_uses_configured_window(settings, embeddings, store):
    settings.context_window.max_context_tokens = 10
    settings.context_window.strategy = "sliding"
    settings.context_window.window_size = 2
    core = create_core(settings, embeddings=embeddings, store=store, chat_model=FakeListChatModel(responses=["x"]))
    history = [HumanMessage(content="a" * 40), AIMessage(content="b" * 40), HumanMessage(content="c")]

    window = await core.manage_context(history)

    assert window.truncated is True
    assert [m.content for m in window.messages] == ["b" * 40, "c"]
    assert window.summary is None


def test_chat_model_is_built_from_chat_settings(settings, embeddings, store):
    core = create_core(settings, embeddings=embeddings, store=store)

    assert core.chat_model.model_name == settings.chat.model
    assert core.context_window.chat_model is core.chat_model
