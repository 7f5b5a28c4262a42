"""
Tests for conversation history budgeting.
"""

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage

from docent.rag import (
    ContextWindowManager,
    apply_sliding_window,
    apply_smart_context,
    apply_token_window,
    calculate_message_tokens,
    estimate_token_count,
    manage_context,
)


def conversation(*sizes):
    """Alternating user/assistant messages whose contents have the given lengths."""
    messages = []
    for i, size in enumerate(sizes):
        cls = HumanMessage if i % 2 == 0 else AIMessage
        messages.append(cls(content=str(i % 10) * size))
    return messages


class FailingChatModel(FakeListChatModel):
    async def ainvoke(self, *args, **kwargs):
        raise RuntimeError("model offline")


class TestEstimates:
    def test_four_characters_per_token_rounded_up(self):
        assert estimate_token_count("") == 0
        assert estimate_token_count("abcd") == 1
        assert estimate_token_count("abcde") == 2

    def test_message_tokens_sum(self):
        assert calculate_message_tokens(conversation(8, 5)) == 4


class TestWindows:
    def test_sliding_keeps_last_messages(self):
        messages = conversation(1, 1, 1, 1)
        assert apply_sliding_window(messages, 2) == messages[2:]
        assert apply_sliding_window(messages, 10) == messages

    def test_token_window_walks_back_from_newest(self):
        messages = conversation(40, 40, 40)

        assert apply_token_window(messages, max_tokens=25) == messages[1:]
        assert apply_token_window(messages, max_tokens=25, reserved_tokens=10) == messages[2:]

    def test_token_window_keeps_latest_even_over_budget(self):
        messages = conversation(400)
        assert apply_token_window(messages, max_tokens=5) == messages

    def test_token_window_empty(self):
        assert apply_token_window([], 10) == []


class TestSmartContext:
    @pytest.mark.asyncio
    async def test_older_messages_are_summarised(self):
        model = FakeListChatModel(responses=["  They talked about sailing.  "])
        messages = conversation(4, 4, 4, 4)

        kept, summary = await apply_smart_context(messages, model, max_recent_messages=2)

        assert kept == messages[2:]
        assert summary == "They talked about sailing."

    @pytest.mark.asyncio
    async def test_short_history_is_untouched(self):
        messages = conversation(4, 4)
        assert await apply_smart_context(messages, FakeListChatModel(responses=["x"]), 5) == (messages, None)

    @pytest.mark.asyncio
    async def test_existing_summary_skips_the_model(self):
        kept, summary = await apply_smart_context(
            conversation(4, 4, 4), FailingChatModel(responses=[]), 1, has_summary=True
        )
        assert len(kept) == 1
        assert summary is None

    @pytest.mark.asyncio
    async def test_model_failure_falls_back_to_recent(self):
        messages = conversation(4, 4, 4)

        kept, summary = await apply_smart_context(messages, FailingChatModel(responses=[]), 1)

        assert kept == messages[-1:]
        assert summary is None


class TestManageContext:
    @pytest.mark.asyncio
    async def test_fitting_history_is_returned_as_is(self):
        messages = conversation(40, 40)

        window = await manage_context(messages, "system", max_context_tokens=100)

        assert window.messages == messages
        assert window.truncated is False
        assert window.summary is None

    @pytest.mark.asyncio
    async def test_system_prompt_counts_once(self):
        messages = conversation(40, 40, 40)
        # 12 system tokens leave room for exactly two 10-token messages
        window = await manage_context(messages, "s" * 48, max_context_tokens=32, strategy="token")

        assert window.truncated is True
        assert window.messages == messages[1:]
        assert window.dropped == messages[:1]

    @pytest.mark.asyncio
    async def test_smart_strategy_returns_summary(self):
        model = FakeListChatModel(responses=["Earlier: tax questions."])
        manager = ContextWindowManager(model, max_context_tokens=20, window_size=2)
        messages = conversation(40, 40, 40, 40)

        window = await manager.manage_context(messages)

        assert window.messages == messages[2:]
        assert window.summary == "Earlier: tax questions."
        assert window.truncated is True

    @pytest.mark.asyncio
    async def test_smart_strategy_without_model_just_trims(self):
        manager = ContextWindowManager(None, max_context_tokens=15, window_size=1)

        window = await manager.manage_context(conversation(40, 40))

        assert len(window.messages) == 1
        assert window.summary is None

    @pytest.mark.asyncio
    async def test_unknown_strategy(self):
        manager = ContextWindowManager(max_context_tokens=1)
        with pytest.raises(ValueError):
            await manager.manage_context(conversation(40), strategy="fifo")
