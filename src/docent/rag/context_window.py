"""
Context Window - conversation history budgeting

Keeps a chat history inside the model's context budget with one of three
strategies:

- ``sliding``: keep the last N messages
- ``token``: keep the newest messages that fit the token budget
- ``smart``: keep the last N messages and summarise the older ones with a
  chat model

Token counts use a ~4 characters per token estimate.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Literal

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage

logger = logging.getLogger(__name__)

ContextStrategy = Literal["sliding", "token", "smart"]

DEFAULT_MAX_CONTEXT_TOKENS = 8000
DEFAULT_WINDOW_SIZE = 10

SUMMARY_PROMPT = (
    "Summarize the following conversation history in 2-3 concise paragraphs. "
    "Focus on key topics, decisions, and important information that would be "
    "helpful for continuing the conversation:\n\n{history}\n\nSummary:"
)


@dataclass
class ContextWindowResult:
    messages: list[BaseMessage]
    summary: str | None = None
    truncated: bool = False
    dropped: list[BaseMessage] = field(default_factory=list)


def _content(message: BaseMessage) -> str:
    return message.content if isinstance(message.content, str) else str(message.content)


def estimate_token_count(text: str) -> int:
    return math.ceil(len(text) / 4)


def calculate_message_tokens(messages: list[BaseMessage]) -> int:
    return sum(estimate_token_count(_content(m)) for m in messages)


def apply_sliding_window(messages: list[BaseMessage], max_messages: int = 20) -> list[BaseMessage]:
    if max_messages <= 0:
        return messages[-1:]
    return messages[-max_messages:]


def apply_token_window(
    messages: list[BaseMessage],
    max_tokens: int = 4000,
    reserved_tokens: int = 0,
) -> list[BaseMessage]:
    """
    Keep the newest messages whose estimated tokens fit ``max_tokens``.

    ``reserved_tokens`` (the system prompt, usually) is counted against the
    budget first. The most recent message is always kept, even when it alone
    is over budget.
    """
    kept: list[BaseMessage] = []
    used = reserved_tokens
    for message in reversed(messages):
        tokens = estimate_token_count(_content(message))
        if used + tokens > max_tokens and kept:
            break
        kept.insert(0, message)
        used += tokens
    return kept


def _history_line(message: BaseMessage) -> str:
    speaker = "User" if isinstance(message, HumanMessage) else "Assistant"
    return f"{speaker}: {_content(message)}"


async def summarize_messages(messages: list[BaseMessage], chat_model: BaseChatModel) -> str:
    prompt = SUMMARY_PROMPT.format(history="\n\n".join(_history_line(m) for m in messages))
    response = await chat_model.ainvoke([HumanMessage(content=prompt)])
    if isinstance(response.content, str):
        return response.content.strip()
    return "Previous conversation covered various topics."


async def apply_smart_context(
    messages: list[BaseMessage],
    chat_model: BaseChatModel | None,
    max_recent_messages: int = DEFAULT_WINDOW_SIZE,
    has_summary: bool = False,
) -> tuple[list[BaseMessage], str | None]:
    """
    Split off the last ``max_recent_messages`` and summarise the rest.

    The summary is skipped when the caller already carries one
    (``has_summary``) or no chat model is available; a failed summary call
    is logged and also yields ``None``.
    """
    if len(messages) <= max_recent_messages:
        return messages, None

    recent = apply_sliding_window(messages, max_recent_messages)
    older = messages[: len(messages) - len(recent)]
    if has_summary or chat_model is None:
        return recent, None

    try:
        summary = await summarize_messages(older, chat_model)
    except Exception as e:
        logger.error("Error generating conversation summary: %s", e, exc_info=True)
        return recent, None

    logger.info(
        "Summarized %d old messages into ~%d tokens", len(older), estimate_token_count(summary)
    )
    return recent, summary


class ContextWindowManager:
    """
    Fits a conversation history into the model's context budget.

    Usage:
        manager = ContextWindowManager(chat_model, max_context_tokens=8000)
        window = await manager.manage_context(history, system_prompt)
        if window.summary:
            prompt = f"Earlier conversation:\\n{window.summary}\\n\\n{prompt}"
    """

    def __init__(
        self,
        chat_model: BaseChatModel | None = None,
        max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS,
        strategy: ContextStrategy = "smart",
        window_size: int = DEFAULT_WINDOW_SIZE,
    ):
        self.chat_model = chat_model
        self.max_context_tokens = max_context_tokens
        self.strategy = strategy
        self.window_size = window_size

    async def manage_context(
        self,
        messages: list[BaseMessage],
        system_prompt: str = "",
        strategy: ContextStrategy | None = None,
    ) -> ContextWindowResult:
        """
        Return ``messages`` untouched when they fit beside the system prompt,
        otherwise trim them with the chosen strategy.
        """
        strategy = strategy or self.strategy
        system_tokens = estimate_token_count(system_prompt)
        available = self.max_context_tokens - system_tokens
        current = calculate_message_tokens(messages)
        logger.debug(
            "Context: %d messages, %d/%d tokens (system: %d)",
            len(messages),
            current,
            self.max_context_tokens,
            system_tokens,
        )
        if current <= available:
            return ContextWindowResult(messages=list(messages))

        summary = None
        if strategy == "sliding":
            kept = apply_sliding_window(messages, self.window_size)
        elif strategy == "token":
            kept = apply_token_window(messages, self.max_context_tokens, system_tokens)
        elif strategy == "smart":
            kept, summary = await apply_smart_context(messages, self.chat_model, self.window_size)
        else:
            raise ValueError(f"Unknown context strategy: {strategy}")

        logger.info(
            "Applied %s context window: %d -> %d messages%s",
            strategy,
            len(messages),
            len(kept),
            " + summary" if summary else "",
        )
        return ContextWindowResult(
            messages=kept,
            summary=summary,
            truncated=True,
            dropped=list(messages[: len(messages) - len(kept)]),
        )


async def manage_context(
    messages: list[BaseMessage],
    system_prompt: str = "",
    max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS,
    strategy: ContextStrategy = "smart",
    window_size: int = DEFAULT_WINDOW_SIZE,
    chat_model: BaseChatModel | None = None,
) -> ContextWindowResult:
    manager = ContextWindowManager(chat_model, max_context_tokens, strategy, window_size)
    return await manager.manage_context(messages, system_prompt)
