"""
Error types for Docent.

Only a few failures are allowed to escape a component boundary:
- UnknownToolError: a caller asked for a tool nobody declared
- FilterCompileError: a filter cannot be expressed for the chosen backend

Everything else (embedding outages, store errors, unreadable documents,
misbehaving plugins) is logged and degraded where it happens.
"""

from __future__ import annotations

import json
from typing import Any


def build_error_response(error_code: str, message: str, **kwargs: Any) -> str:
    """Structured error string for tool results, readable by the calling agent."""
    response = {
        "error": True,
        "error_code": error_code,
        "message": message,
        **kwargs,
    }
    return json.dumps(response, ensure_ascii=False)


class DocentError(Exception):
    """Base class for all Docent errors."""


class UnknownToolError(DocentError, LookupError):
    """Raised when a tool or plugin name is not registered."""

    def __init__(self, tool_name: str, plugin_name: str | None = None):
        self.tool_name = tool_name
        self.plugin_name = plugin_name
        if plugin_name:
            message = f"Unknown tool '{tool_name}' for source '{plugin_name}'"
        else:
            message = f"Unknown tool '{tool_name}'"
        super().__init__(message)


class FilterCompileError(DocentError, ValueError):
    """Raised when a filter tree cannot be compiled for a backend."""


class EmbeddingError(DocentError):
    """Raised when the embedding function fails or returns unusable vectors."""
