"""Docent: multi-source retrieval and relevance attribution.

Provided subpackages:

* :mod:`docent.config` - pydantic-settings configuration
* :mod:`docent.rag` - filters, retrieval engine, context expansion, attribution
* :mod:`docent.sources` - data-source plugins and their registry
* :mod:`docent.tools` - LangChain tools for agents
* :mod:`docent.memory` - chunk stores (Chroma, in-memory)
"""

from .core import DocentCore, create_core
from .errors import DocentError, FilterCompileError, UnknownToolError

__all__ = [
    "DocentCore",
    "DocentError",
    "FilterCompileError",
    "UnknownToolError",
    "create_core",
]
