"""
Shared test doubles: keyword embeddings and search-result factory.
"""

import re

from langchain_core.embeddings import Embeddings

from docent.rag.types import SearchResult

VOCABULARY = (
    "sailing", "boat", "ocean", "tax", "invoice", "receipt", "meeting",
    "calendar", "book", "author", "garden", "python",
)


class KeywordEmbeddings(Embeddings):
    """
    Deterministic bag-of-words embeddings over a small vocabulary.

    A constant last dimension keeps every vector non-zero. Texts listed in
    ``overrides`` get the given vector verbatim.
    """

    def __init__(self, overrides: dict[str, list[float]] | None = None, fail: bool = False):
        self.overrides = overrides or {}
        self.fail = fail
        self.calls: list[str] = []

    def _embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("embedding service unavailable")
        if text in self.overrides:
            return list(self.overrides[text])
        words = re.findall(r"[a-z]+", text.lower())
        return [float(words.count(word)) for word in VOCABULARY] + [0.1]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)


def make_result(content: str, score: float = 0.5, **metadata) -> SearchResult:
    return SearchResult(content=content, score=score, metadata=metadata)
