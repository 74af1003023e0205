"""
RAG Assistant - Retrieval data types
=====================================
``RetrievedSnippet``
    One ranked hit: chunk/snippet text, source identifier, relevance score.
``RetrievalOutcome``
    What a single retriever produced for a query: either snippets or the
    reason it failed.  The augmentor aggregates one outcome per retriever,
    so partial failure is an ordinary value rather than an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RetrievedSnippet:
    text: str
    source: str
    score: float | None = None


@dataclass(frozen=True)
class RetrievalOutcome:
    retriever: str
    snippets: list[RetrievedSnippet] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, retriever: str, snippets: list[RetrievedSnippet]) -> RetrievalOutcome:
        return cls(retriever=retriever, snippets=list(snippets))

    @classmethod
    def failure(cls, retriever: str, reason: str) -> RetrievalOutcome:
        return cls(retriever=retriever, error=reason)
