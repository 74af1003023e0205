"""
RAG Assistant - Query Router
=============================
Decides which retrievers to consult for a query.  The policy is
"all of them, in configuration order" with no query classification.
"""

from __future__ import annotations

from ragassist.src.core.retrievers import ContentRetriever


class QueryRouter:
    """Routes every query to every configured retriever."""

    __slots__ = ("_retrievers",)

    def __init__(self, *retrievers: ContentRetriever) -> None:
        if not retrievers:
            raise ValueError("QueryRouter needs at least one retriever.")
        self._retrievers: tuple[ContentRetriever, ...] = retrievers

    @property
    def retrievers(self) -> tuple[ContentRetriever, ...]:
        return self._retrievers

    def route(self, query: str) -> list[ContentRetriever]:
        return list(self._retrievers)
