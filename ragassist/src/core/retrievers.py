"""
RAG Assistant - Content Retrievers
===================================
Uniform ``retrieve(query) -> list[RetrievedSnippet]`` contract over two
kinds of retrieval source.

``EmbeddingStoreRetriever``
    Wraps a ``DocumentVectorStore`` with a fixed result cap and score floor.

``WebSearchRetriever``
    Live web search through the Tavily REST API (``httpx``).  Ranking is
    provider-order based; results are truncated to ``max_results``.

Both raise ``RetrievalUnavailableError`` on failure so the augmentor can
isolate a broken source without aborting the request.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from ragassist.src.core.exceptions import RetrievalUnavailableError
from ragassist.src.core.models import RetrievedSnippet
from ragassist.src.database.vector_store import DocumentVectorStore
from ragassist.src.utils.logger import get_logger

logger = get_logger(__name__)

_TAVILY_URL = "https://api.tavily.com/search"


@runtime_checkable
class ContentRetriever(Protocol):
    """Anything that can return ranked snippets for a query."""

    name: str

    def retrieve(self, query: str) -> list[RetrievedSnippet]: ...


class EmbeddingStoreRetriever:
    """Store-backed retriever (defaults: 3 results, score ≥ 0.5)."""

    def __init__(self, store: DocumentVectorStore, max_results: int = 3, min_score: float = 0.5, name: str | None = None) -> None:
        if max_results < 1:
            raise ValueError(f"max_results must be ≥ 1, got {max_results}")
        self._store = store
        self.max_results = max_results
        self.min_score = min_score
        self.name = name or f"document:{store.source}"

    def retrieve(self, query: str) -> list[RetrievedSnippet]:
        try:
            return self._store.search(query, k=self.max_results, min_score=self.min_score)
        except Exception as exc:
            raise RetrievalUnavailableError(f"Vector search failed: {exc}", self.name) from exc

    def __repr__(self) -> str:
        return f"EmbeddingStoreRetriever(name='{self.name}', k={self.max_results}, min_score={self.min_score})"


class WebSearchRetriever:
    """
    Web-backed retriever using the Tavily search API.

    Parameters
    ----------
    api_key
        Tavily API key.
    max_results
        Cap on returned snippets (default 3).
    timeout
        Per-request timeout in seconds.
    url
        Override the endpoint.
    client
        Optional pre-built ``httpx.Client`` (tests inject a
        ``MockTransport``-backed one).
    """

    def __init__(self, api_key: str, max_results: int = 3, timeout: float = 15.0, url: str = _TAVILY_URL, client: httpx.Client | None = None) -> None:
        if not api_key:
            raise ValueError("api_key must not be empty")
        if max_results < 1:
            raise ValueError(f"max_results must be ≥ 1, got {max_results}")
        self._api_key = api_key
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)
        self.max_results = max_results
        self.name = "web:tavily"

    def retrieve(self, query: str) -> list[RetrievedSnippet]:
        body = {
            "api_key": self._api_key,
            "query": query,
            "max_results": self.max_results,
        }
        try:
            response = self._client.post(self._url, json=body, headers={"Content-Type": "application/json"})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise RetrievalUnavailableError(f"Web search returned HTTP {exc.response.status_code}", self.name) from exc
        except httpx.HTTPError as exc:
            raise RetrievalUnavailableError(f"Web search request failed: {exc.__class__.__name__}", self.name) from exc
        except ValueError as exc:
            raise RetrievalUnavailableError("Web search returned a non-JSON body", self.name) from exc

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise RetrievalUnavailableError("Web search response has no 'results' list", self.name)

        snippets: list[RetrievedSnippet] = []
        for item in results:
            if not isinstance(item, dict):
                continue
            text = str(item.get("content") or "").strip()
            if not text:
                continue
            score = item.get("score")
            snippets.append(RetrievedSnippet(text=text, source=str(item.get("url") or "web"), score=float(score) if isinstance(score, (int, float)) else None))
            if len(snippets) >= self.max_results:
                break

        logger.info("Web search returned %d result(s) for '%.50s'.", len(snippets), query)
        return snippets

    def close(self) -> None:
        self._client.close()

    def __repr__(self) -> str:
        return f"WebSearchRetriever(url='{self._url}', k={self.max_results})"
